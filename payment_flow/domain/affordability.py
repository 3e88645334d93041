"""Month-by-month affordability of the deferred balance against the buyer's income"""

from datetime import date
from typing import List, Sequence

from payment_flow.config import settings
from payment_flow.domain.annuity import calculate_linear_installment, calculate_stepped_installments
from payment_flow.domain.models import (
    AmortizationKind,
    AmortizationSchedule,
    InsuranceSchedule,
    LinearSchedule,
    PaymentEntry,
    PaymentPlanRequest,
    SolverResult,
)
from payment_flow.domain.solvers import max_affordable_balance
from payment_flow.utils.date_utils import add_months


def other_monthly_obligations(
    installments: int,
    delivery_date: date,
    simulation_installment_value: float,
    insurance: InsuranceSchedule,
    today: date,
) -> List[float]:
    """
    What else the buyer pays in each month 1..installments of the deferred term.

    Before delivery that is the construction insurance due that month; from
    delivery on it is the bank financing installment.
    """
    obligations = []
    for i in range(1, installments + 1):
        month_date = add_months(today, i)
        if month_date < delivery_date:
            obligations.append(insurance.value_for_month(month_date.year, month_date.month))
        else:
            obligations.append(simulation_installment_value)
    return obligations


def installment_stream(schedule: AmortizationSchedule, installments: int) -> List[float]:
    """Pro-soluto installment due in each month 1..installments"""
    if isinstance(schedule, LinearSchedule):
        return [schedule.installment] * installments
    return [schedule.installment_for(i) for i in range(1, installments + 1)]


def peak_income_commitment(
    schedule: AmortizationSchedule,
    obligations: Sequence[float],
    gross_income: float,
) -> float:
    """Highest monthly share of income taken by pro-soluto plus other obligations"""
    if gross_income <= 0:
        return 0.0

    stream = installment_stream(schedule, len(obligations))
    return max(
        ((inst + other) / gross_income for inst, other in zip(stream, obligations)),
        default=0.0,
    )


def max_pro_soluto_by_income(
    request: PaymentPlanRequest,
    payments: Sequence[PaymentEntry],
    insurance: InsuranceSchedule,
    upper_bound: float,
    today: date,
) -> SolverResult:
    """
    Largest pro-soluto the buyer's income can sustain.

    The monthly cap is ``income_commitment_limit * gross_income`` minus that
    month's other obligation; the request's amortization kind decides which
    annuity calculator produces the installment stream.
    """
    if request.delivery_date is None or request.installments <= 0:
        return SolverResult(value=0.0, converged=True, iterations=0)

    delivery_date = request.delivery_date
    n = request.installments
    income_limit = settings.income_commitment_limit * request.gross_income
    obligations = other_monthly_obligations(
        n, delivery_date, request.simulation_installment_value, insurance, today
    )
    caps = [max(0.0, income_limit - other) for other in obligations]

    def stream_for(principal: float) -> List[float]:
        if request.amortization == AmortizationKind.STEPPED:
            schedule = calculate_stepped_installments(principal, n, delivery_date, payments, today)
        else:
            schedule = calculate_linear_installment(principal, n, delivery_date, payments, today)
        return installment_stream(schedule, n)

    return max_affordable_balance(stream_for, caps, upper_bound)
