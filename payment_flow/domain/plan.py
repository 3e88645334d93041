"""Payment plan orchestration - core entry point of the engine"""

from collections import defaultdict
from datetime import date
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Sequence

from payment_flow.config import settings
from payment_flow.domain.affordability import other_monthly_obligations, peak_income_commitment
from payment_flow.domain.allocator import apply_minimum_condition
from payment_flow.domain.annuity import calculate_linear_installment, calculate_stepped_installments
from payment_flow.domain.insurance import ResultCache, calculate_construction_insurance
from payment_flow.domain.models import (
    AmortizationKind,
    AmortizationSchedule,
    LinearSchedule,
    PaymentEntry,
    PaymentPlanRequest,
    PaymentType,
    Results,
    Summary,
)
from payment_flow.domain.notary import notary_fee_with_participants, notary_installment
from payment_flow.domain.rates import correction_factor
from payment_flow.domain.solvers import implied_rate
from payment_flow.domain.validation import max_installments, pro_soluto_limit, validate_payments

NotaryFeeLookup = Callable[[float], float]

# Float noise between a monthly cap and the installment that fills it
COMMITMENT_TOLERANCE = 1e-9


def bucket_totals(payments: Sequence[PaymentEntry]) -> Mapping[str, float]:
    """Read-only sum of values per payment type"""
    totals: Dict[str, float] = defaultdict(float)
    for p in payments:
        totals[p.type.value] += p.value
    return MappingProxyType(dict(totals))


def _amortize(request: PaymentPlanRequest, principal: float, payments: Sequence[PaymentEntry], today: date) -> AmortizationSchedule:
    if request.amortization == AmortizationKind.STEPPED:
        return calculate_stepped_installments(principal, request.installments, request.delivery_date, payments, today)
    return calculate_linear_installment(principal, request.installments, request.delivery_date, payments, today)


def _installment_error(request: PaymentPlanRequest, has_pro_soluto: bool) -> Optional[str]:
    if not has_pro_soluto:
        return None
    if request.installments <= 0:
        return "Número de parcelas é obrigatório para Pró-Soluto."

    ceiling = max_installments(request)
    if request.installments > ceiling:
        return f"Número de parcelas excede o limite de {ceiling} para a condição selecionada."
    return None


def compute_payment_plan(
    request: PaymentPlanRequest,
    today: Optional[date] = None,
    insurance_cache: Optional[ResultCache] = None,
    notary_fee_lookup: Optional[NotaryFeeLookup] = None,
) -> Results:
    """
    Map a payment-plan request to a validated, amortized result.

    Flow:
    1. Optionally rewrite the entries with the minimum-condition allocator
    2. Reconcile the entries and check business rules
    3. Amortize the pro-soluto with the requested annuity calculator
    4. Build the construction insurance schedule
    5. Derive commitment percentages, implied rate and notary installment

    Rule violations are reported as messages on the result, never raised.
    """
    today = today or date.today()

    allocation = None
    payments = request.payments
    if request.apply_minimum_condition:
        allocation = apply_minimum_condition(request, today=today, insurance_cache=insurance_cache)
        payments = allocation.payments

    validation = validate_payments(payments, request.appraisal_value, request.sale_value, request.campaign)

    pro_soluto_entry = next((p for p in payments if p.type == PaymentType.PRO_SOLUTO), None)
    has_pro_soluto = pro_soluto_entry is not None
    financed_amount = pro_soluto_entry.value if pro_soluto_entry else 0.0
    n = request.installments

    schedule = _amortize(request, financed_amount, payments, today)

    insurance = calculate_construction_insurance(
        request.construction_start_date,
        request.delivery_date,
        request.simulation_installment_value,
        today=today,
        cache=insurance_cache,
    )

    # Income commitment at its peak month
    income_commitment = 0.0
    if request.gross_income > 0:
        if request.delivery_date is not None and n > 0:
            obligations = other_monthly_obligations(
                n, request.delivery_date, request.simulation_installment_value, insurance, today
            )
            income_commitment = peak_income_commitment(schedule, obligations, request.gross_income)
        else:
            income_commitment = request.simulation_installment_value / request.gross_income

    # Pro-soluto commitment on the grace-corrected balance
    corrected_pro_soluto = financed_amount
    if has_pro_soluto and request.delivery_date is not None:
        corrected_pro_soluto *= correction_factor(payments, request.delivery_date, today)
    pro_soluto_commitment = corrected_pro_soluto / request.sale_value if request.sale_value > 0 else 0.0

    income_error = None
    if income_commitment > settings.income_commitment_limit + COMMITMENT_TOLERANCE:
        income_error = f"Comprometimento de renda em seu pico excede {settings.income_commitment_limit:.0%}."

    pro_soluto_error = None
    limit = pro_soluto_limit(request)
    if has_pro_soluto and pro_soluto_commitment >= limit:
        pro_soluto_error = (
            f"O Percentual Parcelado (Pró-Soluto) ({pro_soluto_commitment:.2%}) deve ser menor que "
            f"{limit:.0%} para a condição selecionada."
        )

    # Average rate implied by the installment stream
    if isinstance(schedule, LinearSchedule):
        per_period = schedule.installment
    else:
        per_period = schedule.total / n if n > 0 else 0.0
    rate = implied_rate(n, per_period, financed_amount)

    notary_fees = request.notary_fees
    if notary_fees is None and notary_fee_lookup is not None:
        notary_fees = notary_fee_with_participants(
            notary_fee_lookup(request.appraisal_value), request.financing_participants
        )

    return Results(
        summary=Summary(remaining=validation.difference, ok_total=validation.is_valid),
        financed_amount=financed_amount,
        schedule=schedule,
        total_with_interest=schedule.total,
        total_construction_insurance=insurance.total,
        monthly_insurance_breakdown=insurance.breakdown,
        income_commitment_percentage=income_commitment,
        pro_soluto_commitment_percentage=pro_soluto_commitment,
        average_interest_rate=rate.value,
        average_interest_rate_converged=rate.converged,
        payment_validation=validation,
        payments=tuple(payments),
        bucket_totals=bucket_totals(payments),
        notary_installment_value=notary_installment(
            notary_fees, request.notary_installments, request.notary_payment_method
        ),
        income_error=income_error,
        pro_soluto_error=pro_soluto_error,
        installment_error=_installment_error(request, has_pro_soluto),
        allocation=allocation,
    )
