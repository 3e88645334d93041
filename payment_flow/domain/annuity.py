"""Deferred-balance (pro-soluto) amortization: linear and four-tier stepped annuities"""

from datetime import date
from typing import Iterable, Optional, Tuple

from payment_flow.domain.models import LinearSchedule, PaymentEntry, SteppedSchedule
from payment_flow.domain.rates import correction_factor, discount_factors

STEP_WEIGHTS = (1.0, 0.75, 0.5, 0.25)

EMPTY_STEPPED = SteppedSchedule(installments=(0.0, 0.0, 0.0, 0.0), period_lengths=(0, 0, 0, 0), total=0.0)


def split_periods(total_installments: int) -> Tuple[int, int, int, int]:
    """
    Split the term into four periods as evenly as possible.

    The remainder goes to the earliest periods first:
        10 -> (3, 3, 2, 2)
    """
    base, remainder = divmod(total_installments, 4)
    return (
        base + (1 if remainder > 0 else 0),
        base + (1 if remainder > 1 else 0),
        base + (1 if remainder > 2 else 0),
        base,
    )


def calculate_linear_installment(
    principal: float,
    installments: int,
    delivery_date: Optional[date],
    payments: Iterable[PaymentEntry] = (),
    today: Optional[date] = None,
) -> LinearSchedule:
    """
    Fixed installment for the deferred balance (price-table style).

    Each future installment is discounted month by month at the pre- or
    post-delivery rate. The base installment ``principal / annuityFactor`` is
    then compounded once per grace month.

    Invalid inputs (non-positive principal or term, no delivery date) fail
    closed with a zero schedule.
    """
    if principal <= 0 or installments <= 0 or delivery_date is None:
        return LinearSchedule(installment=0.0, total=0.0)

    today = today or date.today()
    annuity_factor = sum(discount_factors(installments, delivery_date, today))

    if annuity_factor == 0:
        return LinearSchedule(installment=0.0, total=principal)

    base_installment = principal / annuity_factor
    installment = base_installment * correction_factor(payments, delivery_date, today)

    return LinearSchedule(installment=installment, total=installment * installments)


def calculate_stepped_installments(
    principal: float,
    total_installments: int,
    delivery_date: Optional[date],
    payments: Iterable[PaymentEntry] = (),
    today: Optional[date] = None,
) -> SteppedSchedule:
    """
    Front-loaded decreasing installments over four periods.

    Period ``p`` pays ``firstInstallment * STEP_WEIGHTS[p]``. The first
    installment solves

        correctedPrincipal = firstInstallment * sum(weight(k) * discount(k))

    over every installment ``k`` in chronological order, where the corrected
    principal is the principal compounded over the grace period.
    """
    if principal <= 0 or total_installments <= 0 or delivery_date is None:
        return EMPTY_STEPPED

    today = today or date.today()
    payments = tuple(payments)
    period_lengths = split_periods(total_installments)
    corrected_principal = principal * correction_factor(payments, delivery_date, today)

    factors = discount_factors(total_installments, delivery_date, today)
    weights = [w for w, length in zip(STEP_WEIGHTS, period_lengths) for _ in range(length)]
    total_annuity_factor = sum(w * f for w, f in zip(weights, factors))

    if total_annuity_factor == 0:
        return SteppedSchedule(installments=(0.0, 0.0, 0.0, 0.0), period_lengths=period_lengths, total=corrected_principal)

    first_installment = corrected_principal / total_annuity_factor
    stepped = tuple(first_installment * w for w in STEP_WEIGHTS)
    total_paid = sum(value * length for value, length in zip(stepped, period_lengths))

    return SteppedSchedule(installments=stepped, period_lengths=period_lengths, total=total_paid)


def price_installment(total: float, installments: int, monthly_rate: float) -> float:
    """Standard fixed-rate price-table installment"""
    if installments <= 0:
        return 0.0
    if monthly_rate <= 0:
        return total / installments
    growth = (1 + monthly_rate) ** installments
    return total * monthly_rate * growth / (growth - 1)
