"""Pre/post-delivery rate selection and grace-period correction"""

from datetime import date
from typing import Iterable, List

from payment_flow.config import settings
from payment_flow.domain.models import STAGED_SIGNALS, PaymentEntry
from payment_flow.utils.date_utils import add_months, months_between, start_of_month


def rate_for_month(month_date: date, delivery_date: date) -> float:
    """Monthly rate for a month: pre-delivery strictly before the delivery month, else post-delivery"""
    if start_of_month(month_date) < start_of_month(delivery_date):
        return settings.rate_before_delivery
    return settings.rate_after_delivery


def grace_period_months(payments: Iterable[PaymentEntry], delivery_date: date, today: date) -> int:
    """
    Months before deferred-balance amortization effectively begins.

    Starts at 1, adds one per staged signal present, and adds the whole months
    elapsed since delivery when the delivery date is already past.
    """
    present = {p.type for p in payments}
    months = 1 + sum(1 for signal in STAGED_SIGNALS if signal in present)

    if delivery_date < today:
        months += months_between(today, delivery_date)

    return months


def correction_factor(payments: Iterable[PaymentEntry], delivery_date: date, today: date) -> float:
    """Compounding applied once per grace month, each at that month's rate"""
    factor = 1.0
    for i in range(grace_period_months(payments, delivery_date, today)):
        factor *= 1 + rate_for_month(add_months(today, i), delivery_date)
    return factor


def discount_factors(count: int, delivery_date: date, today: date) -> List[float]:
    """
    Chained discount factor for each future installment 1..count.

    Factor ``i`` is the product over months ``j = 1..i`` of ``1 / (1 + rate(j))``.
    """
    factors = []
    running = 1.0
    for j in range(1, count + 1):
        running /= 1 + rate_for_month(add_months(today, j), delivery_date)
        factors.append(running)
    return factors
