"""Default and allowed dates for payment entries"""

from datetime import date, timedelta
from typing import Iterable, Optional

from payment_flow.domain.models import LOCKED_DATE_TYPES, PaymentEntry, PaymentType
from payment_flow.utils.date_utils import add_months, last_day_of_month, start_of_month

# Days of the month a pro-soluto installment may fall on
PRO_SOLUTO_DUE_DAYS = (5, 10, 15, 20)

# How far ahead each staged signal may be scheduled
SIGNAL_WINDOW_DAYS = {
    PaymentType.SINAL_1: 30,
    PaymentType.SINAL_2: 60,
    PaymentType.SINAL_3: 90,
}


def locked_date(delivery_date: Optional[date], today: date) -> date:
    """System-computed date: delivery, or the end of next month once delivery has passed"""
    if delivery_date is None:
        return today
    if today > delivery_date:
        return last_day_of_month(add_months(today, 1))
    return delivery_date


def pro_soluto_start_date(payments: Iterable[PaymentEntry], today: date) -> date:
    """The 5th of the month following sinal1 (or following today without sinal1)"""
    sinal1 = next((p for p in payments if p.type == PaymentType.SINAL_1), None)
    base = sinal1.date if sinal1 else today
    return add_months(base, 1).replace(day=5)


def default_entry_date(
    payment_type: PaymentType,
    payments: Iterable[PaymentEntry],
    delivery_date: Optional[date],
    today: date,
) -> date:
    if payment_type in LOCKED_DATE_TYPES:
        return locked_date(delivery_date, today)
    if payment_type == PaymentType.PRO_SOLUTO:
        return pro_soluto_start_date(payments, today)
    return today


def is_date_allowed(
    payment_type: PaymentType,
    candidate: date,
    payments: Iterable[PaymentEntry],
    today: date,
) -> bool:
    """Whether the buyer may pick ``candidate`` for an entry of this type"""
    if payment_type in SIGNAL_WINDOW_DAYS:
        return today <= candidate <= today + timedelta(days=SIGNAL_WINDOW_DAYS[payment_type])

    if payment_type == PaymentType.PRO_SOLUTO:
        sinal1 = next((p for p in payments if p.type == PaymentType.SINAL_1), None)
        earliest = start_of_month(add_months(sinal1.date if sinal1 else today, 1))
        return candidate >= earliest and candidate.day in PRO_SOLUTO_DUE_DAYS

    return candidate >= today
