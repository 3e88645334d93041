"""Date manipulation utilities"""

import calendar
from datetime import date

from dateutil.relativedelta import relativedelta

MONTH_NAMES_PT = (
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
)


def add_months(from_date: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the month's length"""
    return from_date + relativedelta(months=months)


def start_of_month(value: date) -> date:
    return value.replace(day=1)


def last_day_of_month(value: date) -> date:
    return value.replace(day=calendar.monthrange(value.year, value.month)[1])


def months_between(later: date, earlier: date) -> int:
    """
    Number of full calendar months from ``earlier`` to ``later``.

    Partial months are truncated toward zero and the result is negative when
    ``later`` precedes ``earlier``. A month-end date counts a full month to
    the next month-end, so Jan 31 -> Feb 28 is 1.
    """
    delta = relativedelta(later, earlier)
    return delta.years * 12 + delta.months


def month_label(value: date) -> str:
    """pt-BR month label, e.g. ``janeiro/2027``"""
    return f"{MONTH_NAMES_PT[value.month - 1]}/{value.year}"
