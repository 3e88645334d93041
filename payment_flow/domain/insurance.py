"""Progressive construction insurance between construction start and delivery"""

from datetime import date
from typing import Hashable, List, Optional, Protocol

from payment_flow.domain.models import InsuranceEntry, InsuranceSchedule
from payment_flow.utils.date_utils import add_months, month_label, months_between

EMPTY_SCHEDULE = InsuranceSchedule(total=0.0, breakdown=())


class ResultCache(Protocol):
    """Memoization capability injected into the insurance calculator"""

    def get(self, key: Hashable) -> Optional[InsuranceSchedule]: ...

    def set(self, key: Hashable, value: InsuranceSchedule) -> None: ...


def _build_schedule(
    construction_start_date: date,
    delivery_date: date,
    baseline_installment: float,
    today: date,
) -> InsuranceSchedule:
    total_months = months_between(delivery_date, construction_start_date)
    if total_months < 0:
        return EMPTY_SCHEDULE

    total_payable = 0.0
    breakdown: List[InsuranceEntry] = []

    for i in range(total_months + 1):
        month_date = add_months(construction_start_date, i)
        progress_rate = i / total_months if total_months > 0 else 1.0
        value = progress_rate * baseline_installment
        is_payable = month_date >= today

        if is_payable:
            total_payable += value

        breakdown.append(
            InsuranceEntry(
                month=month_label(month_date),
                value=value,
                date=month_date,
                is_payable=is_payable,
                progress_rate=progress_rate,
            )
        )

    return InsuranceSchedule(total=total_payable, breakdown=tuple(breakdown))


def calculate_construction_insurance(
    construction_start_date: Optional[date],
    delivery_date: Optional[date],
    baseline_installment: float,
    today: Optional[date] = None,
    cache: Optional[ResultCache] = None,
) -> InsuranceSchedule:
    """
    Monthly insurance schedule growing linearly with construction progress.

    Month ``i`` of ``totalMonths`` costs ``i / totalMonths * baseline``. Months
    strictly before ``today`` are listed but not payable, and the total only
    sums payable months. Invalid inputs yield an empty schedule.

    ``today`` is part of the memoization key so a cached schedule is always
    identical to a freshly computed one.
    """
    if (
        construction_start_date is None
        or delivery_date is None
        or construction_start_date > delivery_date
        or baseline_installment <= 0
    ):
        return EMPTY_SCHEDULE

    today = today or date.today()
    key = (construction_start_date, delivery_date, baseline_installment, today)

    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    schedule = _build_schedule(construction_start_date, delivery_date, baseline_installment, today)

    if cache is not None:
        cache.set(key, schedule)

    return schedule
