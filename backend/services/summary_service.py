"""Read-only occupancy counters derived from allocation rows."""

from __future__ import annotations

from typing import Iterable

from backend.domain.models import DAYS, Allocation, AllocationState, DaySummary, WeekSummary
from backend.repository.data_repository import DataRepository


_COUNTER_BY_STATE = {
    AllocationState.REGULAR_ALLOCATED: "regular_allocated",
    AllocationState.FLOATER_BOOKED: "floater_booked",
    AllocationState.TEMP_FLOATER_RELEASED: "temp_available",
    AllocationState.TEMP_FLOATER_BOOKED: "temp_booked",
    AllocationState.LOCKED: "locked",
}


def summarize_week(week: str, allocations: Iterable[Allocation]) -> WeekSummary:
    """Bucket allocations per day; counts do not depend on iteration order."""
    by_day = {day: DaySummary() for day in DAYS}
    for allocation in allocations:
        if allocation.week != week:
            continue
        day_summary = by_day.get(allocation.day)
        if day_summary is None:
            continue
        counter = _COUNTER_BY_STATE[allocation.state]
        setattr(day_summary, counter, getattr(day_summary, counter) + 1)
        if allocation.state is AllocationState.TEMP_FLOATER_RELEASED:
            day_summary.released_count += 1
        day_summary.seats.append(
            {
                "seat": allocation.seat,
                "employee_id": allocation.employee_id,
                "batch": allocation.batch,
                "type": allocation.type.value,
                "status": allocation.status.value,
            }
        )

    totals: dict[str, int] = {}
    for day_summary in by_day.values():
        day_summary.seats.sort(key=lambda item: int(item["seat"]))  # type: ignore[arg-type]
        for name, value in day_summary.counters().items():
            totals[name] = totals.get(name, 0) + value
    return WeekSummary(week=week, totals=totals, by_day=by_day)


class SummaryService:
    def __init__(self, repository: DataRepository) -> None:
        self._repository = repository

    def week_summary(self, week: str) -> WeekSummary:
        return summarize_week(week, self._repository.list_allocations_for_week(week))
