"""Pure schedule and seat-class rules."""

from __future__ import annotations

from backend.domain.models import AllocationType, SeatSettings


BATCH_SCHEDULE: dict[str, dict[str, tuple[str, ...]]] = {
    "Batch 1": {
        "Week 1": ("Mon", "Tue", "Wed"),
        "Week 2": ("Thu", "Fri"),
    },
    "Batch 2": {
        "Week 1": ("Thu", "Fri"),
        "Week 2": ("Mon", "Tue", "Wed"),
    },
}


def working_days(batch: str, week: str) -> tuple[str, ...]:
    """Return the in-office days of `batch` in `week`; empty when either is unknown."""
    return BATCH_SCHEDULE.get(batch, {}).get(week, ())


def requires_floater(employee_batch: str, working_batch: str) -> bool:
    """Working under another batch means floater-class seats only."""
    return employee_batch != working_batch


def allowed_seat_range(requires_floater: bool, settings: SeatSettings) -> range:
    if requires_floater:
        return range(settings.floater_start_seat, settings.floater_end_seat + 1)
    return range(1, settings.regular_seats + 1)


def is_floater_seat(seat: int, settings: SeatSettings) -> bool:
    return seat >= settings.floater_start_seat


def seat_type_for(seat: int, settings: SeatSettings) -> AllocationType:
    """Type a booking on `seat` produces, decided by seat number alone."""
    if is_floater_seat(seat, settings):
        return AllocationType.FLOATER
    return AllocationType.TEMP_FLOATER
