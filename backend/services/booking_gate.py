"""Time-of-day, holiday and schedule checks applied before any booking write."""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, Optional

from backend.domain.errors import (
    BookingWindowClosedError,
    HolidayError,
    NoSeatSelectedError,
    ScheduleMismatchError,
    ValidationError,
)
from backend.domain.models import BookingDecision, SeatSettings
from backend.domain.rules import working_days
from backend.repository.data_repository import DataRepository
from backend.services.settings_service import SettingsService
from backend.utils.logger import get_logger


logger = get_logger(__name__)


Clock = Callable[[], datetime]


class BookingGate:
    """Re-evaluates the booking window and holiday calendar on every call."""

    def __init__(
        self,
        repository: DataRepository,
        settings_service: SettingsService,
        clock: Optional[Clock] = None,
    ) -> None:
        self._repository = repository
        self._settings_service = settings_service
        self._clock: Clock = clock or datetime.now

    def is_booking_window_open(
        self,
        now: Optional[datetime] = None,
        seat_settings: Optional[SeatSettings] = None,
    ) -> bool:
        current = now or self._clock()
        snapshot = seat_settings or self._settings_service.get()
        return current.hour >= snapshot.booking_open_hour

    def is_holiday(self, today: Optional[date] = None) -> bool:
        """True when today's calendar date is a closed holiday.

        The booked (week, day) slot is deliberately not consulted; only the
        real current date is.
        """
        target = today or self._clock().date()
        return self._repository.is_closed_holiday(target)

    def check_booking(
        self,
        week: str,
        day: str,
        working_batch: str,
        seat: Optional[int],
        *,
        now: Optional[datetime] = None,
        seat_settings: Optional[SeatSettings] = None,
    ) -> None:
        """Raise the first failing rule, in pipeline order; never writes."""
        current = now or self._clock()
        snapshot = seat_settings or self._settings_service.get()

        if not self.is_booking_window_open(current, snapshot):
            raise BookingWindowClosedError(
                f"Booking only allowed after {snapshot.booking_open_hour:02d}:00"
            )
        if self.is_holiday(current.date()):
            raise HolidayError("Booking not allowed on holidays")
        if day not in working_days(working_batch, week):
            raise ScheduleMismatchError("Day not in batch schedule")
        if not seat:
            raise NoSeatSelectedError("Please select a seat")

    def validate_booking(
        self,
        week: str,
        day: str,
        working_batch: str,
        seat: Optional[int],
        *,
        now: Optional[datetime] = None,
        seat_settings: Optional[SeatSettings] = None,
    ) -> BookingDecision:
        try:
            self.check_booking(
                week,
                day,
                working_batch,
                seat,
                now=now,
                seat_settings=seat_settings,
            )
        except ValidationError as exc:
            logger.debug("Booking preview rejected: %s", exc)
            return BookingDecision(allowed=False, reason=str(exc), code=exc.code)
        return BookingDecision(allowed=True)
