"""Domain-level validation rules for seat layout settings."""

from __future__ import annotations

from backend.domain.errors import SettingsValidationError
from backend.domain.models import SeatSettings


def validate_seat_settings(settings: SeatSettings) -> None:
    if settings.regular_seats <= 0:
        raise SettingsValidationError("regular_seats must be > 0")
    if settings.floater_seats <= 0:
        raise SettingsValidationError("floater_seats must be > 0")
    if settings.floater_start_seat <= settings.regular_seats:
        raise SettingsValidationError("floater_start_seat must be greater than regular_seats")
    if not 0 <= settings.booking_open_hour <= 23:
        raise SettingsValidationError("booking_open_hour must be between 0 and 23")
