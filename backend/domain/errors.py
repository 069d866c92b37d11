"""Typed failures raised by the allocation engine."""

from __future__ import annotations


class AllocationError(Exception):
    """Base class for expected business-rule failures."""

    code = "allocation_error"
    retryable = False


class ValidationError(AllocationError):
    """Booking request rejected by the validation pipeline."""

    code = "validation_error"


class BookingWindowClosedError(ValidationError):
    code = "booking_window_closed"


class HolidayError(ValidationError):
    code = "holiday"


class ScheduleMismatchError(ValidationError):
    code = "schedule_mismatch"


class NoSeatSelectedError(ValidationError):
    code = "no_seat_selected"


class OwnershipError(AllocationError):
    """Raised when a release is attempted by someone other than the holder."""

    code = "not_owner"


class NotFoundError(AllocationError):
    code = "not_found"


class SeatTakenError(AllocationError):
    """Raised when a floater seat is already booked for the day."""

    code = "seat_taken"


class SeatUnavailableError(AllocationError):
    """Raised when a regular seat has not been released for the day."""

    code = "seat_unavailable"


class SeatLockedError(AllocationError):
    code = "seat_locked"


class InvalidTransitionError(AllocationError):
    code = "invalid_transition"


class ConcurrentModificationError(AllocationError):
    """Raised when the stored record changed between read and conditional write."""

    code = "concurrent_modification"
    retryable = True


class SettingsValidationError(AllocationError):
    code = "invalid_settings"
