"""Seat allocation state machine: seeding, release, booking and admin overrides.

Every transition follows the same shape: read the record for the key, decide
the successor state from what was observed, then write it with a conditional
update keyed on the observed version. A write that matches nothing means
someone else changed the seat in between, and the caller gets
`ConcurrentModificationError` instead of a silently clobbered record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from backend.domain.errors import (
    AllocationError,
    ConcurrentModificationError,
    InvalidTransitionError,
    NoSeatSelectedError,
    NotFoundError,
    OwnershipError,
    SeatLockedError,
    SeatTakenError,
    SeatUnavailableError,
)
from backend.domain.models import Allocation, AllocationState, BookingDecision
from backend.domain.rules import is_floater_seat
from backend.repository.data_repository import DataRepository
from backend.services.booking_gate import BookingGate
from backend.services.settings_service import SettingsService
from backend.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an engine call as seen by UI-facing code."""

    ok: bool
    allocation: Optional[Allocation] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    retryable: bool = False

    def as_dict(self) -> dict[str, Any]:
        if self.ok:
            return {
                "ok": True,
                "allocation": self.allocation.as_dict() if self.allocation else None,
            }
        return {
            "ok": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "retryable": self.retryable,
            },
        }


class AllocationService:
    def __init__(
        self,
        repository: DataRepository,
        settings_service: SettingsService,
        booking_gate: BookingGate,
    ) -> None:
        self._repository = repository
        self._settings_service = settings_service
        self._gate = booking_gate

    def _commit(self, observed: Allocation, updated: Allocation) -> Allocation:
        stored = self._repository.update_allocation_if_version(updated, observed.version)
        if stored is None:
            logger.warning(
                "Conditional write rejected for allocation %s (expected version %s)",
                observed.allocation_id,
                observed.version,
            )
            raise ConcurrentModificationError(
                "Seat was changed by someone else. Refresh and try again."
            )
        logger.info(
            "Allocation %s %s/%s/seat %s: %s -> %s",
            stored.allocation_id,
            stored.week,
            stored.day,
            stored.seat,
            observed.state.name,
            stored.state.name,
        )
        return stored

    def _insert(self, allocation: Allocation) -> Allocation:
        stored = self._repository.insert_allocation(allocation)
        if stored is None:
            raise ConcurrentModificationError(
                "Seat was allocated by someone else. Refresh and try again."
            )
        logger.info(
            "Allocation %s %s/%s/seat %s created as %s",
            stored.allocation_id,
            stored.week,
            stored.day,
            stored.seat,
            stored.state.name,
        )
        return stored

    def _require_by_id(self, allocation_id: int) -> Allocation:
        allocation = self._repository.get_allocation_by_id(allocation_id)
        if allocation is None:
            raise NotFoundError(f"Allocation {allocation_id} not found")
        return allocation

    def seed_regular(
        self,
        employee_id: str,
        seat: int,
        batch: str,
        week: str,
        day: str,
    ) -> tuple[Allocation, bool]:
        """Create the owner's regular allocation unless the key already has a record.

        An existing record is returned untouched whatever its state, so a
        seat released as a temp floater is never reclaimed by re-seeding.
        """
        existing = self._repository.get_allocation(week, day, seat)
        if existing is not None:
            return existing, False
        candidate = Allocation(
            allocation_id=None,
            week=week,
            day=day,
            seat=seat,
            batch=batch,
            state=AllocationState.REGULAR_ALLOCATED,
            employee_id=employee_id,
        )
        return self._insert(candidate), True

    def release(self, week: str, day: str, seat: int, employee_id: str) -> Allocation:
        existing = self._repository.get_allocation(week, day, seat)
        if existing is None:
            raise NotFoundError("No allocation found for this seat and employee.")
        if not existing.held_by(employee_id):
            raise OwnershipError("This seat is not held by you.")
        if existing.is_locked:
            raise SeatLockedError("This seat is locked by an administrator.")
        return self._commit(existing, existing.to_released())

    def book(
        self,
        week: str,
        day: str,
        seat: Optional[int],
        working_batch: str,
        employee_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> Allocation:
        seat_settings = self._settings_service.get()
        self._gate.check_booking(
            week,
            day,
            working_batch,
            seat,
            now=now,
            seat_settings=seat_settings,
        )
        if seat is None:
            raise NoSeatSelectedError("Please select a seat")

        employee = self._repository.get_employee(employee_id)
        if employee is None or not employee.is_active:
            raise NotFoundError(f"Employee {employee_id} not found")
        if seat < 1 or seat > seat_settings.floater_end_seat:
            raise SeatUnavailableError(f"Seat {seat} does not exist.")

        existing = self._repository.get_allocation(week, day, seat)
        if existing is not None and existing.is_locked:
            raise SeatLockedError("This seat is locked by an administrator.")

        if is_floater_seat(seat, seat_settings):
            if existing is None:
                return self._insert(
                    Allocation(
                        allocation_id=None,
                        week=week,
                        day=day,
                        seat=seat,
                        batch=working_batch,
                        state=AllocationState.FLOATER_BOOKED,
                        employee_id=employee_id,
                    )
                )
            if existing.employee_id is not None:
                raise SeatTakenError("This floater seat is already booked.")
            return self._commit(
                existing,
                existing.to_booked(AllocationState.FLOATER_BOOKED, employee_id, working_batch),
            )

        if existing is None or existing.state is not AllocationState.TEMP_FLOATER_RELEASED:
            raise SeatUnavailableError("This temporary floater seat is not available.")
        return self._commit(
            existing,
            existing.to_booked(AllocationState.TEMP_FLOATER_BOOKED, employee_id, working_batch),
        )

    def admin_force_release(self, allocation_id: int) -> Allocation:
        existing = self._require_by_id(allocation_id)
        if existing.is_locked:
            raise SeatLockedError("Unlock the seat before releasing it.")
        if existing.state is AllocationState.TEMP_FLOATER_RELEASED:
            return existing
        logger.info(
            "Admin force-release of allocation %s held by %s",
            allocation_id,
            existing.employee_id,
        )
        return self._commit(existing, existing.to_released())

    def lock(self, allocation_id: int) -> Allocation:
        existing = self._require_by_id(allocation_id)
        if existing.is_locked:
            return existing
        return self._commit(existing, existing.to_locked())

    def unlock(self, allocation_id: int) -> Allocation:
        existing = self._require_by_id(allocation_id)
        if not existing.is_locked:
            raise InvalidTransitionError(f"Allocation {allocation_id} is not locked")

        occupant = existing.employee_id
        if occupant is None:
            owner = self._repository.find_default_seat_owner(existing.batch, existing.seat)
            occupant = owner.employee_id if owner is not None else None
        return self._commit(existing, existing.to_unlocked(occupant))

    def validate_booking(
        self,
        week: str,
        day: str,
        working_batch: str,
        seat: Optional[int],
        *,
        now: Optional[datetime] = None,
    ) -> BookingDecision:
        return self._gate.validate_booking(week, day, working_batch, seat, now=now)

    def get_day_allocations(self, week: str, day: str) -> list[Allocation]:
        return self._repository.list_allocations_for_day(week, day)

    def get_week_allocations(self, week: str) -> list[Allocation]:
        return self._repository.list_allocations_for_week(week)

    def get_employee_allocations(self, employee_id: str) -> list[Allocation]:
        return self._repository.list_allocations_for_employee(employee_id)

    def attempt(self, operation: Callable[..., Allocation], *args: Any, **kwargs: Any) -> OperationResult:
        """Run a state-machine call and fold business-rule failures into a result.

        Storage failures are not `AllocationError`s and propagate unchanged.
        """
        try:
            allocation = operation(*args, **kwargs)
        except NotFoundError as exc:
            logger.warning("%s rejected: %s", operation.__name__, exc)
            return OperationResult(ok=False, error_code=exc.code, message=str(exc))
        except AllocationError as exc:
            logger.info("%s rejected (%s): %s", operation.__name__, exc.code, exc)
            return OperationResult(
                ok=False,
                error_code=exc.code,
                message=str(exc),
                retryable=exc.retryable,
            )
        return OperationResult(ok=True, allocation=allocation)
