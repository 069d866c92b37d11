"""Domain models for seat allocation, employees, settings and holidays."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional


BATCHES = ("Batch 1", "Batch 2")
WEEKS = ("Week 1", "Week 2")
DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri")


class AllocationType(str, enum.Enum):
    REGULAR = "regular"
    FLOATER = "floater"
    TEMP_FLOATER = "temp_floater"


class AllocationStatus(str, enum.Enum):
    ALLOCATED = "allocated"
    BOOKED = "booked"
    RELEASED = "released"
    LOCKED = "locked"


class EmployeeRole(str, enum.Enum):
    EMPLOYEE = "employee"
    ADMIN = "admin"


class AllocationState(enum.Enum):
    """The only (status, type) combinations an allocation may take.

    LOCKED carries no fixed type: the record keeps the type it had when it was
    locked, but no other interpretation applies until it is unlocked.
    """

    REGULAR_ALLOCATED = (AllocationStatus.ALLOCATED, AllocationType.REGULAR)
    FLOATER_BOOKED = (AllocationStatus.BOOKED, AllocationType.FLOATER)
    TEMP_FLOATER_RELEASED = (AllocationStatus.RELEASED, AllocationType.TEMP_FLOATER)
    TEMP_FLOATER_BOOKED = (AllocationStatus.BOOKED, AllocationType.TEMP_FLOATER)
    LOCKED = (AllocationStatus.LOCKED, None)

    @property
    def status(self) -> AllocationStatus:
        return self.value[0]

    @classmethod
    def from_pair(
        cls,
        status: AllocationStatus | str,
        allocation_type: AllocationType | str,
    ) -> "AllocationState":
        resolved_status = AllocationStatus(status)
        resolved_type = AllocationType(allocation_type)
        if resolved_status is AllocationStatus.LOCKED:
            return cls.LOCKED
        for state in cls:
            if state.value == (resolved_status, resolved_type):
                return state
        raise ValueError(
            f"Invalid allocation combination: status={resolved_status.value}, "
            f"type={resolved_type.value}"
        )


@dataclass(frozen=True)
class Allocation:
    """One seat on one day of one week.

    Instances are validated on construction, so an illegal (status, type)
    pair or a released seat that still names an occupant cannot exist.
    """

    allocation_id: Optional[int]
    week: str
    day: str
    seat: int
    batch: str
    state: AllocationState
    employee_id: Optional[str] = None
    locked_type: Optional[AllocationType] = None
    version: int = 1

    def __post_init__(self) -> None:
        if self.seat <= 0:
            raise ValueError("seat must be a positive integer")
        if self.state is AllocationState.LOCKED:
            if self.locked_type is None:
                raise ValueError("locked allocation must keep the type it was locked from")
        elif self.locked_type is not None:
            raise ValueError("only locked allocations carry locked_type")

        if self.state is AllocationState.TEMP_FLOATER_RELEASED and self.employee_id:
            raise ValueError("released allocation cannot have an occupant")
        if (
            self.state in (AllocationState.FLOATER_BOOKED, AllocationState.TEMP_FLOATER_BOOKED)
            and not self.employee_id
        ):
            raise ValueError("booked allocation requires an occupant")

    @property
    def status(self) -> AllocationStatus:
        return self.state.status

    @property
    def type(self) -> AllocationType:
        if self.locked_type is not None:
            return self.locked_type
        return self.state.value[1]

    @property
    def is_locked(self) -> bool:
        return self.state is AllocationState.LOCKED

    def held_by(self, employee_id: str) -> bool:
        return self.employee_id is not None and self.employee_id == employee_id

    @classmethod
    def from_record(
        cls,
        *,
        allocation_id: Optional[int],
        week: str,
        day: str,
        seat: int,
        batch: str,
        status: str,
        allocation_type: str,
        employee_id: Optional[str],
        version: int = 1,
    ) -> "Allocation":
        state = AllocationState.from_pair(status, allocation_type)
        return cls(
            allocation_id=allocation_id,
            week=week,
            day=day,
            seat=seat,
            batch=batch,
            state=state,
            employee_id=employee_id,
            locked_type=AllocationType(allocation_type) if state is AllocationState.LOCKED else None,
            version=version,
        )

    # Transitions build the successor value; persistence decides whether it sticks.

    def to_released(self) -> "Allocation":
        return replace(
            self,
            state=AllocationState.TEMP_FLOATER_RELEASED,
            employee_id=None,
            locked_type=None,
        )

    def to_booked(
        self,
        state: AllocationState,
        employee_id: str,
        batch: str,
    ) -> "Allocation":
        return replace(self, state=state, employee_id=employee_id, batch=batch, locked_type=None)

    def to_locked(self) -> "Allocation":
        if self.is_locked:
            return self
        return replace(self, state=AllocationState.LOCKED, locked_type=self.type)

    def to_unlocked(self, employee_id: Optional[str]) -> "Allocation":
        return replace(
            self,
            state=AllocationState.REGULAR_ALLOCATED,
            employee_id=employee_id,
            locked_type=None,
        )

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.allocation_id,
            "week": self.week,
            "day": self.day,
            "seat": self.seat,
            "batch": self.batch,
            "allocated_to_employee_id": self.employee_id,
            "type": self.type.value,
            "status": self.status.value,
            "version": self.version,
        }


@dataclass(frozen=True)
class Employee:
    employee_id: str
    name: str
    batch: str
    default_seat: Optional[int] = None
    role: EmployeeRole = EmployeeRole.EMPLOYEE
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role is EmployeeRole.ADMIN


@dataclass(frozen=True)
class SeatSettings:
    """Singleton seat layout and booking window configuration."""

    regular_seats: int = 40
    floater_seats: int = 10
    floater_start_seat: int = 41
    booking_open_hour: int = 15

    @property
    def floater_end_seat(self) -> int:
        return self.floater_start_seat + self.floater_seats - 1


@dataclass(frozen=True)
class Holiday:
    holiday_id: Optional[int]
    holiday_date: date
    name: str
    is_closed: bool = True


@dataclass(frozen=True)
class BookingDecision:
    allowed: bool
    reason: Optional[str] = None
    code: Optional[str] = None


@dataclass
class DaySummary:
    regular_allocated: int = 0
    floater_booked: int = 0
    temp_available: int = 0
    temp_booked: int = 0
    released_count: int = 0
    locked: int = 0
    seats: list[dict[str, object]] = field(default_factory=list)

    def counters(self) -> dict[str, int]:
        return {
            "regular_allocated": self.regular_allocated,
            "floater_booked": self.floater_booked,
            "temp_available": self.temp_available,
            "temp_booked": self.temp_booked,
            "released_count": self.released_count,
            "locked": self.locked,
        }


@dataclass(frozen=True)
class WeekSummary:
    week: str
    totals: dict[str, int]
    by_day: dict[str, DaySummary]
