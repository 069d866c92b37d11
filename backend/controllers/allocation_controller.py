"""HTTP controller layer for employee booking, release and week views."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import (
    current_employee,
    get_allocation_service,
    get_seeder,
    get_settings_service,
    get_summary_service,
    result_response,
)
from backend.domain.models import BATCHES, DAYS, WEEKS, Allocation, Employee
from backend.domain.rules import allowed_seat_range, requires_floater, working_days
from backend.services.allocation_service import AllocationService
from backend.services.seeder_service import AutoAllocationSeeder
from backend.services.settings_service import SettingsService
from backend.services.summary_service import SummaryService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["allocations"])


def _check_choice(value: str, choices: tuple[str, ...], label: str) -> str:
    if value not in choices:
        raise ValueError(f"{label} must be one of: {', '.join(choices)}")
    return value


class SlotRequest(BaseModel):
    week: str
    day: str

    @field_validator("week")
    @classmethod
    def validate_week(cls, value: str) -> str:
        return _check_choice(value, WEEKS, "week")

    @field_validator("day")
    @classmethod
    def validate_day(cls, value: str) -> str:
        return _check_choice(value, DAYS, "day")


class BookingRequest(SlotRequest):
    working_batch: str
    seat: Optional[int] = Field(default=None, gt=0)

    @field_validator("working_batch")
    @classmethod
    def validate_working_batch(cls, value: str) -> str:
        return _check_choice(value, BATCHES, "working_batch")


class ReleaseRequest(SlotRequest):
    seat: int = Field(gt=0)


class SeedRequest(BaseModel):
    batch: str
    week: str

    @field_validator("batch")
    @classmethod
    def validate_batch(cls, value: str) -> str:
        return _check_choice(value, BATCHES, "batch")

    @field_validator("week")
    @classmethod
    def validate_week(cls, value: str) -> str:
        return _check_choice(value, WEEKS, "week")


class BookingDecisionResponse(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    code: Optional[str] = None


class AllocationResponse(BaseModel):
    id: int
    week: str
    day: str
    seat: int = Field(gt=0)
    batch: str
    allocated_to_employee_id: Optional[str] = None
    type: str
    status: str
    version: int = Field(ge=1)

    @classmethod
    def from_domain(cls, allocation: Allocation) -> "AllocationResponse":
        return cls(**allocation.as_dict())


class SeedResponse(BaseModel):
    batch: str
    week: str
    working_days: list[str]
    created: int = Field(ge=0)
    existing: int = Field(ge=0)
    skipped_no_seat: int = Field(ge=0)


class ScheduleResponse(BaseModel):
    batch: str
    week: str
    working_days: list[str]
    requires_floater: bool
    allowed_seats: list[int]


class DaySummaryResponse(BaseModel):
    regular_allocated: int = Field(ge=0)
    floater_booked: int = Field(ge=0)
    temp_available: int = Field(ge=0)
    temp_booked: int = Field(ge=0)
    released_count: int = Field(ge=0)
    locked: int = Field(ge=0)
    seats: list[dict[str, object]]


class WeekSummaryResponse(BaseModel):
    week: str
    totals: dict[str, int]
    by_day: dict[str, DaySummaryResponse]


def _internal_error(action: str, exc: Exception) -> HTTPException:
    logger.exception("Unexpected failure while trying to %s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


@router.post(
    "/bookings/validate",
    response_model=BookingDecisionResponse,
    status_code=status.HTTP_200_OK,
)
async def validate_booking(
    payload: BookingRequest,
    service: AllocationService = Depends(get_allocation_service),
    _: Employee = Depends(current_employee),
) -> BookingDecisionResponse:
    """Dry-run the booking pipeline so the seat grid can preview feasibility."""
    decision = service.validate_booking(
        payload.week,
        payload.day,
        payload.working_batch,
        payload.seat,
    )
    return BookingDecisionResponse(
        allowed=decision.allowed,
        reason=decision.reason,
        code=decision.code,
    )


@router.post("/bookings")
async def book_seat(
    payload: BookingRequest,
    service: AllocationService = Depends(get_allocation_service),
    employee: Employee = Depends(current_employee),
) -> JSONResponse:
    try:
        result = service.attempt(
            service.book,
            payload.week,
            payload.day,
            payload.seat,
            payload.working_batch,
            employee.employee_id,
        )
    except Exception as exc:
        raise _internal_error("book seat", exc) from exc
    return result_response(result)


@router.post("/releases")
async def release_seat(
    payload: ReleaseRequest,
    service: AllocationService = Depends(get_allocation_service),
    employee: Employee = Depends(current_employee),
) -> JSONResponse:
    try:
        result = service.attempt(
            service.release,
            payload.week,
            payload.day,
            payload.seat,
            employee.employee_id,
        )
    except Exception as exc:
        raise _internal_error("release seat", exc) from exc
    return result_response(result)


@router.get("/allocations/{week}/{day}", response_model=list[AllocationResponse])
async def day_allocations(
    week: str,
    day: str,
    service: AllocationService = Depends(get_allocation_service),
    _: Employee = Depends(current_employee),
) -> list[AllocationResponse]:
    if week not in WEEKS or day not in DAYS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown week or day")
    return [AllocationResponse.from_domain(item) for item in service.get_day_allocations(week, day)]


@router.get("/me/allocations", response_model=list[AllocationResponse])
async def my_allocations(
    service: AllocationService = Depends(get_allocation_service),
    employee: Employee = Depends(current_employee),
) -> list[AllocationResponse]:
    return [
        AllocationResponse.from_domain(item)
        for item in service.get_employee_allocations(employee.employee_id)
    ]


@router.post("/seed", response_model=SeedResponse)
async def seed_week(
    payload: SeedRequest,
    seeder: AutoAllocationSeeder = Depends(get_seeder),
    _: Employee = Depends(current_employee),
) -> SeedResponse:
    """Materialize regular allocations; called on every week or batch switch."""
    try:
        report = seeder.ensure_week(payload.batch, payload.week)
    except Exception as exc:
        raise _internal_error("seed allocations", exc) from exc
    return SeedResponse(
        batch=report.batch,
        week=report.week,
        working_days=list(report.working_days),
        created=report.created,
        existing=report.existing,
        skipped_no_seat=report.skipped_no_seat,
    )


@router.get("/schedule/{batch}/{week}", response_model=ScheduleResponse)
async def schedule(
    batch: str,
    week: str,
    settings_service: SettingsService = Depends(get_settings_service),
    employee: Employee = Depends(current_employee),
) -> ScheduleResponse:
    needs_floater = requires_floater(employee.batch, batch)
    return ScheduleResponse(
        batch=batch,
        week=week,
        working_days=list(working_days(batch, week)),
        requires_floater=needs_floater,
        allowed_seats=list(allowed_seat_range(needs_floater, settings_service.get())),
    )


@router.get("/weeks/{week}/summary", response_model=WeekSummaryResponse)
async def week_summary(
    week: str,
    service: SummaryService = Depends(get_summary_service),
    _: Employee = Depends(current_employee),
) -> WeekSummaryResponse:
    if week not in WEEKS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown week")
    summary = service.week_summary(week)
    return WeekSummaryResponse(
        week=summary.week,
        totals=summary.totals,
        by_day={
            day: DaySummaryResponse(**day_summary.counters(), seats=day_summary.seats)
            for day, day_summary in summary.by_day.items()
        },
    )


@router.get("/health")
async def health(
    service: AllocationService = Depends(get_allocation_service),
) -> dict[str, object]:
    try:
        service.get_week_allocations(WEEKS[0])
    except Exception as exc:
        logger.error("Health check failed: %s", exc)
        return {"status": "unhealthy", "database": "disconnected"}
    return {"status": "healthy", "database": "connected"}
