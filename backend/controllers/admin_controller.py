"""Controller layer for administrator overrides, settings, holidays and directory."""

from __future__ import annotations

import sqlite3
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from backend.controllers.allocation_controller import AllocationResponse
from backend.controllers.dependencies import (
    error_response,
    get_allocation_service,
    get_repository,
    get_settings_service,
    require_admin,
    result_response,
)
from backend.domain.errors import SettingsValidationError
from backend.domain.models import BATCHES, WEEKS, Employee
from backend.repository.data_repository import DataRepository
from backend.services.allocation_service import AllocationService
from backend.services.settings_service import SettingsService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class SeatSettingsPayload(BaseModel):
    regular_seats: int
    floater_seats: int
    floater_start_seat: int
    booking_open_hour: int


class SeatSettingsUpdate(BaseModel):
    regular_seats: Optional[int] = None
    floater_seats: Optional[int] = None
    floater_start_seat: Optional[int] = None
    booking_open_hour: Optional[int] = None


class HolidayRequest(BaseModel):
    holiday_date: date
    name: str = Field(min_length=1)
    is_closed: bool = True


class HolidayResponse(BaseModel):
    id: int
    holiday_date: date
    name: str
    is_closed: bool


class EmployeeResponse(BaseModel):
    employee_id: str
    name: str
    batch: str
    default_seat: Optional[int] = None
    role: str
    is_active: bool

    @classmethod
    def from_domain(cls, employee: Employee) -> "EmployeeResponse":
        return cls(
            employee_id=employee.employee_id,
            name=employee.name,
            batch=employee.batch,
            default_seat=employee.default_seat,
            role=employee.role.value,
            is_active=employee.is_active,
        )


class EmployeeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    batch: Optional[str] = None
    default_seat: Optional[int] = Field(default=None, gt=0)
    role: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("batch")
    @classmethod
    def validate_batch(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in BATCHES:
            raise ValueError(f"batch must be one of: {', '.join(BATCHES)}")
        return value

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in {"employee", "admin"}:
            raise ValueError("role must be 'employee' or 'admin'")
        return value


@router.post("/allocations/{allocation_id}/force-release")
async def force_release(
    allocation_id: int,
    service: AllocationService = Depends(get_allocation_service),
) -> JSONResponse:
    return result_response(service.attempt(service.admin_force_release, allocation_id))


@router.post("/allocations/{allocation_id}/lock")
async def lock_seat(
    allocation_id: int,
    service: AllocationService = Depends(get_allocation_service),
) -> JSONResponse:
    return result_response(service.attempt(service.lock, allocation_id))


@router.post("/allocations/{allocation_id}/unlock")
async def unlock_seat(
    allocation_id: int,
    service: AllocationService = Depends(get_allocation_service),
) -> JSONResponse:
    return result_response(service.attempt(service.unlock, allocation_id))


@router.get("/allocations/{week}", response_model=list[AllocationResponse])
async def week_allocations(
    week: str,
    service: AllocationService = Depends(get_allocation_service),
) -> list[AllocationResponse]:
    if week not in WEEKS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown week")
    return [AllocationResponse.from_domain(item) for item in service.get_week_allocations(week)]


@router.get("/settings", response_model=SeatSettingsPayload)
async def read_settings(
    settings_service: SettingsService = Depends(get_settings_service),
) -> SeatSettingsPayload:
    current = settings_service.get()
    return SeatSettingsPayload(
        regular_seats=current.regular_seats,
        floater_seats=current.floater_seats,
        floater_start_seat=current.floater_start_seat,
        booking_open_hour=current.booking_open_hour,
    )


@router.put("/settings", response_model=SeatSettingsPayload)
async def save_settings(
    payload: SeatSettingsUpdate,
    settings_service: SettingsService = Depends(get_settings_service),
):
    try:
        saved = settings_service.save(**payload.model_dump(exclude_none=True))
    except SettingsValidationError as exc:
        return error_response(exc)
    return SeatSettingsPayload(
        regular_seats=saved.regular_seats,
        floater_seats=saved.floater_seats,
        floater_start_seat=saved.floater_start_seat,
        booking_open_hour=saved.booking_open_hour,
    )


@router.get("/holidays", response_model=list[HolidayResponse])
async def list_holidays(
    repository: DataRepository = Depends(get_repository),
) -> list[HolidayResponse]:
    return [
        HolidayResponse(
            id=holiday.holiday_id,
            holiday_date=holiday.holiday_date,
            name=holiday.name,
            is_closed=holiday.is_closed,
        )
        for holiday in repository.list_holidays()
    ]


@router.post("/holidays", response_model=HolidayResponse, status_code=status.HTTP_201_CREATED)
async def add_holiday(
    payload: HolidayRequest,
    repository: DataRepository = Depends(get_repository),
) -> HolidayResponse:
    holiday_id = repository.add_holiday(payload.holiday_date, payload.name, payload.is_closed)
    logger.info("Holiday %s added for %s", payload.name, payload.holiday_date)
    return HolidayResponse(
        id=holiday_id,
        holiday_date=payload.holiday_date,
        name=payload.name,
        is_closed=payload.is_closed,
    )


@router.delete("/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_holiday(
    holiday_id: int,
    repository: DataRepository = Depends(get_repository),
) -> None:
    if not repository.remove_holiday(holiday_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Holiday not found")


@router.get("/employees", response_model=list[EmployeeResponse])
async def list_employees(
    repository: DataRepository = Depends(get_repository),
) -> list[EmployeeResponse]:
    return [EmployeeResponse.from_domain(item) for item in repository.list_employees()]


@router.patch("/employees/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    repository: DataRepository = Depends(get_repository),
) -> EmployeeResponse:
    changes = {
        key: value
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key == "default_seat"
    }
    try:
        updated = repository.update_employee(employee_id, changes)
    except sqlite3.IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Default seat is already assigned in that batch",
        ) from exc
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return EmployeeResponse.from_domain(updated)
