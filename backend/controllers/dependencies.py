"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from backend.domain.errors import (
    AllocationError,
    BookingWindowClosedError,
    HolidayError,
    NoSeatSelectedError,
    NotFoundError,
    OwnershipError,
    ScheduleMismatchError,
    SettingsValidationError,
)
from backend.domain.models import Employee
from backend.repository.data_repository import DataRepository
from backend.services.allocation_service import AllocationService, OperationResult
from backend.services.seeder_service import AutoAllocationSeeder
from backend.services.settings_service import SettingsService
from backend.services.summary_service import SummaryService
from backend.utils.config import get_settings


def _state_service(request: Request, name: str, label: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} is not initialized",
        )
    return service


def get_repository(request: Request) -> DataRepository:
    return _state_service(request, "repository", "Repository")


def get_allocation_service(request: Request) -> AllocationService:
    return _state_service(request, "allocation_service", "Allocation service")


def get_settings_service(request: Request) -> SettingsService:
    return _state_service(request, "settings_service", "Settings service")


def get_seeder(request: Request) -> AutoAllocationSeeder:
    return _state_service(request, "seeder", "Seeder")


def get_summary_service(request: Request) -> SummaryService:
    return _state_service(request, "summary_service", "Summary service")


async def current_employee(
    request: Request,
    repository: DataRepository = Depends(get_repository),
) -> Employee:
    """Resolve the already-authenticated employee named in the identity header."""
    header_name = get_settings().employee_header
    employee_id = request.headers.get(header_name)
    if not employee_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{header_name} header is required",
        )
    employee = repository.get_employee(employee_id)
    if employee is None or not employee.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive employee",
        )
    return employee


async def require_admin(employee: Employee = Depends(current_employee)) -> Employee:
    if not employee.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized",
        )
    return employee


_STATUS_BY_CODE = {
    BookingWindowClosedError.code: status.HTTP_400_BAD_REQUEST,
    HolidayError.code: status.HTTP_400_BAD_REQUEST,
    ScheduleMismatchError.code: status.HTTP_400_BAD_REQUEST,
    NoSeatSelectedError.code: status.HTTP_400_BAD_REQUEST,
    SettingsValidationError.code: status.HTTP_400_BAD_REQUEST,
    OwnershipError.code: status.HTTP_403_FORBIDDEN,
    NotFoundError.code: status.HTTP_404_NOT_FOUND,
}


def status_for_error(code: str | None) -> int:
    """Business-rule failures map to 4xx; seat conflicts default to 409."""
    return _STATUS_BY_CODE.get(code or "", status.HTTP_409_CONFLICT)


def result_response(result: OperationResult) -> JSONResponse:
    if result.ok:
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.as_dict())
    return JSONResponse(status_code=status_for_error(result.error_code), content=result.as_dict())


def error_response(exc: AllocationError) -> JSONResponse:
    return result_response(
        OperationResult(
            ok=False,
            error_code=exc.code,
            message=str(exc),
            retryable=exc.retryable,
        )
    )
