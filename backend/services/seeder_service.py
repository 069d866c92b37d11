"""Materializes regular-seat allocations from each employee's default seat."""

from __future__ import annotations

from dataclasses import dataclass

from backend.domain.errors import ConcurrentModificationError
from backend.domain.models import BATCHES
from backend.domain.rules import working_days
from backend.repository.data_repository import DataRepository
from backend.services.allocation_service import AllocationService
from backend.utils.logger import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class SeedReport:
    batch: str
    week: str
    working_days: tuple[str, ...]
    created: int
    existing: int
    skipped_no_seat: int


class AutoAllocationSeeder:
    """Safe to run on every week or batch switch; existing records are never touched."""

    def __init__(
        self,
        repository: DataRepository,
        allocation_service: AllocationService,
    ) -> None:
        self._repository = repository
        self._allocation_service = allocation_service

    def ensure_week(self, batch: str, week: str) -> SeedReport:
        days = working_days(batch, week)
        if not days:
            return SeedReport(batch, week, days, created=0, existing=0, skipped_no_seat=0)

        employees = self._repository.list_employees(batch=batch, active_only=True)
        seated = [
            (employee.employee_id, employee.default_seat)
            for employee in employees
            if employee.default_seat
        ]
        skipped = len(employees) - len(seated)

        created = 0
        existing = 0
        for day in days:
            for employee_id, default_seat in seated:
                try:
                    _, was_created = self._allocation_service.seed_regular(
                        employee_id,
                        default_seat,
                        batch,
                        week,
                        day,
                    )
                except ConcurrentModificationError:
                    # Another seeder inserted the same key first.
                    was_created = False
                if was_created:
                    created += 1
                else:
                    existing += 1

        logger.info(
            "Seeded %s/%s: %s created, %s already present, %s without default seat",
            batch,
            week,
            created,
            existing,
            skipped,
        )
        return SeedReport(
            batch=batch,
            week=week,
            working_days=days,
            created=created,
            existing=existing,
            skipped_no_seat=skipped,
        )

    def ensure_all(self, week: str) -> list[SeedReport]:
        return [self.ensure_week(batch, week) for batch in BATCHES]
