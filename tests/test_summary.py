from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime

from backend.domain.models import Allocation, AllocationState
from backend.repository.data_repository import DataRepository
from backend.services.allocation_service import AllocationService
from backend.services.booking_gate import BookingGate
from backend.services.seeder_service import AutoAllocationSeeder
from backend.services.settings_service import SettingsService
from backend.services.summary_service import SummaryService, summarize_week
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    base = get_settings()
    return replace(base, database_path=tmp_path / filename, seed_demo_data=False)


def _allocation(day: str, seat: int, state: AllocationState, employee_id=None) -> Allocation:
    return Allocation(
        allocation_id=seat,
        week="Week 1",
        day=day,
        seat=seat,
        batch="Batch 1",
        state=state,
        employee_id=employee_id,
    )


def test_counts_each_state_per_day_and_in_totals():
    allocations = [
        _allocation("Mon", 1, AllocationState.REGULAR_ALLOCATED, "E001"),
        _allocation("Mon", 2, AllocationState.TEMP_FLOATER_RELEASED),
        _allocation("Mon", 3, AllocationState.TEMP_FLOATER_BOOKED, "E103"),
        _allocation("Tue", 41, AllocationState.FLOATER_BOOKED, "E102"),
        _allocation("Tue", 4, AllocationState.REGULAR_ALLOCATED, "E004").to_locked(),
    ]

    summary = summarize_week("Week 1", allocations)

    monday = summary.by_day["Mon"].counters()
    assert monday["regular_allocated"] == 1
    assert monday["temp_available"] == 1
    assert monday["released_count"] == 1
    assert monday["temp_booked"] == 1
    assert summary.by_day["Tue"].floater_booked == 1
    assert summary.by_day["Tue"].locked == 1
    assert summary.totals == {
        "regular_allocated": 1,
        "floater_booked": 1,
        "temp_available": 1,
        "temp_booked": 1,
        "released_count": 1,
        "locked": 1,
    }
    assert [seat["seat"] for seat in summary.by_day["Mon"].seats] == [1, 2, 3]


def test_iteration_order_does_not_change_output():
    allocations = [
        _allocation(day, seat, AllocationState.REGULAR_ALLOCATED, f"E{seat:03d}")
        for day in ("Mon", "Tue", "Wed")
        for seat in range(1, 6)
    ]
    shuffled = list(allocations)
    random.Random(7).shuffle(shuffled)

    assert summarize_week("Week 1", allocations) == summarize_week("Week 1", shuffled)


def test_summary_reads_current_store_state(tmp_path):
    settings = _build_test_settings(tmp_path, "summary.db")
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_data()
    settings_service = SettingsService(repository=repository, settings=settings)
    service = AllocationService(
        repository=repository,
        settings_service=settings_service,
        booking_gate=BookingGate(
            repository=repository,
            settings_service=settings_service,
            clock=lambda: datetime(2026, 3, 2, 16, 0),
        ),
    )
    AutoAllocationSeeder(repository=repository, allocation_service=service).ensure_week(
        "Batch 1", "Week 1"
    )
    service.release("Week 1", "Mon", 5, "E005")
    service.book("Week 1", "Mon", 5, "Batch 1", "E105")
    service.release("Week 1", "Tue", 1, "E001")
    service.book("Week 1", "Mon", 48, "Batch 1", "E104")

    summary = SummaryService(repository).week_summary("Week 1")

    assert summary.totals["regular_allocated"] == 13
    assert summary.totals["temp_booked"] == 1
    assert summary.totals["temp_available"] == 1
    assert summary.totals["floater_booked"] == 1
    assert summary.by_day["Thu"].counters() == {
        "regular_allocated": 0,
        "floater_booked": 0,
        "temp_available": 0,
        "temp_booked": 0,
        "released_count": 0,
        "locked": 0,
    }
