from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from backend.domain.errors import (
    BookingWindowClosedError,
    ConcurrentModificationError,
    InvalidTransitionError,
    NoSeatSelectedError,
    NotFoundError,
    OwnershipError,
    SeatLockedError,
    SeatTakenError,
    SeatUnavailableError,
)
from backend.domain.models import Allocation, AllocationState
from backend.repository.data_repository import DataRepository
from backend.services.allocation_service import AllocationService
from backend.services.booking_gate import BookingGate
from backend.services.seeder_service import AutoAllocationSeeder
from backend.services.settings_service import SettingsService
from backend.utils.config import get_settings


AFTERNOON = datetime(2026, 3, 2, 16, 0)


def _build_test_settings(tmp_path, filename: str):
    base = get_settings()
    return replace(base, database_path=tmp_path / filename, seed_demo_data=False)


def _build_service(tmp_path, filename: str) -> tuple[DataRepository, AllocationService]:
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_data()
    settings_service = SettingsService(repository=repository, settings=settings)
    gate = BookingGate(
        repository=repository,
        settings_service=settings_service,
        clock=lambda: AFTERNOON,
    )
    service = AllocationService(
        repository=repository,
        settings_service=settings_service,
        booking_gate=gate,
    )
    return repository, service


def test_release_then_cross_batch_booking_survives_reseeding(tmp_path):
    repository, service = _build_service(tmp_path, "scenario.db")
    seeder = AutoAllocationSeeder(repository=repository, allocation_service=service)
    seeder.ensure_week("Batch 1", "Week 1")

    seeded = repository.get_allocation("Week 1", "Mon", 5)
    assert seeded is not None
    assert seeded.state is AllocationState.REGULAR_ALLOCATED
    assert seeded.employee_id == "E005"

    released = service.release("Week 1", "Mon", 5, "E005")
    assert released.state is AllocationState.TEMP_FLOATER_RELEASED
    assert released.employee_id is None

    booked = service.book("Week 1", "Mon", 5, "Batch 1", "E105")
    assert booked.state is AllocationState.TEMP_FLOATER_BOOKED
    assert booked.employee_id == "E105"
    assert booked.batch == "Batch 1"

    report = seeder.ensure_week("Batch 1", "Week 1")
    assert report.created == 0

    after = repository.get_allocation("Week 1", "Mon", 5)
    assert after == booked


def test_booking_a_never_released_regular_seat_fails(tmp_path):
    repository, service = _build_service(tmp_path, "not_released.db")
    service.seed_regular("E003", 3, "Batch 1", "Week 1", "Mon")

    with pytest.raises(SeatUnavailableError):
        service.book("Week 1", "Mon", 3, "Batch 1", "E104")
    with pytest.raises(SeatUnavailableError):
        service.book("Week 1", "Mon", 20, "Batch 1", "E104")

    assert repository.get_allocation("Week 1", "Mon", 3).employee_id == "E003"
    assert repository.get_allocation("Week 1", "Mon", 20) is None


def test_release_requires_existing_record_and_ownership(tmp_path):
    _, service = _build_service(tmp_path, "ownership.db")
    service.seed_regular("E002", 2, "Batch 1", "Week 1", "Tue")

    with pytest.raises(NotFoundError):
        service.release("Week 1", "Wed", 2, "E002")
    with pytest.raises(OwnershipError):
        service.release("Week 1", "Tue", 2, "E003")


def test_floater_seat_is_inserted_then_taken(tmp_path):
    repository, service = _build_service(tmp_path, "floater.db")

    first = service.book("Week 1", "Thu", 45, "Batch 2", "E002")
    assert first.state is AllocationState.FLOATER_BOOKED
    assert first.employee_id == "E002"

    with pytest.raises(SeatTakenError):
        service.book("Week 1", "Thu", 45, "Batch 2", "E003")
    assert repository.get_allocation("Week 1", "Thu", 45).employee_id == "E002"


def test_released_floater_seat_can_be_rebooked(tmp_path):
    _, service = _build_service(tmp_path, "floater_rebook.db")
    service.book("Week 1", "Thu", 42, "Batch 2", "E002")
    service.release("Week 1", "Thu", 42, "E002")

    rebooked = service.book("Week 1", "Thu", 42, "Batch 2", "E003")
    assert rebooked.state is AllocationState.FLOATER_BOOKED
    assert rebooked.employee_id == "E003"


def test_booking_outside_window_writes_nothing(tmp_path):
    repository, service = _build_service(tmp_path, "window.db")

    with pytest.raises(BookingWindowClosedError):
        service.book(
            "Week 1",
            "Thu",
            45,
            "Batch 2",
            "E002",
            now=datetime(2026, 3, 2, 10, 0),
        )
    assert repository.count_allocations() == 0


def test_booking_by_unknown_employee_fails(tmp_path):
    _, service = _build_service(tmp_path, "unknown.db")
    with pytest.raises(NotFoundError):
        service.book("Week 1", "Thu", 45, "Batch 2", "NOPE")


def test_seat_beyond_layout_is_unavailable(tmp_path):
    _, service = _build_service(tmp_path, "beyond.db")
    with pytest.raises(SeatUnavailableError):
        service.book("Week 1", "Thu", 51, "Batch 2", "E002")


def test_admin_force_release_discards_occupant(tmp_path):
    _, service = _build_service(tmp_path, "force.db")
    booked = service.book("Week 1", "Thu", 47, "Batch 2", "E002")

    released = service.admin_force_release(booked.allocation_id)
    assert released.state is AllocationState.TEMP_FLOATER_RELEASED
    assert released.employee_id is None

    again = service.admin_force_release(booked.allocation_id)
    assert again == released


def test_force_release_unknown_or_locked(tmp_path):
    _, service = _build_service(tmp_path, "force_locked.db")
    with pytest.raises(NotFoundError):
        service.admin_force_release(999)

    seeded, _ = service.seed_regular("E001", 1, "Batch 1", "Week 1", "Mon")
    service.lock(seeded.allocation_id)
    with pytest.raises(SeatLockedError):
        service.admin_force_release(seeded.allocation_id)


def test_locked_regular_seat_blocks_release_and_booking_until_unlocked(tmp_path):
    _, service = _build_service(tmp_path, "lock_regular.db")
    seeded, _ = service.seed_regular("E005", 5, "Batch 1", "Week 1", "Mon")

    locked = service.lock(seeded.allocation_id)
    assert locked.is_locked
    assert service.lock(seeded.allocation_id) == locked

    with pytest.raises(SeatLockedError):
        service.release("Week 1", "Mon", 5, "E005")
    with pytest.raises(SeatLockedError):
        service.book("Week 1", "Mon", 5, "Batch 1", "E105")

    unlocked = service.unlock(seeded.allocation_id)
    assert unlocked.state is AllocationState.REGULAR_ALLOCATED
    assert unlocked.employee_id == "E005"

    service.release("Week 1", "Mon", 5, "E005")
    booked = service.book("Week 1", "Mon", 5, "Batch 1", "E105")
    assert booked.state is AllocationState.TEMP_FLOATER_BOOKED


def test_unlock_keeps_floater_booker(tmp_path):
    _, service = _build_service(tmp_path, "lock_floater.db")
    booked = service.book("Week 1", "Thu", 43, "Batch 2", "E002")
    service.lock(booked.allocation_id)

    with pytest.raises(SeatLockedError):
        service.book("Week 1", "Thu", 43, "Batch 2", "E003")

    unlocked = service.unlock(booked.allocation_id)
    assert unlocked.state is AllocationState.REGULAR_ALLOCATED
    assert unlocked.employee_id == "E002"

    with pytest.raises(SeatTakenError):
        service.book("Week 1", "Thu", 43, "Batch 2", "E003")

    service.release("Week 1", "Thu", 43, "E002")
    rebooked = service.book("Week 1", "Thu", 43, "Batch 2", "E003")
    assert rebooked.state is AllocationState.FLOATER_BOOKED
    assert rebooked.employee_id == "E003"


def test_unlock_keeps_temporary_booker_over_default_owner(tmp_path):
    _, service = _build_service(tmp_path, "lock_temp.db")
    service.seed_regular("E005", 5, "Batch 1", "Week 1", "Mon")
    service.release("Week 1", "Mon", 5, "E005")
    booked = service.book("Week 1", "Mon", 5, "Batch 1", "E105")
    service.lock(booked.allocation_id)

    unlocked = service.unlock(booked.allocation_id)

    assert unlocked.state is AllocationState.REGULAR_ALLOCATED
    assert unlocked.employee_id == "E105"


def test_unlock_of_vacant_seat_restores_default_owner_or_stays_empty(tmp_path):
    _, service = _build_service(tmp_path, "lock_vacant.db")
    service.seed_regular("E004", 4, "Batch 1", "Week 1", "Tue")
    regular = service.release("Week 1", "Tue", 4, "E004")
    floater = service.book("Week 1", "Thu", 46, "Batch 2", "E002")
    floater = service.release("Week 1", "Thu", 46, "E002")

    service.lock(regular.allocation_id)
    service.lock(floater.allocation_id)

    assert service.unlock(regular.allocation_id).employee_id == "E004"
    vacant = service.unlock(floater.allocation_id)
    assert vacant.employee_id is None

    rebooked = service.book("Week 1", "Thu", 46, "Batch 2", "E003")
    assert rebooked.state is AllocationState.FLOATER_BOOKED
    assert rebooked.employee_id == "E003"


def test_unlock_requires_locked_record(tmp_path):
    _, service = _build_service(tmp_path, "unlock.db")
    seeded, _ = service.seed_regular("E004", 4, "Batch 1", "Week 1", "Wed")
    with pytest.raises(InvalidTransitionError):
        service.unlock(seeded.allocation_id)


def test_seed_regular_is_idempotent_and_leaves_released_seats(tmp_path):
    repository, service = _build_service(tmp_path, "seed_once.db")
    first, created = service.seed_regular("E005", 5, "Batch 1", "Week 1", "Tue")
    second, created_again = service.seed_regular("E005", 5, "Batch 1", "Week 1", "Tue")
    assert created is True
    assert created_again is False
    assert first == second

    service.release("Week 1", "Tue", 5, "E005")
    kept, created_third = service.seed_regular("E005", 5, "Batch 1", "Week 1", "Tue")
    assert created_third is False
    assert kept.state is AllocationState.TEMP_FLOATER_RELEASED
    assert repository.count_allocations() == 1


def test_stale_write_loses_to_concurrent_booking(tmp_path, monkeypatch):
    repository, service = _build_service(tmp_path, "race.db")
    service.seed_regular("E005", 5, "Batch 1", "Week 1", "Mon")
    service.release("Week 1", "Mon", 5, "E005")
    stale = repository.get_allocation("Week 1", "Mon", 5)

    winner = service.book("Week 1", "Mon", 5, "Batch 1", "E105")

    monkeypatch.setattr(repository, "get_allocation", lambda week, day, seat: stale)
    with pytest.raises(ConcurrentModificationError) as excinfo:
        service.book("Week 1", "Mon", 5, "Batch 1", "E104")
    assert excinfo.value.retryable is True

    monkeypatch.undo()
    assert repository.get_allocation("Week 1", "Mon", 5) == winner


def test_conditional_update_rejects_stale_version(tmp_path):
    repository, service = _build_service(tmp_path, "cas.db")
    seeded, _ = service.seed_regular("E002", 2, "Batch 1", "Week 1", "Mon")
    service.release("Week 1", "Mon", 2, "E002")

    assert repository.update_allocation_if_version(seeded.to_locked(), seeded.version) is None
    current = repository.get_allocation("Week 1", "Mon", 2)
    assert current.state is AllocationState.TEMP_FLOATER_RELEASED
    assert current.version == seeded.version + 1


def test_duplicate_key_insert_is_refused(tmp_path):
    repository, _ = _build_service(tmp_path, "unique.db")
    allocation = Allocation(
        allocation_id=None,
        week="Week 2",
        day="Fri",
        seat=41,
        batch="Batch 1",
        state=AllocationState.FLOATER_BOOKED,
        employee_id="E101",
    )
    assert repository.insert_allocation(allocation) is not None
    assert repository.insert_allocation(allocation) is None
    assert repository.count_allocations() == 1


def test_attempt_folds_business_failures_into_results(tmp_path):
    _, service = _build_service(tmp_path, "attempt.db")

    failed = service.attempt(service.release, "Week 1", "Mon", 9, "E002")
    assert failed.ok is False
    assert failed.error_code == "not_found"
    assert failed.as_dict()["error"]["message"] == "No allocation found for this seat and employee."

    succeeded = service.attempt(service.book, "Week 1", "Thu", 50, "Batch 2", "E002")
    assert succeeded.ok is True
    assert succeeded.as_dict()["allocation"]["type"] == "floater"


def test_employee_and_day_listings(tmp_path):
    _, service = _build_service(tmp_path, "listings.db")
    service.seed_regular("E002", 2, "Batch 1", "Week 1", "Mon")
    service.seed_regular("E002", 2, "Batch 1", "Week 1", "Tue")
    service.book("Week 1", "Mon", 44, "Batch 1", "E101")

    assert [item.day for item in service.get_employee_allocations("E002")] == ["Mon", "Tue"]
    assert [item.seat for item in service.get_day_allocations("Week 1", "Mon")] == [2, 44]
    assert len(service.get_week_allocations("Week 1")) == 3


def test_booking_without_a_seat_writes_nothing(tmp_path):
    repository, service = _build_service(tmp_path, "no_seat.db")
    with pytest.raises(NoSeatSelectedError):
        service.book("Week 1", "Thu", None, "Batch 2", "E002")
    assert repository.count_allocations() == 0
