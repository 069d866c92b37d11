"""Cached access to the singleton seat settings row."""

from __future__ import annotations

from dataclasses import asdict, replace
from threading import RLock
from typing import Optional

from backend.domain.constraints import validate_seat_settings
from backend.domain.errors import SettingsValidationError
from backend.domain.models import SeatSettings
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class SettingsService:
    """Serves a process-wide snapshot of seat settings.

    Callers take one snapshot per operation and pass it down explicitly; the
    snapshot is dropped on save so the next operation reloads it.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._lock = RLock()
        self._cached: SeatSettings | None = None

    @property
    def defaults(self) -> SeatSettings:
        return SeatSettings(
            regular_seats=self._settings.default_regular_seats,
            floater_seats=self._settings.default_floater_seats,
            floater_start_seat=self._settings.default_floater_start_seat,
            booking_open_hour=self._settings.default_booking_open_hour,
        )

    def get(self) -> SeatSettings:
        cached = self._cached
        if cached is not None:
            return cached
        with self._lock:
            if self._cached is None:
                stored = self._repository.load_seat_settings()
                self._cached = stored or self.defaults
            return self._cached

    def save(self, **changes: int) -> SeatSettings:
        unknown = set(changes) - set(asdict(self.defaults))
        if unknown:
            raise SettingsValidationError(
                f"Unknown settings fields: {', '.join(sorted(unknown))}"
            )
        with self._lock:
            updated = replace(self.get(), **changes)
            validate_seat_settings(updated)
            self._repository.save_seat_settings(updated)
            self._cached = None
        logger.info("Seat settings saved: %s", asdict(updated))
        return updated

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None
