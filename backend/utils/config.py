"""Process-level configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings.

    Seat defaults only apply until an administrator saves the singleton
    settings row; afterwards the stored row wins.
    """

    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    seed_demo_data: bool
    default_regular_seats: int
    default_floater_seats: int
    default_floater_start_seat: int
    default_booking_open_hour: int
    employee_header: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "Seat Booking Engine"),
        app_version=os.getenv("APP_VERSION", "1.0.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=Path(
            os.getenv("SEATS_DATABASE_PATH", str(PROJECT_ROOT / "data" / "seats.db"))
        ),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", True),
        default_regular_seats=_env_int("DEFAULT_REGULAR_SEATS", 40),
        default_floater_seats=_env_int("DEFAULT_FLOATER_SEATS", 10),
        default_floater_start_seat=_env_int("DEFAULT_FLOATER_START_SEAT", 41),
        default_booking_open_hour=_env_int("DEFAULT_BOOKING_OPEN_HOUR", 15),
        employee_header=os.getenv("EMPLOYEE_HEADER", "X-Employee-Id"),
    )
