"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional

from backend.domain.models import (
    DAYS,
    Allocation,
    Employee,
    EmployeeRole,
    Holiday,
    SeatSettings,
)
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


_ALLOCATION_COLUMNS = """
    id,
    week,
    day,
    seat,
    batch,
    allocated_to_employee_id,
    type,
    status,
    version
"""

_EMPLOYEE_COLUMNS = "employee_id, name, batch, default_seat, role, is_active"

_EMPLOYEE_UPDATABLE = {"name", "batch", "default_seat", "role", "is_active"}


DEMO_EMPLOYEES: tuple[tuple[str, str, str, Optional[int], str], ...] = (
    ("E001", "Asha Rao", "Batch 1", 1, "admin"),
    ("E002", "Vikram Nair", "Batch 1", 2, "employee"),
    ("E003", "Meera Iyer", "Batch 1", 3, "employee"),
    ("E004", "Rohan Das", "Batch 1", 4, "employee"),
    ("E005", "Kavya Menon", "Batch 1", 5, "employee"),
    ("E006", "Arjun Shah", "Batch 1", None, "employee"),
    ("E101", "Nisha Kapoor", "Batch 2", 1, "employee"),
    ("E102", "Farhan Ali", "Batch 2", 2, "employee"),
    ("E103", "Priya Sen", "Batch 2", 3, "employee"),
    ("E104", "Karan Mehta", "Batch 2", 4, "employee"),
    ("E105", "Divya Pillai", "Batch 2", 5, "employee"),
)


def _row_to_allocation(row: sqlite3.Row) -> Allocation:
    return Allocation.from_record(
        allocation_id=int(row["id"]),
        week=str(row["week"]),
        day=str(row["day"]),
        seat=int(row["seat"]),
        batch=str(row["batch"]),
        status=str(row["status"]),
        allocation_type=str(row["type"]),
        employee_id=(
            str(row["allocated_to_employee_id"])
            if row["allocated_to_employee_id"] is not None
            else None
        ),
        version=int(row["version"]),
    )


def _in_calendar_order(allocations: Iterable[Allocation]) -> list[Allocation]:
    day_index = {day: index for index, day in enumerate(DAYS)}
    return sorted(
        allocations,
        key=lambda item: (item.week, day_index.get(item.day, len(DAYS)), item.seat),
    )


def _row_to_employee(row: sqlite3.Row) -> Employee:
    return Employee(
        employee_id=str(row["employee_id"]),
        name=str(row["name"]),
        batch=str(row["batch"]),
        default_seat=int(row["default_seat"]) if row["default_seat"] is not None else None,
        role=EmployeeRole(str(row["role"])),
        is_active=bool(row["is_active"]),
    )


class DataRepository:
    """Encapsulates SQLite access so allocation rules stay storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path, timeout=10.0)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Employees (
                        employee_id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        batch TEXT NOT NULL,
                        default_seat INTEGER CHECK (default_seat IS NULL OR default_seat > 0),
                        role TEXT NOT NULL DEFAULT 'employee'
                            CHECK (role IN ('employee', 'admin')),
                        is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Allocations (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        week TEXT NOT NULL,
                        day TEXT NOT NULL,
                        seat INTEGER NOT NULL CHECK (seat > 0),
                        batch TEXT NOT NULL,
                        allocated_to_employee_id TEXT,
                        type TEXT NOT NULL
                            CHECK (type IN ('regular', 'floater', 'temp_floater')),
                        status TEXT NOT NULL
                            CHECK (status IN ('allocated', 'booked', 'released', 'locked')),
                        version INTEGER NOT NULL DEFAULT 1,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (week, day, seat)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS AppSettings (
                        id INTEGER PRIMARY KEY CHECK (id = 1),
                        regular_seats INTEGER NOT NULL,
                        floater_seats INTEGER NOT NULL,
                        floater_start_seat INTEGER NOT NULL,
                        booking_open_hour INTEGER NOT NULL,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Holidays (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        holiday_date TEXT NOT NULL,
                        name TEXT NOT NULL,
                        is_closed INTEGER NOT NULL DEFAULT 1 CHECK (is_closed IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE UNIQUE INDEX IF NOT EXISTS idx_employees_batch_default_seat
                    ON Employees(batch, default_seat)
                    WHERE default_seat IS NOT NULL;
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_allocations_week_day
                    ON Allocations(week, day);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_allocations_employee
                    ON Allocations(allocated_to_employee_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_holidays_date
                    ON Holidays(holiday_date);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> None:
        """Seed a small employee directory only when it is empty."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM Employees;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Employee directory already present; skipping seed")
                    return
                cursor.executemany(
                    """
                    INSERT INTO Employees (employee_id, name, batch, default_seat, role)
                    VALUES (?, ?, ?, ?, ?);
                    """,
                    DEMO_EMPLOYEES,
                )
                conn.commit()
            logger.info("Demo seed completed with %s employees", len(DEMO_EMPLOYEES))
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    # --- Employees -------------------------------------------------------

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_EMPLOYEE_COLUMNS} FROM Employees WHERE employee_id = ?;",
                (employee_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_employee(row)

    def list_employees(
        self,
        batch: Optional[str] = None,
        active_only: bool = False,
    ) -> list[Employee]:
        clauses: list[str] = []
        params: list[Any] = []
        if batch is not None:
            clauses.append("batch = ?")
            params.append(batch)
        if active_only:
            clauses.append("is_active = 1")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_EMPLOYEE_COLUMNS}
                FROM Employees
                {where}
                ORDER BY employee_id ASC;
                """,
                tuple(params),
            )
            return [_row_to_employee(row) for row in cursor.fetchall()]

    def upsert_employee(self, employee: Employee) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Employees (employee_id, name, batch, default_seat, role, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(employee_id) DO UPDATE SET
                    name = excluded.name,
                    batch = excluded.batch,
                    default_seat = excluded.default_seat,
                    role = excluded.role,
                    is_active = excluded.is_active;
                """,
                (
                    employee.employee_id,
                    employee.name,
                    employee.batch,
                    employee.default_seat,
                    employee.role.value,
                    int(employee.is_active),
                ),
            )
            conn.commit()

    def update_employee(self, employee_id: str, updates: dict[str, Any]) -> Optional[Employee]:
        """Apply a partial update and return the stored employee, or None if unknown."""
        unknown = set(updates) - _EMPLOYEE_UPDATABLE
        if unknown:
            raise ValueError(f"Unsupported employee fields: {', '.join(sorted(unknown))}")
        current = self.get_employee(employee_id)
        if current is None:
            return None
        if not updates:
            return current
        normalized = dict(updates)
        if "role" in normalized:
            normalized["role"] = EmployeeRole(normalized["role"])
        updated = replace(current, **normalized)
        self.upsert_employee(updated)
        return updated

    def find_default_seat_owner(self, batch: str, seat: int) -> Optional[Employee]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_EMPLOYEE_COLUMNS}
                FROM Employees
                WHERE batch = ? AND default_seat = ? AND is_active = 1;
                """,
                (batch, seat),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_employee(row)

    # --- Allocations -----------------------------------------------------

    def get_allocation(self, week: str, day: str, seat: int) -> Optional[Allocation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_ALLOCATION_COLUMNS}
                FROM Allocations
                WHERE week = ? AND day = ? AND seat = ?;
                """,
                (week, day, seat),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_allocation(row)

    def get_allocation_by_id(self, allocation_id: int) -> Optional[Allocation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_ALLOCATION_COLUMNS} FROM Allocations WHERE id = ?;",
                (allocation_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_allocation(row)

    def list_allocations_for_week(self, week: str) -> list[Allocation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_ALLOCATION_COLUMNS}
                FROM Allocations
                WHERE week = ?
                ORDER BY seat ASC;
                """,
                (week,),
            )
            return _in_calendar_order(_row_to_allocation(row) for row in cursor.fetchall())

    def list_allocations_for_day(self, week: str, day: str) -> list[Allocation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_ALLOCATION_COLUMNS}
                FROM Allocations
                WHERE week = ? AND day = ?
                ORDER BY seat ASC;
                """,
                (week, day),
            )
            return [_row_to_allocation(row) for row in cursor.fetchall()]

    def list_allocations_for_employee(self, employee_id: str) -> list[Allocation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_ALLOCATION_COLUMNS}
                FROM Allocations
                WHERE allocated_to_employee_id = ?
                ORDER BY week ASC, seat ASC;
                """,
                (employee_id,),
            )
            return _in_calendar_order(_row_to_allocation(row) for row in cursor.fetchall())

    def insert_allocation(self, allocation: Allocation) -> Optional[Allocation]:
        """Insert a new record; None when the (week, day, seat) key is already taken."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO Allocations (
                        week,
                        day,
                        seat,
                        batch,
                        allocated_to_employee_id,
                        type,
                        status,
                        version
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, 1);
                    """,
                    (
                        allocation.week,
                        allocation.day,
                        allocation.seat,
                        allocation.batch,
                        allocation.employee_id,
                        allocation.type.value,
                        allocation.status.value,
                    ),
                )
                conn.commit()
                return replace(allocation, allocation_id=int(cursor.lastrowid), version=1)
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" not in str(exc):
                raise
            logger.info(
                "Insert lost race for %s/%s/seat %s",
                allocation.week,
                allocation.day,
                allocation.seat,
            )
            return None

    def update_allocation_if_version(
        self,
        allocation: Allocation,
        expected_version: int,
    ) -> Optional[Allocation]:
        """Compare-and-swap write keyed on the version observed at read time.

        Returns the stored record with its bumped version, or None when another
        writer got there first.
        """
        if allocation.allocation_id is None:
            raise ValueError("allocation_id is required for conditional update")
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE Allocations
                SET batch = ?,
                    allocated_to_employee_id = ?,
                    type = ?,
                    status = ?,
                    version = version + 1,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND version = ?;
                """,
                (
                    allocation.batch,
                    allocation.employee_id,
                    allocation.type.value,
                    allocation.status.value,
                    allocation.allocation_id,
                    expected_version,
                ),
            )
            conn.commit()
            if cursor.rowcount != 1:
                return None
        return replace(allocation, version=expected_version + 1)

    def count_allocations(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Allocations;")
            return int(cursor.fetchone()["count"])

    # --- Settings --------------------------------------------------------

    def load_seat_settings(self) -> Optional[SeatSettings]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT regular_seats, floater_seats, floater_start_seat, booking_open_hour
                FROM AppSettings
                WHERE id = 1;
                """
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return SeatSettings(
                regular_seats=int(row["regular_seats"]),
                floater_seats=int(row["floater_seats"]),
                floater_start_seat=int(row["floater_start_seat"]),
                booking_open_hour=int(row["booking_open_hour"]),
            )

    def save_seat_settings(self, settings: SeatSettings) -> None:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO AppSettings (
                    id,
                    regular_seats,
                    floater_seats,
                    floater_start_seat,
                    booking_open_hour
                )
                VALUES (1, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    regular_seats = excluded.regular_seats,
                    floater_seats = excluded.floater_seats,
                    floater_start_seat = excluded.floater_start_seat,
                    booking_open_hour = excluded.booking_open_hour,
                    updated_at = CURRENT_TIMESTAMP;
                """,
                (
                    settings.regular_seats,
                    settings.floater_seats,
                    settings.floater_start_seat,
                    settings.booking_open_hour,
                ),
            )
            conn.commit()

    # --- Holidays --------------------------------------------------------

    def list_holidays(self) -> list[Holiday]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, holiday_date, name, is_closed
                FROM Holidays
                ORDER BY holiday_date ASC, id ASC;
                """
            )
            return [
                Holiday(
                    holiday_id=int(row["id"]),
                    holiday_date=date.fromisoformat(str(row["holiday_date"])),
                    name=str(row["name"]),
                    is_closed=bool(row["is_closed"]),
                )
                for row in cursor.fetchall()
            ]

    def add_holiday(self, holiday_date: date, name: str, is_closed: bool = True) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Holidays (holiday_date, name, is_closed)
                VALUES (?, ?, ?);
                """,
                (holiday_date.isoformat(), name, int(is_closed)),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def remove_holiday(self, holiday_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM Holidays WHERE id = ?;", (holiday_id,))
            conn.commit()
            return cursor.rowcount > 0

    def is_closed_holiday(self, target_date: date) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT 1
                FROM Holidays
                WHERE holiday_date = ? AND is_closed = 1
                LIMIT 1;
                """,
                (target_date.isoformat(),),
            )
            return cursor.fetchone() is not None
