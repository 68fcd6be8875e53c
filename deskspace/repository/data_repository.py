"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping, Optional, Sequence

from deskspace.domain.constraints import (
    BOOKING_DURATIONS_KEY,
    HOURLY_SLOTS_KEY,
    TOTAL_DESKS_KEY,
)
from deskspace.domain.models import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    DeskAssignment,
    ExistingBooking,
    NewBooking,
)
from deskspace.utils.config import Settings, get_settings
from deskspace.utils.logger import get_logger


logger = get_logger(__name__)

DeskChooser = Callable[[list[ExistingBooking]], DeskAssignment]


class RepositoryError(RuntimeError):
    """Raised when the underlying database cannot serve a request."""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_booking(row: sqlite3.Row) -> Booking:
    return Booking(
        booking_id=int(row["id"]),
        workspace_type=str(row["workspace_type"]),
        date=str(row["date"]),
        time_slot=str(row["time_slot"]),
        duration=str(row["duration"]),
        desk_number=None if row["desk_number"] is None else int(row["desk_number"]),
        customer_name=str(row["customer_name"]),
        customer_email=str(row["customer_email"]),
        customer_phone=str(row["customer_phone"]),
        customer_whatsapp=str(row["customer_whatsapp"]),
        total_price=float(row["total_price"]),
        status=str(row["status"]),
        user_id=None if row["user_id"] is None else str(row["user_id"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
    )


class DataRepository:
    """Encapsulates SQLite access so booking logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self, *, autocommit: bool = False) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.database_busy_timeout_seconds,
            isolation_level=None if autocommit else "",
        )
        connection.row_factory = sqlite3.Row
        return connection

    def initialize_database(self) -> None:
        """Create tables and indexes before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Bookings (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        workspace_type TEXT NOT NULL,
                        date TEXT NOT NULL,
                        time_slot TEXT NOT NULL,
                        duration TEXT NOT NULL,
                        desk_number INTEGER,
                        customer_name TEXT NOT NULL,
                        customer_email TEXT NOT NULL DEFAULT '',
                        customer_phone TEXT NOT NULL DEFAULT '',
                        customer_whatsapp TEXT NOT NULL DEFAULT '',
                        total_price REAL NOT NULL DEFAULT 0 CHECK (total_price >= 0),
                        status TEXT NOT NULL DEFAULT 'pending'
                            CHECK (status IN ('pending','code_sent','confirmed','rejected','cancelled')),
                        user_id TEXT,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS SiteSettings (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_workspace_date_status
                    ON Bookings(workspace_type, date, status);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_bookings_user
                    ON Bookings(user_id);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Database initialization failed: {exc}") from exc

    def seed_default_settings(self) -> None:
        """Insert default booking settings for keys that are not set yet."""
        defaults = {
            TOTAL_DESKS_KEY: str(self._settings.default_total_desks),
            HOURLY_SLOTS_KEY: ",".join(self._settings.default_hourly_slots),
            BOOKING_DURATIONS_KEY: ",".join(self._settings.default_booking_durations),
        }
        now = _utc_now()
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.executemany(
                    """
                    INSERT OR IGNORE INTO SiteSettings (key, value, updated_at)
                    VALUES (?, ?, ?);
                    """,
                    [(key, value, now) for key, value in defaults.items()],
                )
                inserted = cursor.rowcount
                conn.commit()
            logger.info("Default site settings seeded | inserted=%s", inserted)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Settings seeding failed: {exc}") from exc

    def get_site_settings(self) -> dict[str, str]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT key, value FROM SiteSettings;")
                return {str(row["key"]): str(row["value"]) for row in cursor.fetchall()}
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to load site settings: {exc}") from exc

    def upsert_site_settings(self, values: Mapping[str, str]) -> None:
        if not values:
            return
        now = _utc_now()
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.executemany(
                    """
                    INSERT INTO SiteSettings (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at;
                    """,
                    [(key, value, now) for key, value in values.items()],
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to save site settings: {exc}") from exc

    @staticmethod
    def _select_active_bookings(
        conn: sqlite3.Connection,
        workspace_type: str,
        date: str,
    ) -> list[ExistingBooking]:
        placeholders = ",".join("?" for _ in ACTIVE_BOOKING_STATUSES)
        cursor = conn.execute(
            f"""
            SELECT time_slot, duration, desk_number
            FROM Bookings
            WHERE workspace_type = ?
              AND date = ?
              AND status IN ({placeholders})
            ORDER BY id ASC;
            """,
            (workspace_type, date, *ACTIVE_BOOKING_STATUSES),
        )
        return [
            ExistingBooking(
                time_slot=str(row["time_slot"]),
                duration=str(row["duration"]),
                desk_number=None if row["desk_number"] is None else int(row["desk_number"]),
            )
            for row in cursor.fetchall()
        ]

    def list_active_bookings(self, workspace_type: str, date: str) -> list[ExistingBooking]:
        """Return bookings that hold capacity for one workspace type and date."""
        try:
            with self._connect() as conn:
                return self._select_active_bookings(conn, workspace_type, date)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to load bookings: {exc}") from exc

    @staticmethod
    def _insert(conn: sqlite3.Connection, booking: NewBooking, desk_number: Optional[int]) -> int:
        now = _utc_now()
        cursor = conn.execute(
            """
            INSERT INTO Bookings (
                workspace_type,
                date,
                time_slot,
                duration,
                desk_number,
                customer_name,
                customer_email,
                customer_phone,
                customer_whatsapp,
                total_price,
                status,
                user_id,
                created_at,
                updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                booking.workspace_type,
                booking.date,
                booking.time_slot,
                booking.duration,
                desk_number,
                booking.customer_name,
                booking.customer_email,
                booking.customer_phone,
                booking.customer_whatsapp,
                booking.total_price,
                booking.status,
                booking.user_id,
                now,
                now,
            ),
        )
        return int(cursor.lastrowid)

    def insert_booking(self, booking: NewBooking, desk_number: Optional[int] = None) -> int:
        """Insert a booking row as-is, without desk assignment.

        Used for imports of historical rows; new bookings go through
        ``reserve_desk``.
        """
        try:
            with self._connect() as conn:
                booking_id = self._insert(conn, booking, desk_number)
                conn.commit()
                return booking_id
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to insert booking: {exc}") from exc

    def reserve_desk(
        self,
        booking: NewBooking,
        choose_desk: DeskChooser,
    ) -> tuple[DeskAssignment, Optional[int]]:
        """Read active bookings, assign a desk and insert in one write transaction.

        ``BEGIN IMMEDIATE`` takes the database write lock before the read, so a
        concurrent reservation waits and then sees this booking.
        Returns the assignment and the new booking id (``None`` when no desk).
        """
        conn = self._connect(autocommit=True)
        try:
            conn.execute("BEGIN IMMEDIATE;")
            existing = self._select_active_bookings(conn, booking.workspace_type, booking.date)
            assignment = choose_desk(existing)
            if not assignment.is_assigned:
                conn.execute("ROLLBACK;")
                return assignment, None
            booking_id = self._insert(conn, booking, assignment.desk_number)
            conn.execute("COMMIT;")
            return assignment, booking_id
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK;")
            raise RepositoryError(f"Desk reservation failed: {exc}") from exc
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK;")
            raise
        finally:
            conn.close()

    def get_booking(self, booking_id: int) -> Optional[Booking]:
        try:
            with self._connect() as conn:
                cursor = conn.execute("SELECT * FROM Bookings WHERE id = ?;", (booking_id,))
                row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to load booking: {exc}") from exc
        if row is None:
            return None
        return _row_to_booking(row)

    def update_booking_status(
        self,
        booking_id: int,
        new_status: str,
        expected_statuses: Sequence[str],
    ) -> bool:
        """Move a booking to ``new_status`` if it is still in an expected status.

        Returns ``False`` when the row changed underneath the caller.
        """
        placeholders = ",".join("?" for _ in expected_statuses)
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"""
                    UPDATE Bookings
                    SET status = ?, updated_at = ?
                    WHERE id = ? AND status IN ({placeholders});
                    """,
                    (new_status, _utc_now(), booking_id, *expected_statuses),
                )
                conn.commit()
                return cursor.rowcount == 1
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to update booking status: {exc}") from exc

    def list_bookings(
        self,
        *,
        workspace_type: Optional[str] = None,
        date: Optional[str] = None,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Booking]:
        """Return bookings matching every given filter, newest first."""
        filters = {
            "workspace_type": workspace_type,
            "date": date,
            "status": status,
            "user_id": user_id,
        }
        clauses = [f"{column} = ?" for column, value in filters.items() if value is not None]
        params = [value for value in filters.values() if value is not None]
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    f"SELECT * FROM Bookings {where} ORDER BY id DESC;",
                    params,
                )
                rows = cursor.fetchall()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to list bookings: {exc}") from exc
        return [_row_to_booking(row) for row in rows]

    def count_bookings(self, status: Optional[str] = None) -> int:
        """Return persisted booking count for diagnostics and tests."""
        try:
            with self._connect() as conn:
                if status is None:
                    cursor = conn.execute("SELECT COUNT(*) AS count FROM Bookings;")
                else:
                    cursor = conn.execute(
                        "SELECT COUNT(*) AS count FROM Bookings WHERE status = ?;",
                        (status,),
                    )
                return int(cursor.fetchone()["count"])
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to count bookings: {exc}") from exc
