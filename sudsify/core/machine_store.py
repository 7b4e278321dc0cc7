"""Persist machines, usage ledger, and user roles (SQLite).

Every write runs in one transaction under the store lock. Status transitions
are conditional updates, so the row count tells the caller whether it won.
Listeners are told which table changed after the commit; they get no delta.
"""
import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

from sudsify.core.errors import PersistenceError
from sudsify.models.machine import AVAILABLE, DONE, DRYER, IN_USE, WASHER, Machine
from sudsify.models.program import ProgramSnapshot
from sudsify.models.usage import UsageRecord

logger = logging.getLogger(__name__)

MACHINES_TABLE = "machines"
USAGE_TABLE = "machine_usage"

ChangeListener = Callable[[str], None]

_SCHEMA = """
CREATE TABLE IF NOT EXISTS machines (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('washer', 'dryer')),
    status TEXT NOT NULL DEFAULT 'available'
        CHECK (status IN ('available', 'in-use', 'done')),
    current_program_name TEXT,
    current_program_duration INTEGER,
    end_time TEXT,
    can_postpone INTEGER,
    cycle INTEGER NOT NULL DEFAULT 0,
    started_by TEXT
);
CREATE TABLE IF NOT EXISTS machine_usage (
    id TEXT PRIMARY KEY,
    machine_id TEXT NOT NULL REFERENCES machines(id),
    user_id TEXT,
    user_name TEXT NOT NULL,
    room_number TEXT NOT NULL,
    program_name TEXT NOT NULL,
    program_duration INTEGER NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT
);
CREATE INDEX IF NOT EXISTS idx_machine_usage_open ON machine_usage (machine_id, end_time);
CREATE INDEX IF NOT EXISTS idx_machine_usage_start ON machine_usage (start_time);
CREATE TABLE IF NOT EXISTS user_roles (
    user_id TEXT NOT NULL,
    role TEXT NOT NULL,
    PRIMARY KEY (user_id, role)
);
"""

DEFAULT_MACHINES = [
    ("w1", "Washer 1", WASHER),
    ("w2", "Washer 2", WASHER),
    ("w3", "Washer 3", WASHER),
    ("d1", "Dryer 1", DRYER),
    ("d2", "Dryer 2", DRYER),
]


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_machine(row: sqlite3.Row) -> Machine:
    program = None
    if row["current_program_name"] is not None:
        program = ProgramSnapshot(
            name=row["current_program_name"],
            duration=int(row["current_program_duration"] or 0),
        )
    can_postpone = row["can_postpone"]
    return Machine(
        id=row["id"],
        name=row["name"],
        type=row["type"],
        status=row["status"],
        current_program=program,
        end_time=_parse_ts(row["end_time"]),
        can_postpone=bool(can_postpone) if can_postpone is not None else None,
        cycle=int(row["cycle"]),
        started_by=row["started_by"],
    )


def _row_to_usage(row: sqlite3.Row) -> UsageRecord:
    return UsageRecord(
        id=row["id"],
        machine_id=row["machine_id"],
        user_id=row["user_id"],
        user_name=row["user_name"],
        room_number=row["room_number"],
        program_name=row["program_name"],
        program_duration=int(row["program_duration"]),
        start_time=_parse_ts(row["start_time"]),
        end_time=_parse_ts(row["end_time"]),
    )


class MachineStore:
    """Shared machine state and usage ledger backed by one SQLite connection."""

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        self._lock = threading.Lock()
        self._listeners: List[ChangeListener] = []
        self._listeners_lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open database {db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Serialize access and commit on success, roll back on error."""
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.Error as e:
                logger.warning("Store: database error: %s", e)
                raise PersistenceError(str(e)) from e

    # Change notifications

    def add_listener(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, *tables: str) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for table in tables:
            for listener in listeners:
                try:
                    listener(table)
                except Exception:
                    logger.exception("Store: change listener failed for %s", table)

    # Schema and provisioning

    def init_schema(self) -> None:
        with self._lock:
            try:
                self._conn.executescript(_SCHEMA)
            except sqlite3.Error as e:
                raise PersistenceError(str(e)) from e

    def seed_default_machines(self) -> int:
        """Insert the default fleet if no machines exist. Returns number inserted."""
        with self._transaction() as conn:
            count = conn.execute("SELECT COUNT(*) FROM machines").fetchone()[0]
            if count:
                return 0
            conn.executemany(
                "INSERT INTO machines (id, name, type) VALUES (?, ?, ?)",
                DEFAULT_MACHINES,
            )
        logger.info("Store: seeded %d machines", len(DEFAULT_MACHINES))
        self._notify(MACHINES_TABLE)
        return len(DEFAULT_MACHINES)

    def add_machine(self, machine_id: str, name: str, type_: str) -> Machine:
        """Provision a machine in the available state."""
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO machines (id, name, type) VALUES (?, ?, ?)",
                (machine_id, name, type_),
            )
            row = conn.execute("SELECT * FROM machines WHERE id = ?", (machine_id,)).fetchone()
        self._notify(MACHINES_TABLE)
        return _row_to_machine(row)

    def grant_role(self, user_id: str, role: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO user_roles (user_id, role) VALUES (?, ?)",
                (user_id, role),
            )

    def has_role(self, user_id: str, role: str) -> bool:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT 1 FROM user_roles WHERE user_id = ? AND role = ?",
                (user_id, role),
            ).fetchone()
        return row is not None

    # Reads

    def get_machine(self, machine_id: str) -> Optional[Machine]:
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM machines WHERE id = ?", (machine_id,)).fetchone()
        return _row_to_machine(row) if row else None

    def list_machines(self) -> List[Machine]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT * FROM machines ORDER BY id").fetchall()
        return [_row_to_machine(r) for r in rows]

    def list_in_use(self) -> List[Machine]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM machines WHERE status = ? ORDER BY id", (IN_USE,)
            ).fetchall()
        return [_row_to_machine(r) for r in rows]

    def list_usage(self, limit: int, machine_id: Optional[str] = None) -> List[UsageRecord]:
        """Newest first."""
        sql = "SELECT * FROM machine_usage"
        params: list = []
        if machine_id is not None:
            sql += " WHERE machine_id = ?"
            params.append(machine_id)
        sql += " ORDER BY start_time DESC, rowid DESC LIMIT ?"
        params.append(limit)
        with self._transaction() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_usage(r) for r in rows]

    # Transitions

    def start_cycle(
        self,
        machine_id: str,
        program: ProgramSnapshot,
        started_at: datetime,
        end_time: datetime,
        user_id: Optional[str],
        user_name: str,
        room_number: str,
    ) -> Optional[Machine]:
        """available -> in-use plus ledger insert, atomically.

        Returns the updated machine, or None when the machine was not available
        at write time (another writer won, or it is in use / done).
        """
        with self._transaction() as conn:
            cur = conn.execute(
                """
                UPDATE machines
                SET status = ?,
                    current_program_name = ?,
                    current_program_duration = ?,
                    end_time = ?,
                    can_postpone = 1,
                    cycle = cycle + 1,
                    started_by = ?
                WHERE id = ? AND status = ?
                """,
                (IN_USE, program.name, program.duration, _ts(end_time), user_id, machine_id, AVAILABLE),
            )
            if cur.rowcount == 0:
                return None
            conn.execute(
                """
                INSERT INTO machine_usage (
                    id, machine_id, user_id, user_name, room_number,
                    program_name, program_duration, start_time, end_time
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, NULL)
                """,
                (
                    str(uuid.uuid4()),
                    machine_id,
                    user_id,
                    user_name,
                    room_number,
                    program.name,
                    program.duration,
                    _ts(started_at),
                ),
            )
            row = conn.execute("SELECT * FROM machines WHERE id = ?", (machine_id,)).fetchone()
        self._notify(MACHINES_TABLE, USAGE_TABLE)
        return _row_to_machine(row)

    def complete_cycle(self, machine_id: str, cycle: int, ended_at: datetime) -> bool:
        """in-use -> done for exactly this cycle; closes the open ledger row. False if superseded."""
        with self._transaction() as conn:
            cur = conn.execute(
                "UPDATE machines SET status = ? WHERE id = ? AND status = ? AND cycle = ?",
                (DONE, machine_id, IN_USE, cycle),
            )
            if cur.rowcount == 0:
                return False
            self._close_open_usage(conn, machine_id, ended_at)
        self._notify(MACHINES_TABLE, USAGE_TABLE)
        return True

    def clear_machine(
        self,
        machine_id: str,
        ended_at: datetime,
        cycle: Optional[int] = None,
    ) -> bool:
        """in-use/done -> available; closes any open ledger row.

        With cycle given, only clears if the machine is still on that cycle.
        Returns False when nothing changed (already available, or cycle moved on).
        """
        sql = """
            UPDATE machines
            SET status = ?,
                current_program_name = NULL,
                current_program_duration = NULL,
                end_time = NULL,
                can_postpone = NULL,
                started_by = NULL
            WHERE id = ? AND status != ?
        """
        params: list = [AVAILABLE, machine_id, AVAILABLE]
        if cycle is not None:
            sql += " AND cycle = ?"
            params.append(cycle)
        with self._transaction() as conn:
            cur = conn.execute(sql, params)
            if cur.rowcount == 0:
                return False
            self._close_open_usage(conn, machine_id, ended_at)
        self._notify(MACHINES_TABLE, USAGE_TABLE)
        return True

    @staticmethod
    def _close_open_usage(conn: sqlite3.Connection, machine_id: str, ended_at: datetime) -> None:
        conn.execute(
            "UPDATE machine_usage SET end_time = ? WHERE machine_id = ? AND end_time IS NULL",
            (_ts(ended_at), machine_id),
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()
