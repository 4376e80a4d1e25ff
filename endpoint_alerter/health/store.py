"""
Health store - Durable last-known status per probe.

Results live in a single SQLite file with one table, "results", mapping
the probe fingerprint (a binary digest) to "pass" or "fail". Every
operation opens the file, runs one transaction and closes it again, so
no lock is held between operations or across invocations.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

from endpoint_alerter.health.models import Status

logger = logging.getLogger(__name__)


# Table structure
# results (
#   key   BLOB PRIMARY KEY,  -- sha256(identity)
#   value TEXT NOT NULL      -- "pass" | "fail"
# )


class StoreError(Exception):
    """Raised when the result database cannot be opened, read or written."""


class ResultStore:
    """
    SQLite-backed mapping of probe fingerprint to last recorded status.

    Writers start with BEGIN IMMEDIATE, which takes the database write lock
    before reading; two read-compare-write sequences on the same key
    therefore never interleave.
    """

    def __init__(self, db_path: str, timeout: float = 30.0):
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite file (created on first use)
            timeout: Seconds to wait for another writer's lock
        """
        self.db_path = str(db_path)
        self.timeout = timeout
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        # Take the write lock before touching the schema
        with self._schema_lock:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute(
                "CREATE TABLE IF NOT EXISTS results "
                "(key BLOB PRIMARY KEY, value TEXT NOT NULL)"
            )
            conn.execute("COMMIT")
            self._schema_ready = True

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            parent = Path(self.db_path).parent
            parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode; transactions are issued explicitly
            conn = sqlite3.connect(
                self.db_path, timeout=self.timeout, isolation_level=None
            )
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Cannot open result store {self.db_path}: {e}")

        try:
            if not self._schema_ready:
                self._ensure_schema(conn)
            yield conn
        except sqlite3.Error as e:
            raise StoreError(f"Result store {self.db_path} failed: {e}")
        finally:
            conn.close()

    @staticmethod
    def _read(conn: sqlite3.Connection, fingerprint: bytes) -> Status:
        row = conn.execute(
            "SELECT value FROM results WHERE key = ?", (fingerprint,)
        ).fetchone()
        return Status.from_token(row[0] if row else None)

    @staticmethod
    def _write(conn: sqlite3.Connection, fingerprint: bytes, status: Status) -> None:
        if status is Status.UNKNOWN:
            raise ValueError("UNKNOWN is never persisted")
        conn.execute(
            "INSERT OR REPLACE INTO results (key, value) VALUES (?, ?)",
            (fingerprint, status.value),
        )

    def get(self, fingerprint: bytes) -> Status:
        """
        Get the last recorded status.

        Args:
            fingerprint: Probe fingerprint

        Returns:
            Status.PASS or Status.FAIL, or Status.UNKNOWN if nothing is stored

        Raises:
            StoreError: If the database cannot be read
        """
        with self._connect() as conn:
            return self._read(conn, fingerprint)

    def put(self, fingerprint: bytes, status: Status) -> None:
        """
        Record a status durably.

        Raises:
            StoreError: If the database cannot be written
        """
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                self._write(conn, fingerprint, status)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def compare_and_set(
        self,
        fingerprint: bytes,
        decide: Callable[[Status], Optional[Status]],
    ) -> Status:
        """
        Atomically read the stored status and conditionally replace it.

        Args:
            fingerprint: Probe fingerprint
            decide: Called with the previous status; returns the status to
                    store, or None to leave the entry untouched

        Returns:
            The status that was stored before this call

        Raises:
            StoreError: If the database cannot be read or written
        """
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                previous = self._read(conn, fingerprint)
                new_status = decide(previous)
                if new_status is not None:
                    self._write(conn, fingerprint, new_status)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

        logger.debug(
            "Store %s: %s -> %s",
            fingerprint.hex()[:16],
            previous.value,
            new_status.value if new_status else "unchanged",
        )
        return previous
