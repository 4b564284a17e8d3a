"""
SQLite-backed storage for queued items.

One database file holds one table per queue name. Rows are
(_id, timestamp, data): _id is auto-assigned, timestamp is the insertion
time in milliseconds, data is the serialized payload.

Every storage error is logged and converted to a harmless default
(zero count, empty scan, no-op write). Losing a write is preferred over
taking down the host process.
"""

import os
import re
import sqlite3
import threading
from contextlib import closing
from typing import List, Optional

from durable_queue.models import DurableRow
from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Store")

DEFAULT_DB_FILENAME = 'queues.db'
TABLE_PREFIX = 'queue_'


def table_name_for(queue_name: str) -> str:
    """
    Map a queue name to its table name.

    Non-word characters become underscores, so "app.UploadService" maps to
    "queue_app_UploadService".
    """
    if not queue_name:
        raise ValueError("queue_name must not be empty")
    return TABLE_PREFIX + re.sub(r'\W', '_', queue_name)


class DurableStore:
    """
    Thin synchronized wrapper over one queue table.

    Args:
        db_path: Path to the SQLite database file (parent directory is created)
        queue_name: Storage namespace; must be unique per queue in the process
        lock: Lock shared with the owning strategy (default: private RLock)
    """

    def __init__(self, db_path: str, queue_name: str, lock: Optional[threading.RLock] = None):
        self.db_path = db_path
        self.queue_name = queue_name
        self.table = table_name_for(queue_name)
        self._lock = lock if lock is not None else threading.RLock()

        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self._init_db()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def _connect(self) -> sqlite3.Connection:
        # New connection per operation: the dispatcher and worker threads both use the store
        return sqlite3.connect(self.db_path, timeout=30)

    def _init_db(self) -> None:
        with self._lock:
            try:
                with closing(self._connect()) as conn, conn:
                    conn.execute(f'''
                        CREATE TABLE IF NOT EXISTS "{self.table}" (
                            _id INTEGER PRIMARY KEY AUTOINCREMENT,
                            timestamp INTEGER NOT NULL,
                            data TEXT NOT NULL
                        )
                    ''')
            except sqlite3.Error as e:
                log_error(f"Could not create table {self.table} in {self.db_path}: {e}")

    def insert(self, timestamp: int, payload: str) -> bool:
        """
        Append a row.

        Returns:
            True if the row was written, False on storage failure
        """
        with self._lock:
            try:
                with closing(self._connect()) as conn, conn:
                    conn.execute(
                        f'INSERT INTO "{self.table}" (timestamp, data) VALUES (?, ?)',
                        (int(timestamp), payload if payload is not None else ''),
                    )
                return True
            except sqlite3.Error as e:
                log_error(f"Exception in insert() for {self.queue_name}: {e}")
                return False

    def count(self) -> int:
        """Number of rows, 0 on storage failure."""
        with self._lock:
            try:
                with closing(self._connect()) as conn:
                    row = conn.execute(f'SELECT COUNT(*) FROM "{self.table}"').fetchone()
                    return int(row[0]) if row else 0
            except sqlite3.Error as e:
                log_error(f"Exception in count() for {self.queue_name}: {e}")
                return 0

    def ordered_scan(self) -> List[DurableRow]:
        """All rows, oldest first. Empty list on storage failure."""
        with self._lock:
            try:
                with closing(self._connect()) as conn:
                    cursor = conn.execute(
                        f'SELECT _id, timestamp, data FROM "{self.table}" ORDER BY timestamp ASC, _id ASC'
                    )
                    return [DurableRow(row[0], row[1], row[2]) for row in cursor]
            except sqlite3.Error as e:
                log_error(f"Exception in ordered_scan() for {self.queue_name}: {e}")
                return []

    def peek_oldest(self) -> Optional[DurableRow]:
        """Oldest row without removing it, or None."""
        with self._lock:
            try:
                with closing(self._connect()) as conn:
                    row = conn.execute(
                        f'SELECT _id, timestamp, data FROM "{self.table}" '
                        f'ORDER BY timestamp ASC, _id ASC LIMIT 1'
                    ).fetchone()
                    return DurableRow(row[0], row[1], row[2]) if row else None
            except sqlite3.Error as e:
                log_error(f"Exception in peek_oldest() for {self.queue_name}: {e}")
                return None

    def remove_oldest(self) -> bool:
        """
        Delete the oldest row.

        Returns:
            True if a row was deleted
        """
        with self._lock:
            try:
                with closing(self._connect()) as conn, conn:
                    cursor = conn.execute(
                        f'DELETE FROM "{self.table}" WHERE _id = ('
                        f'SELECT _id FROM "{self.table}" ORDER BY timestamp ASC, _id ASC LIMIT 1)'
                    )
                    if cursor.rowcount == 0:
                        log_debug(f"Tried to remove next item but {self.queue_name} is empty")
                    return cursor.rowcount > 0
            except sqlite3.Error as e:
                log_error(f"Exception in remove_oldest() for {self.queue_name}: {e}")
                return False

    def delete(self, row_id: int) -> bool:
        """Delete one row by id."""
        with self._lock:
            try:
                with closing(self._connect()) as conn, conn:
                    cursor = conn.execute(f'DELETE FROM "{self.table}" WHERE _id = ?', (row_id,))
                    return cursor.rowcount > 0
            except sqlite3.Error as e:
                log_error(f"Exception in delete({row_id}) for {self.queue_name}: {e}")
                return False

    def clear(self) -> int:
        """
        Delete every row.

        Returns:
            Number of rows deleted (0 on storage failure)
        """
        with self._lock:
            try:
                with closing(self._connect()) as conn, conn:
                    cursor = conn.execute(f'DELETE FROM "{self.table}" WHERE 1')
                    return cursor.rowcount
            except sqlite3.Error as e:
                log_error(f"Exception in clear() for {self.queue_name}: {e}")
                return 0


__all__ = ['DurableStore', 'table_name_for', 'DEFAULT_DB_FILENAME', 'TABLE_PREFIX']
