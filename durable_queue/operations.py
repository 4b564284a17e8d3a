"""
Read-only inspection and maintenance of persisted queues.

Stateless helpers that open the database file directly. They are meant for
tooling outside the host process (see process_queue.py), not for use while
a QueueService on the same queue is running.
"""

import os
import sqlite3
from contextlib import closing
from typing import List

from durable_queue.store import TABLE_PREFIX, table_name_for


def _table_names(conn: sqlite3.Connection) -> List[str]:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name LIKE ? ORDER BY name",
        (TABLE_PREFIX + '%',),
    )
    return [row[0] for row in cursor]


def list_queues(db_path: str) -> List[str]:
    """
    List queue table names in a database file.

    Returns table names with the prefix stripped. Names are the sanitized form
    used for storage, which can differ from the queue_name given at runtime.
    """
    if not os.path.exists(db_path):
        return []
    with closing(sqlite3.connect(db_path)) as conn:
        return [name[len(TABLE_PREFIX):] for name in _table_names(conn)]


def get_stats(db_path: str) -> dict:
    """
    Get pending item counts per queue.

    Args:
        db_path: Path to the queue database file

    Returns:
        Dict mapping queue name -> number of persisted items
        (empty dict if the file does not exist yet)
    """
    if not os.path.exists(db_path):
        return {}

    with closing(sqlite3.connect(db_path)) as conn:
        stats = {}
        for table in _table_names(conn):
            row = conn.execute(f'SELECT COUNT(*) FROM "{table}"').fetchone()
            stats[table[len(TABLE_PREFIX):]] = row[0]
        return stats


def get_payloads(db_path: str, queue_name: str) -> List[dict]:
    """
    Get persisted rows of one queue, oldest first.

    Returns:
        List of dicts with: id, timestamp, data
    """
    if not os.path.exists(db_path):
        return []
    table = table_name_for(queue_name)
    with closing(sqlite3.connect(db_path)) as conn:
        if table not in _table_names(conn):
            return []
        cursor = conn.execute(
            f'SELECT _id, timestamp, data FROM "{table}" ORDER BY timestamp ASC, _id ASC'
        )
        return [{'id': r[0], 'timestamp': r[1], 'data': r[2]} for r in cursor]


def clear_queue(db_path: str, queue_name: str) -> int:
    """
    Delete every persisted item of one queue.

    Returns:
        Number of items deleted
    """
    if not os.path.exists(db_path):
        return 0
    table = table_name_for(queue_name)
    with closing(sqlite3.connect(db_path)) as conn:
        if table not in _table_names(conn):
            return 0
        cursor = conn.execute(f'DELETE FROM "{table}" WHERE 1')
        deleted = cursor.rowcount
        conn.commit()
        return deleted


__all__ = ['list_queues', 'get_stats', 'get_payloads', 'clear_queue']
