"""
Durable Queue Module

SQLite-backed storage and persistence strategies for the work queue.
Items survive process restarts; the worker and dispatcher live in the
worker package.
"""

from durable_queue.codec import JsonCodec, PayloadCodec
from durable_queue.models import (
    Command,
    CommandRequest,
    CountReport,
    DurableRow,
    QueueState,
    ReturnCode,
    WorkItem,
    WorkRequest,
)
from durable_queue.store import DurableStore
from durable_queue.strategies import DurableStrategy, QueueStrategy, SnapshotStrategy, create_strategy

__all__ = [
    'Command',
    'CommandRequest',
    'CountReport',
    'DurableRow',
    'DurableStore',
    'DurableStrategy',
    'JsonCodec',
    'PayloadCodec',
    'QueueState',
    'QueueStrategy',
    'ReturnCode',
    'SnapshotStrategy',
    'WorkItem',
    'WorkRequest',
    'create_strategy',
]
