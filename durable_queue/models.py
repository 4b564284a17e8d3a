"""
Value types shared by the queue, the worker and the dispatcher.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ReturnCode(Enum):
    """What the worker should do after processing an item."""
    CONTINUE = "continue"
    PAUSE = "pause"
    STOP = "stop"


class QueueState(Enum):
    """Worker lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Command(Enum):
    """
    Control requests understood by the dispatcher.

    Integer values are the wire codes accepted by Command.parse().
    """
    RESUME = 0
    RESUME_SKIP_FIRST = 1
    ABORT = 2
    QUERY_COUNT = 3

    @classmethod
    def parse(cls, raw) -> Optional['Command']:
        """
        Coerce a raw command value into a Command.

        Accepts a Command, its integer code, or its name (case-insensitive).
        Booleans are not codes.

        Returns:
            The Command, or None if the value is not recognized
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, bool):
            return None
        if isinstance(raw, int):
            try:
                return cls(raw)
            except ValueError:
                return None
        if isinstance(raw, str):
            return cls.__members__.get(raw.strip().upper())
        return None


def now_ms() -> int:
    """Current wall clock time in integer milliseconds."""
    return int(time.time() * 1000)


@dataclass
class WorkItem:
    """
    An opaque payload plus the time it entered the queue.

    row_id is set on items read from the store and names the row to delete.
    """
    payload: Any
    enqueued_at: int = field(default_factory=now_ms)
    row_id: Optional[int] = field(default=None, compare=False)


@dataclass(frozen=True)
class DurableRow:
    """On-disk form of a WorkItem."""
    row_id: int
    timestamp: int
    payload: str


@dataclass(frozen=True)
class CountReport:
    """Out-of-band count notification."""
    queue_name: str
    count: int


@dataclass(frozen=True)
class WorkRequest:
    """A unit of work submitted to the dispatcher."""
    payload: Any


@dataclass(frozen=True)
class CommandRequest:
    """A control request submitted to the dispatcher. `command` is raw input."""
    command: Any


__all__ = [
    'ReturnCode',
    'QueueState',
    'Command',
    'WorkItem',
    'DurableRow',
    'CountReport',
    'WorkRequest',
    'CommandRequest',
    'now_ms',
]
