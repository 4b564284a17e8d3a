"""
Persistence strategies for the work queue.

Both strategies expose the same contract to the worker and dispatcher:
enqueue / peek / remove / count / clear, plus on_load / on_unload which
bracket each worker run.

SnapshotStrategy:
    Keeps an in-memory FIFO while a run is active. The store is written only
    at run boundaries: on_load moves everything from the store into memory
    and empties the store; on_unload writes whatever is left back. At any
    instant the queue lives in memory or in the store, never both.

DurableStrategy:
    No memory at all. Every call goes to the store, so the queue survives
    termination at any point, including mid-item (an item is deleted only
    after processing reports success).
"""

import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Optional

from durable_queue.codec import JsonCodec, PayloadCodec, safe_deserialize, safe_serialize
from durable_queue.models import WorkItem
from durable_queue.store import DurableStore
from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Strategy")


class QueueStrategy(ABC):
    """
    Base class for persistence strategies.

    Args:
        store: DurableStore owned exclusively by this strategy
        codec: PayloadCodec for converting items to stored strings
        lock: Lock shared with the store and the service (default: the store's lock)
        on_drop: Optional callback invoked with a reason string whenever an
                 item is discarded because of a codec or storage failure
    """

    name = 'base'

    def __init__(
        self,
        store: DurableStore,
        codec: Optional[PayloadCodec] = None,
        lock: Optional[threading.RLock] = None,
        on_drop: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.codec = codec if codec is not None else JsonCodec()
        self.lock = lock if lock is not None else store.lock
        self._on_drop = on_drop

    def _dropped(self, reason: str) -> None:
        if self._on_drop is not None:
            try:
                self._on_drop(reason)
            except Exception as e:
                log_warn(f"Drop callback raised {type(e).__name__}: {e}")

    def _write(self, item: WorkItem) -> bool:
        """Serialize one item and insert it into the store."""
        data = safe_serialize(self.codec, item.payload)
        if data is None:
            self._dropped('serialize')
            return False
        if not self.store.insert(item.enqueued_at, data):
            self._dropped('storage')
            return False
        return True

    def _remove_store(self, item: Optional[WorkItem]) -> bool:
        if item is not None and item.row_id is not None:
            return self.store.delete(item.row_id)
        return self.store.remove_oldest()

    def _peek_store(self) -> Optional[WorkItem]:
        """
        Oldest deserializable item in the store.

        Rows that fail to deserialize are deleted so one corrupt entry cannot
        block the rest of the queue.
        """
        while True:
            row = self.store.peek_oldest()
            if row is None:
                return None
            payload = safe_deserialize(self.codec, row.payload)
            if payload is not None:
                return WorkItem(payload, row.timestamp, row.row_id)
            log_warn(f"Dropping undeserializable row {row.row_id} from {self.store.queue_name}")
            self._dropped('deserialize')
            if not self.store.delete(row.row_id):
                # Storage trouble: stop here rather than spin on the same row
                return None

    @abstractmethod
    def enqueue(self, item: WorkItem) -> bool:
        """Add an item at the tail. Returns False if it was dropped."""

    @abstractmethod
    def peek(self) -> Optional[WorkItem]:
        """Oldest item without removing it."""

    @abstractmethod
    def remove(self, item: Optional[WorkItem] = None) -> bool:
        """
        Remove the oldest item.

        Pass the item returned by peek() to remove exactly that item, even if
        an older one has been enqueued since.
        """

    @abstractmethod
    def count(self) -> int:
        """Number of queued items."""

    @abstractmethod
    def clear(self) -> int:
        """Discard every item. Returns how many were discarded."""

    def on_load(self) -> None:
        """Called at the start of a worker run."""

    def on_unload(self) -> None:
        """Called at the end of a worker run."""

    @property
    def loaded(self) -> bool:
        return False


class SnapshotStrategy(QueueStrategy):
    """In-memory queue during runs, persisted only at run boundaries."""

    name = 'snapshot'

    def __init__(self, store, codec=None, lock=None, on_drop=None):
        super().__init__(store, codec, lock, on_drop)
        self._items: Deque[WorkItem] = deque()
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def enqueue(self, item: WorkItem) -> bool:
        with self.lock:
            if self._loaded:
                self._items.append(item)
                return True
            # No active run: the store is the queue
            return self._write(item)

    def on_load(self) -> None:
        with self.lock:
            if self._loaded:
                log_debug(f"{self.store.queue_name} already loaded")
                return
            rows = self.store.ordered_scan()
            if rows and self.store.clear() == 0:
                # Rows would sit in memory and in the store; run from the store instead
                log_error(f"Could not empty {self.store.queue_name} after loading, working from storage")
                return
            for row in rows:
                payload = safe_deserialize(self.codec, row.payload)
                if payload is None:
                    log_warn(f"Dropping undeserializable row {row.row_id} from {self.store.queue_name}")
                    self._dropped('deserialize')
                    continue
                self._items.append(WorkItem(payload, row.timestamp))
            self._loaded = True
            log_trace(f"Loaded {len(self._items)} item(s) from {self.store.queue_name}")

    def on_unload(self) -> None:
        with self.lock:
            if not self._loaded:
                return
            if self._items:
                log_trace(f"Writing {len(self._items)} item(s) back to {self.store.queue_name}")
            for item in self._items:
                if not self._write(item):
                    log_error(f"Failed to persist an item of {self.store.queue_name} (will try to keep going)")
            self._items.clear()
            self._loaded = False

    def peek(self) -> Optional[WorkItem]:
        with self.lock:
            if self._loaded:
                return self._items[0] if self._items else None
            return self._peek_store()

    def remove(self, item: Optional[WorkItem] = None) -> bool:
        with self.lock:
            if self._loaded:
                if not self._items:
                    return False
                self._items.popleft()
                return True
            return self._remove_store(item)

    def count(self) -> int:
        with self.lock:
            if self._loaded:
                return len(self._items)
            return self.store.count()

    def clear(self) -> int:
        with self.lock:
            removed = len(self._items)
            self._items.clear()
            return removed + self.store.clear()


class DurableStrategy(QueueStrategy):
    """Every operation goes straight to the store."""

    name = 'durable'

    def enqueue(self, item: WorkItem) -> bool:
        with self.lock:
            return self._write(item)

    def peek(self) -> Optional[WorkItem]:
        with self.lock:
            return self._peek_store()

    def remove(self, item: Optional[WorkItem] = None) -> bool:
        with self.lock:
            return self._remove_store(item)

    def count(self) -> int:
        # Always asks the store; no cached count
        with self.lock:
            return self.store.count()

    def clear(self) -> int:
        with self.lock:
            return self.store.clear()


STRATEGIES = {
    SnapshotStrategy.name: SnapshotStrategy,
    DurableStrategy.name: DurableStrategy,
}


def create_strategy(name: str, store: DurableStore, codec=None, lock=None, on_drop=None) -> QueueStrategy:
    """Build a strategy by name ('snapshot' or 'durable')."""
    try:
        cls = STRATEGIES[name]
    except KeyError:
        raise ValueError(f"Unknown queue strategy {name!r}, expected one of {sorted(STRATEGIES)}")
    return cls(store, codec=codec, lock=lock, on_drop=on_drop)


__all__ = [
    'QueueStrategy',
    'SnapshotStrategy',
    'DurableStrategy',
    'STRATEGIES',
    'create_strategy',
]
