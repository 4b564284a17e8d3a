"""
Run statistics for a queue.

Tracks what happened to every item that entered the queue, so the
conservation rule can be checked from outside:

    items_processed + remaining + items_dropped + items_aborted == items_enqueued
"""

import json
import os
import threading
import time
from dataclasses import asdict, dataclass, field

from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Stats")

_COUNTERS = (
    'items_enqueued',
    'items_processed',
    'items_dropped',
    'items_aborted',
    'pauses',
    'stops',
    'runs',
)


@dataclass
class QueueStats:
    """Counters for one service session, mergeable into a cumulative file."""
    items_enqueued: int = 0
    items_processed: int = 0
    items_dropped: int = 0
    items_aborted: int = 0
    pauses: int = 0
    stops: int = 0
    runs: int = 0
    total_processing_time: float = 0.0
    session_start: float = field(default_factory=time.time)

    def __post_init__(self):
        self._lock = threading.Lock()
        # Totals already merged into the stats file by save_to_file
        self._saved = {name: 0 for name in _COUNTERS}
        self._saved['total_processing_time'] = 0.0

    def record_enqueued(self) -> None:
        with self._lock:
            self.items_enqueued += 1

    def record_processed(self, processing_time: float) -> None:
        with self._lock:
            self.items_processed += 1
            self.total_processing_time += processing_time

    def record_dropped(self, reason: str = '') -> None:
        with self._lock:
            self.items_dropped += 1

    def record_aborted(self, count: int) -> None:
        with self._lock:
            self.items_aborted += count

    def record_pause(self) -> None:
        with self._lock:
            self.pauses += 1

    def record_stop(self) -> None:
        with self._lock:
            self.stops += 1

    def record_run(self) -> None:
        with self._lock:
            self.runs += 1

    @property
    def avg_processing_time(self) -> float:
        """Average seconds per processed item (0.0 if none)."""
        if self.items_processed == 0:
            return 0.0
        return self.total_processing_time / self.items_processed

    def to_dict(self) -> dict:
        with self._lock:
            return asdict(self)

    def save_to_file(self, filepath: str) -> None:
        """
        Merge this session into the cumulative stats file.

        Only what changed since the previous save is added to whatever the
        file already holds, so saving after every run never double counts.
        The earliest session_start is kept. Written atomically (temp file +
        rename).
        """
        parent = os.path.dirname(filepath)
        if parent:
            os.makedirs(parent, exist_ok=True)

        current = self.to_dict()
        merged = dict(current)
        existing = QueueStats.load_from_file(filepath)
        for name in _COUNTERS + ('total_processing_time',):
            merged[name] = getattr(existing, name) + current[name] - self._saved[name]
        if os.path.exists(filepath):
            merged['session_start'] = min(current['session_start'], existing.session_start)

        tmp_path = filepath + '.tmp'
        try:
            with open(tmp_path, 'w') as f:
                json.dump(merged, f, indent=2)
            os.replace(tmp_path, filepath)
        except OSError as e:
            log_warn(f"Failed to save stats to {filepath}: {e}")
            return
        self._saved = {name: current[name] for name in self._saved}

    @classmethod
    def load_from_file(cls, filepath: str) -> 'QueueStats':
        """Load stats from JSON; fresh stats if missing or corrupt."""
        if not os.path.exists(filepath):
            return cls()
        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
            known = {k: v for k, v in data.items() if k in _COUNTERS or k in ('total_processing_time', 'session_start')}
            return cls(**known)
        except (json.JSONDecodeError, OSError, TypeError) as e:
            log_debug(f"Stats file {filepath} unreadable, starting fresh: {e}")
            return cls()


__all__ = ['QueueStats']
