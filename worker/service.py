"""
Queue service facade.

QueueService wires one queue together: config, store, strategy,
dispatcher, hooks, count-report listeners and run statistics. The owning
application only ever talks to this class.

Usage:
    config = QueueConfig(data_dir='/var/lib/myapp')

    def upload(payload):
        if not network_up():
            return ReturnCode.PAUSE
        send(payload)
        return ReturnCode.CONTINUE

    service = QueueService(config, upload, queue_name='uploads')
    service.enqueue({'path': '/tmp/a.jpg'})
    ...
    service.command(Command.RESUME)
    service.shutdown()
"""

import os
import threading
from typing import Any, Callable, List, Optional

from durable_queue.codec import PayloadCodec
from durable_queue.models import (
    Command,
    CommandRequest,
    CountReport,
    QueueState,
    ReturnCode,
    WorkRequest,
)
from durable_queue.store import DurableStore
from durable_queue.strategies import QueueStrategy, create_strategy
from hooks.lifecycle import QueueHooks
from shared.log import configure_logging, create_logger
from validation.config import QueueConfig
from worker.dispatcher import Dispatcher
from worker.stats import QueueStats

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Service")

CountListener = Callable[[CountReport], None]


class QueueService:
    """
    A durable, resumable work queue drained by one background worker.

    Args:
        config: Validated QueueConfig
        process: Called with each payload on the worker thread; returns a ReturnCode
        hooks: Optional QueueHooks (default: no-op hooks)
        codec: Optional PayloadCodec (default: JsonCodec)
        queue_name: Storage namespace (default: hooks.queue_name())
        resume_on_new_item: Overrides config.resume_on_new_item when given
        allows_count_reports: Overrides config.allows_count_reports when given
    """

    def __init__(
        self,
        config: QueueConfig,
        process: Callable[[Any], ReturnCode],
        hooks: Optional[QueueHooks] = None,
        codec: Optional[PayloadCodec] = None,
        queue_name: Optional[str] = None,
        resume_on_new_item: Optional[bool] = None,
        allows_count_reports: Optional[bool] = None,
    ):
        self.config = config
        if config.debug_logging:
            configure_logging(debug=True)
        config.log_config()

        self.hooks = hooks if hooks is not None else QueueHooks()
        self.name = queue_name or self.hooks.queue_name()
        self.allows_count_reports = (
            config.allows_count_reports if allows_count_reports is None else allows_count_reports
        )
        if resume_on_new_item is None:
            resume_on_new_item = config.resume_on_new_item

        self.lock = threading.RLock()
        self.stats = QueueStats()
        self._listeners: List[CountListener] = []
        self._listeners_lock = threading.Lock()

        self.store = DurableStore(config.db_path, self.name, lock=self.lock)
        self.strategy: QueueStrategy = create_strategy(
            config.strategy,
            self.store,
            codec=codec,
            lock=self.lock,
            on_drop=self.stats.record_dropped,
        )

        # Items left from a previous session wait for an explicit resume
        pending = self.strategy.count()
        initial_state = QueueState.PAUSED if pending > 0 else QueueState.IDLE
        if pending:
            log_info(f"{self.name} has {pending} item(s) from a previous session, starting paused")

        self.dispatcher = Dispatcher(
            self.name,
            self.strategy,
            process,
            self.hooks,
            self.lock,
            report=self.report_count,
            resume_on_new_item=resume_on_new_item,
            stats=self.stats,
            initial_state=initial_state,
            on_run_finished=self._save_stats if config.save_stats else None,
        )
        self.dispatcher.start()
        log_debug(f"Queue service {self.name} ready ({self.strategy.name} strategy)")

    # =========================================================================
    # Producer API
    # =========================================================================

    def enqueue(self, payload) -> bool:
        """Submit one payload. Returns immediately."""
        return self.dispatcher.submit(WorkRequest(payload))

    def command(self, command) -> bool:
        """Submit a command (Command, integer code or name). Returns immediately."""
        return self.dispatcher.submit(CommandRequest(command))

    def submit(self, request) -> bool:
        """Submit a WorkRequest, CommandRequest or bare payload."""
        return self.dispatcher.submit(request)

    def resume(self) -> bool:
        return self.command(Command.RESUME)

    def resume_skip_first(self) -> bool:
        return self.command(Command.RESUME_SKIP_FIRST)

    def abort(self) -> bool:
        return self.command(Command.ABORT)

    def query_count(self) -> bool:
        return self.command(Command.QUERY_COUNT)

    # =========================================================================
    # Inspection
    # =========================================================================

    def count(self) -> int:
        """Items currently queued (in memory or in the store)."""
        with self.lock:
            return self.strategy.count()

    @property
    def state(self) -> QueueState:
        return self.dispatcher.state

    def is_worker_running(self) -> bool:
        return self.dispatcher.is_worker_running()

    @property
    def stats_path(self) -> str:
        return os.path.join(self.config.data_dir, f"{self.store.table}_stats.json")

    # =========================================================================
    # Count reports
    # =========================================================================

    def add_count_listener(self, listener: CountListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_count_listener(self, listener: CountListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def report_count(self) -> None:
        """Deliver a CountReport to every listener, if count reports are allowed."""
        if not self.allows_count_reports:
            return
        report = CountReport(self.name, self.count())
        with self._listeners_lock:
            listeners = list(self._listeners)
        log_trace(f"Count report for {self.name}: {report.count}")
        for listener in listeners:
            try:
                listener(report)
            except Exception as e:
                log_error(f"Count listener raised {type(e).__name__}: {e}", exc_info=True)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every submitted request has been executed and no worker runs.

        Returns:
            True if the queue settled before the timeout
        """
        if not self.dispatcher.join(timeout):
            return False
        # A worker started by the last request may still be draining
        return self.dispatcher.wait_worker(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop accepting requests, then halt the worker after its current item.

        Remaining items are persisted (snapshot strategy) or were never
        removed (durable strategy) and are picked up by the next service
        on the same data directory.
        """
        timeout = self.config.shutdown_timeout if wait else 0
        self.dispatcher.shutdown(timeout=timeout)
        if not self.dispatcher.stop_worker(timeout=timeout):
            log_warn(
                f"Worker of {self.name} did not stop within {timeout}s, "
                f"the current item may be processed again next session"
            )
        elif self.config.save_stats:
            self._save_stats()
        log_info(f"Queue service {self.name} shut down, {self.count()} item(s) left")

    def _save_stats(self) -> None:
        self.stats.save_to_file(self.stats_path)


__all__ = ['QueueService', 'CountListener']
