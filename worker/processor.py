"""
Background worker loop for draining a queue.

One WorkerLoop instance is one run: it is started on its own daemon thread,
drains the queue front to back by calling the application's processing
function, and exits on exhaustion, PAUSE, STOP or a shutdown request.

Return codes:
- CONTINUE: item removed, next item
- PAUSE: item stays at the head, remainder persisted, state PAUSED
- STOP: queue cleared, state IDLE
"""

import threading
import time
from typing import Any, Callable, Optional

from durable_queue.models import QueueState, ReturnCode, WorkItem
from durable_queue.strategies import QueueStrategy
from hooks.lifecycle import QueueHooks
from shared.log import create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Worker")


class TransientError(Exception):
    """Retry-able processing failure; the queue pauses on it."""
    pass


class PermanentError(Exception):
    """Non-retry-able processing failure; the queue stops and is cleared."""
    pass


class WorkerLoop:
    """
    Drains one queue on a background thread.

    The owning service decides when a loop may start; the loop reports every
    state change back through set_state while holding the shared lock, so the
    service's "is a worker running" answer and the queue contents never
    disagree.

    Args:
        name: Queue name, used for the thread name and logs
        strategy: Persistence strategy holding the queue
        process: Callable taking a payload and returning a ReturnCode
        hooks: QueueHooks implementation of the owning application
        lock: The service lock (shared with the strategy and store)
        set_state: Called with the new QueueState whenever the run ends
        report: No-argument callable emitting a count report
        stats: Optional QueueStats to record into
        on_exit: Optional callable run after the thread has released everything
    """

    def __init__(
        self,
        name: str,
        strategy: QueueStrategy,
        process: Callable[[Any], ReturnCode],
        hooks: QueueHooks,
        lock: threading.RLock,
        set_state: Callable[[QueueState], None],
        report: Callable[[], None],
        stats=None,
        on_exit: Optional[Callable[[], None]] = None,
    ):
        self.name = name
        self.strategy = strategy
        self.process = process
        self.hooks = hooks
        self.lock = lock
        self._set_state = set_state
        self._report = report
        self._stats = stats
        self._on_exit = on_exit
        self._stop_requested = threading.Event()
        self._finished = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the worker thread."""
        self.thread = threading.Thread(target=self._run, name=f"{self.name} worker", daemon=True)
        self.thread.start()
        log_trace(f"Worker for {self.name} started")

    def request_stop(self) -> None:
        """Ask the loop to halt after the current item, persisting the rest."""
        self._stop_requested.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the thread to exit.

        Returns:
            True if the thread has exited (or never started)
        """
        if self.thread is None:
            return True
        self.thread.join(timeout=timeout)
        return not self.thread.is_alive()

    def is_alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def _call_hook(self, hook_name: str, *args) -> None:
        """Invoke a lifecycle hook; a raising hook is logged, never fatal."""
        try:
            getattr(self.hooks, hook_name)(*args)
        except Exception as e:
            log_error(f"Hook {hook_name} raised {type(e).__name__}: {e}", exc_info=True)

    def _finish(self, state: QueueState) -> None:
        """Unload and publish the final state. Caller holds the lock."""
        self.strategy.on_unload()
        self._call_hook('on_unload')
        self._finished = True
        self._set_state(state)

    def _run(self) -> None:
        """Thread body: hold the keep-alive resource for the whole run."""
        if self._stats is not None:
            self._stats.record_run()
        try:
            with self.hooks.keep_alive():
                self._drain()
        except Exception as e:
            log_error(f"Worker loop error for {self.name}: {e}", exc_info=True)
        finally:
            if not self._finished:
                # Abnormal exit (keep_alive or an internal error): never leave the service RUNNING
                with self.lock:
                    state = QueueState.PAUSED if self.strategy.count() > 0 else QueueState.IDLE
                    self._finish(state)
                log_warn(f"Worker for {self.name} exited abnormally, queue is now {state.value}")

        if self._on_exit is not None:
            try:
                self._on_exit()
            except Exception as e:
                log_warn(f"Exit callback for {self.name} failed: {e}")

    def _drain(self) -> None:
        self.strategy.on_load()
        self._call_hook('on_load')
        self._call_hook('on_start')

        while True:
            with self.lock:
                remaining = self.strategy.count()
                if remaining > 0 and self._stop_requested.is_set():
                    log_info(f"Stop requested, persisting {remaining} item(s) of {self.name}")
                    self._finish(QueueState.PAUSED)
                    return
                item = self.strategy.peek() if remaining > 0 else None
                if item is None and remaining > 0:
                    # peek drops unreadable rows; only what is left decides the outcome
                    remaining = self.strategy.count()
                    if remaining > 0:
                        log_error(f"{self.name} reports {remaining} item(s) but none could be read, pausing")
                        self._finish(QueueState.PAUSED)
                        return

            if remaining == 0:
                log_debug(f"Processing of {self.name} complete")
                self._call_hook('on_emptied', True)
                with self.lock:
                    # Work submitted while the emptied hook ran keeps this run going
                    if self.strategy.count() == 0:
                        self._finish(QueueState.IDLE)
                        return
                continue

            code = self._process_item(item)

            if code is ReturnCode.CONTINUE:
                with self.lock:
                    removed = self.strategy.remove(item)
                    if not removed:
                        # Would reprocess the same head forever
                        log_error(f"Could not remove processed item from {self.name}, pausing")
                        self._finish(QueueState.PAUSED)
                        return
                self._call_hook('on_item_processed', item.payload, self._report)

            elif code is ReturnCode.STOP:
                log_debug(f"Return said to stop, abandoning {self.strategy.count()} item(s) of {self.name}")
                if self._stats is not None:
                    self._stats.record_stop()
                self._call_hook('on_emptied', False)
                with self.lock:
                    cleared = self.strategy.clear()
                    if self._stats is not None:
                        self._stats.record_aborted(cleared)
                    self._finish(QueueState.IDLE)
                return

            else:
                log_debug(f"Return said to pause, {self.name} keeps its head item")
                if self._stats is not None:
                    self._stats.record_pause()
                self._call_hook('on_paused', item.payload)
                with self.lock:
                    self._finish(QueueState.PAUSED)
                return

    def _process_item(self, item: WorkItem) -> ReturnCode:
        """Run the processing function, converting exceptions to return codes."""
        # Lazy import: validation.errors imports this module
        from validation.errors import coerce_return_code, return_code_for_exception

        log_trace(f"Processing item enqueued at {item.enqueued_at} from {self.name}")
        start = time.perf_counter()
        try:
            code = coerce_return_code(self.process(item.payload))
        except Exception as e:
            code = return_code_for_exception(e)
            log_warn(f"process() raised {type(e).__name__}: {e} (treating as {code.name})")
            return code
        elapsed = time.perf_counter() - start

        if code is ReturnCode.CONTINUE and self._stats is not None:
            self._stats.record_processed(elapsed)
        log_trace(f"Item processed in {elapsed * 1000:.0f}ms, return code is {code.name}")
        return code


__all__ = ['WorkerLoop', 'TransientError', 'PermanentError']
