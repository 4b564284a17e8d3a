"""
Request intake for a queue.

The Dispatcher owns a single intake thread fed by a queue.Queue channel.
Producers submit work items and commands; the intake thread executes them
one at a time in arrival order. It also owns the queue state and decides
when a WorkerLoop may start. Only the intake thread ever starts a worker,
so "not running" observed under the lock stays true until it acts.
"""

import queue
import threading
from typing import Any, Callable, Optional

from durable_queue.models import (
    Command,
    CommandRequest,
    QueueState,
    ReturnCode,
    WorkItem,
    WorkRequest,
)
from durable_queue.strategies import QueueStrategy
from hooks.lifecycle import QueueHooks
from shared.log import create_logger
from worker.processor import WorkerLoop

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Dispatcher")

# Sentinel put on the channel by shutdown()
_SHUTDOWN = object()


class Dispatcher:
    """
    Executes submitted requests on a dedicated intake thread.

    Args:
        name: Queue name, used for thread names and logs
        strategy: Persistence strategy holding the queue
        process: Processing function handed to every WorkerLoop
        hooks: QueueHooks of the owning application
        lock: Service lock shared with the strategy
        report: No-argument callable emitting a count report
        resume_on_new_item: Restart a PAUSED queue when a new item arrives
        stats: Optional QueueStats to record into
        initial_state: IDLE, or PAUSED when the store already holds items
        on_run_finished: Optional callable run after each worker thread ends
    """

    def __init__(
        self,
        name: str,
        strategy: QueueStrategy,
        process: Callable[[Any], ReturnCode],
        hooks: QueueHooks,
        lock: threading.RLock,
        report: Callable[[], None],
        resume_on_new_item: bool = True,
        stats=None,
        initial_state: QueueState = QueueState.IDLE,
        on_run_finished: Optional[Callable[[], None]] = None,
    ):
        self.name = name
        self.strategy = strategy
        self.process = process
        self.hooks = hooks
        self.lock = lock
        self.resume_on_new_item = resume_on_new_item
        self._report = report
        self._stats = stats
        self._on_run_finished = on_run_finished

        self._state = initial_state
        self._running = False
        self._worker: Optional[WorkerLoop] = None

        self._channel: queue.Queue = queue.Queue()
        self._pending = 0
        self._idle = threading.Condition()
        self._accepting = True
        self.thread: Optional[threading.Thread] = None

    # =========================================================================
    # Thread control
    # =========================================================================

    def start(self) -> None:
        """Start the intake thread."""
        if self.thread is not None and self.thread.is_alive():
            log_warn(f"Dispatcher for {self.name} already running")
            return
        self.thread = threading.Thread(target=self._intake_loop, name=f"{self.name} dispatcher", daemon=True)
        self.thread.start()
        log_trace(f"Dispatcher for {self.name} started")

    def submit(self, request) -> bool:
        """
        Queue a request for the intake thread and return immediately.

        A CommandRequest is a command; a WorkRequest or any other object is
        a work item payload.

        Returns:
            False if the dispatcher has been shut down
        """
        with self._idle:
            if not self._accepting:
                log_warn(f"Dispatcher for {self.name} is shut down, request ignored")
                return False
            self._pending += 1
            self._channel.put(request)
        return True

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every submitted request has been executed.

        Returns:
            True if the channel drained before the timeout
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Stop the intake thread after the requests already submitted.

        Returns:
            True if the thread exited within the timeout
        """
        with self._idle:
            self._accepting = False
            if self.thread is None:
                return True
            self._channel.put(_SHUTDOWN)
        self.thread.join(timeout=timeout)
        if self.thread.is_alive():
            log_warn(f"Dispatcher for {self.name} did not stop within {timeout}s")
            return False
        log_trace(f"Dispatcher for {self.name} stopped")
        return True

    def stop_worker(self, timeout: Optional[float] = None) -> bool:
        """
        Ask a running worker to halt after its current item and wait for it.

        Returns:
            True if no worker is left running
        """
        with self.lock:
            worker = self._worker
            if worker is None:
                return True
            if self._running:
                worker.request_stop()
        return worker.join(timeout)

    def wait_worker(self, timeout: Optional[float] = None) -> bool:
        """Wait for the current worker run, if any, to end on its own."""
        with self.lock:
            worker = self._worker
        if worker is None:
            return True
        return worker.join(timeout)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> QueueState:
        with self.lock:
            return self._state

    def is_worker_running(self) -> bool:
        with self.lock:
            return self._running

    def _set_state(self, state: QueueState) -> None:
        """Called by the worker under the lock when its run ends."""
        with self.lock:
            self._state = state
            self._running = state is QueueState.RUNNING
        log_debug(f"{self.name} is now {state.value}")

    def _start_worker(self) -> None:
        """Start a new run. Caller holds the lock and has checked not running."""
        if not self._accepting:
            # Shutting down: a worker started now would never be asked to stop
            log_info(f"{self.name} is shutting down, items kept for the next session")
            return
        self._state = QueueState.RUNNING
        self._running = True
        self._worker = WorkerLoop(
            self.name,
            self.strategy,
            self.process,
            self.hooks,
            self.lock,
            set_state=self._set_state,
            report=self._report,
            stats=self._stats,
            on_exit=self._on_run_finished,
        )
        self._worker.start()

    def _reap_worker(self) -> None:
        """Wait for a finished worker that is still releasing its keep-alive resource."""
        with self.lock:
            worker = self._worker if not self._running else None
        if worker is not None and worker.is_alive():
            worker.join()

    # =========================================================================
    # Intake
    # =========================================================================

    def _intake_loop(self) -> None:
        while True:
            request = self._channel.get()
            if request is _SHUTDOWN:
                break
            try:
                self._reap_worker()
                if isinstance(request, CommandRequest):
                    self._handle_command(request.command)
                elif isinstance(request, WorkRequest):
                    self._handle_work(request.payload)
                else:
                    self._handle_work(request)
            except Exception as e:
                log_error(f"Dispatcher error for {self.name}: {e}", exc_info=True)
            finally:
                with self._idle:
                    self._pending -= 1
                    self._idle.notify_all()

    def _handle_work(self, payload) -> None:
        item = WorkItem(payload)
        if self._stats is not None:
            self._stats.record_enqueued()
        with self.lock:
            if not self.strategy.enqueue(item):
                log_warn(f"Item dropped before reaching {self.name}")
                return
            if self._running:
                return
            if self._state is QueueState.IDLE:
                self._start_worker()
            elif self._state is QueueState.PAUSED and self.resume_on_new_item:
                log_debug(f"New item resumes paused {self.name}")
                self._start_worker()

    def _handle_command(self, raw) -> None:
        command = Command.parse(raw)
        if command is None:
            log_warn(f"Unrecognized command {raw!r} for {self.name}, ignored")
            return

        with self.lock:
            if self._running:
                log_info(f"Worker of {self.name} is running, command {command.name} ignored")
                return

        log_debug(f"Executing {command.name} on {self.name}")
        if command is Command.RESUME:
            with self.lock:
                self._start_worker()

        elif command is Command.RESUME_SKIP_FIRST:
            with self.lock:
                if not self._accepting:
                    log_info(f"{self.name} is shutting down, {command.name} ignored")
                    return
                if self.strategy.remove():
                    if self._stats is not None:
                        self._stats.record_aborted(1)
                else:
                    log_debug(f"Nothing to skip in {self.name}")
                self._start_worker()

        elif command is Command.ABORT:
            self._abort()

        elif command is Command.QUERY_COUNT:
            self._report()

    def _abort(self) -> None:
        """Discard the whole queue. A no-op on an idle, empty queue."""
        with self.lock:
            if self._state is QueueState.IDLE and self.strategy.count() == 0:
                log_trace(f"{self.name} already empty, nothing to abort")
                return
        try:
            self.hooks.on_emptied(False)
        except Exception as e:
            log_error(f"Hook on_emptied raised {type(e).__name__}: {e}", exc_info=True)
        with self.lock:
            cleared = self.strategy.clear()
            if self._stats is not None:
                self._stats.record_aborted(cleared)
            self._state = QueueState.IDLE
        log_info(f"Aborted {self.name}, discarded {cleared} item(s)")


__all__ = ['Dispatcher']
