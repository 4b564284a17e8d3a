"""
Lifecycle hooks for the owning application.

QueueHooks has a no-op default for every callback, so an application only
overrides the ones it cares about. Hooks run on the worker thread (load,
start, item processed, paused, emptied, unload) or the dispatcher thread
(emptied on abort). Keep them short; the dispatcher waits on them.
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator


class QueueHooks:
    """
    Callback points around a worker run.

    Call order for one run:
        keep_alive() entered
        on_load() -> on_start() -> [on_item_processed(item, report)]*
        then one of:
            on_emptied(True)     queue exhausted
            on_emptied(False)    STOP returned (queue cleared after)
            on_paused(item)      PAUSE returned
            (nothing)            shutdown requested
        on_unload()              every exit path
        keep_alive() exited
    """

    def queue_name(self) -> str:
        """Storage namespace. Defaults to the qualified class name."""
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    @contextmanager
    def keep_alive(self) -> Iterator[None]:
        """
        Resource held for the whole worker run.

        Override to acquire something that keeps the host awake or alive
        (a lock file, an inhibitor, a heartbeat). Released on every exit path.
        """
        yield

    def on_load(self) -> None:
        pass

    def on_start(self) -> None:
        pass

    def on_item_processed(self, item: Any, report: Callable[[], None]) -> None:
        """Called after an item was processed and removed. Default: send a count report."""
        report()

    def on_paused(self, item: Any) -> None:
        pass

    def on_emptied(self, all_processed: bool) -> None:
        pass

    def on_unload(self) -> None:
        pass


__all__ = ['QueueHooks']
