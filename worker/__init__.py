"""
Background worker for draining durable queues.

Exports QueueService (the facade applications use), the Dispatcher and
WorkerLoop it is built from, run statistics and the processing error
classes.
"""

# processor first: dispatcher and service import it
from worker.processor import WorkerLoop, TransientError, PermanentError
from worker.stats import QueueStats
from worker.dispatcher import Dispatcher
from worker.service import QueueService

__all__ = [
    'QueueService',
    'Dispatcher',
    'WorkerLoop',
    'QueueStats',
    'TransientError',
    'PermanentError',
]
