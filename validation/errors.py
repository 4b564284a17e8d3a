"""
Centralized error classification for the worker loop.

A processing function normally reports failure through its return code.
When it raises instead, the exception is mapped to the return code the
worker acts on, so an escaping exception never kills the worker thread.
"""

import logging

from durable_queue.models import ReturnCode
from worker.processor import PermanentError, TransientError

# Module logger
logger = logging.getLogger('workqueue.errors')


def return_code_for_exception(exc: BaseException) -> ReturnCode:
    """
    Classify an exception raised by a processing function.

    - PermanentError: STOP (the application gave up on the whole queue)
    - TransientError: PAUSE (retry later, item stays at the head)
    - Anything else: PAUSE (safer, nothing is discarded)

    Args:
        exc: The exception raised by process()

    Returns:
        ReturnCode.STOP or ReturnCode.PAUSE
    """
    if isinstance(exc, PermanentError):
        logger.debug(f"PermanentError classified as STOP: {exc}")
        return ReturnCode.STOP

    if isinstance(exc, TransientError):
        logger.debug(f"TransientError classified as PAUSE: {exc}")
        return ReturnCode.PAUSE

    # Unknown errors default to pause (keeps the item for a later resume)
    logger.debug(f"Unknown exception classified as PAUSE: {type(exc).__name__}")
    return ReturnCode.PAUSE


def coerce_return_code(value) -> ReturnCode:
    """
    Normalize whatever process() returned.

    Accepts a ReturnCode or its value/name as a string. Anything else is
    treated as PAUSE so a buggy processing function cannot drop work.
    """
    if isinstance(value, ReturnCode):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        for code in ReturnCode:
            if code.value == lowered:
                return code
    logger.warning(f"process() returned unrecognized value {value!r}, pausing")
    return ReturnCode.PAUSE
