"""
Component logging for the work queue.

Every module gets the same five level functions bound to a component name,
so call sites stay short and the logger hierarchy stays predictable:
  workqueue.<component>

Usage:
    from shared.log import create_logger
    log_trace, log_debug, log_info, log_warn, log_error = create_logger("Worker")
    log_info("Processing item")  # -> logger 'workqueue.Worker', level INFO
"""

import logging

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER = "workqueue"


def get_logger(component: str = "") -> logging.Logger:
    """Return the stdlib logger backing a component."""
    name = f"{ROOT_LOGGER}.{component}" if component else ROOT_LOGGER
    return logging.getLogger(name)


def create_logger(component: str = ""):
    """Create log functions for a component.

    Args:
        component: Component name suffix. If provided, the logger becomes
                   "workqueue.{component}", otherwise "workqueue".

    Returns:
        Tuple of (log_trace, log_debug, log_info, log_warn, log_error) functions.
        log_error accepts exc_info like Logger.error.
    """
    logger = get_logger(component)

    def log_trace(msg): logger.log(TRACE, msg)
    def log_debug(msg): logger.debug(msg)
    def log_info(msg): logger.info(msg)
    def log_warn(msg): logger.warning(msg)
    def log_error(msg, exc_info=False): logger.error(msg, exc_info=exc_info)

    return log_trace, log_debug, log_info, log_warn, log_error


def configure_logging(debug: bool = False) -> None:
    """Attach a stderr handler to the workqueue logger tree.

    Safe to call more than once; only the first call adds a handler.
    """
    root = get_logger()
    root.setLevel(TRACE if debug else logging.INFO)
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%H:%M:%S',
    ))
    root.addHandler(handler)
