"""
Shared pytest fixtures for work queue tests.

Provides reusable fixtures for:
- Configuration objects and dicts
- Real DurableStore instances on a temp database file
- Recording hooks and scripted processing functions
- A QueueService factory that shuts every service down after the test

Stores and services use real SQLite files under tmp_path; only failure
injection uses unittest.mock.
"""

import threading

import pytest

from hooks.lifecycle import QueueHooks


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def valid_config_dict(tmp_path):
    """
    Valid configuration dictionary for QueueConfig.

    Usage:
        def test_config_parsing(valid_config_dict):
            config = QueueConfig(**valid_config_dict)
    """
    return {
        'data_dir': str(tmp_path / 'data'),
        'strategy': 'snapshot',
    }


@pytest.fixture
def queue_config(tmp_path):
    """QueueConfig pointing at a temp data directory (snapshot strategy)."""
    from validation.config import QueueConfig

    return QueueConfig(data_dir=str(tmp_path / 'data'), shutdown_timeout=5.0)


@pytest.fixture
def durable_config(tmp_path):
    """QueueConfig pointing at a temp data directory (durable strategy)."""
    from validation.config import QueueConfig

    return QueueConfig(data_dir=str(tmp_path / 'data'), strategy='durable', shutdown_timeout=5.0)


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def db_path(tmp_path):
    """Path to a (not yet created) queue database file."""
    return str(tmp_path / 'data' / 'queues.db')


@pytest.fixture
def store(db_path):
    """Real DurableStore for queue 'test'."""
    from durable_queue.store import DurableStore

    return DurableStore(db_path, 'test')


# =============================================================================
# Hooks and Processing Fixtures
# =============================================================================

class RecordingHooks(QueueHooks):
    """
    QueueHooks subclass that records every callback as (name, args).

    `settled` is set whenever a run ends (on_unload), so tests can wait for
    the worker without sleeping.
    """

    def __init__(self):
        self.calls = []
        self.settled = threading.Event()
        self.reports = 0

    def names(self):
        return [name for name, _ in self.calls]

    def on_load(self):
        self.calls.append(('on_load', ()))

    def on_start(self):
        self.calls.append(('on_start', ()))

    def on_item_processed(self, item, report):
        self.calls.append(('on_item_processed', (item,)))
        self.reports += 1
        report()

    def on_paused(self, item):
        self.calls.append(('on_paused', (item,)))

    def on_emptied(self, all_processed):
        self.calls.append(('on_emptied', (all_processed,)))

    def on_unload(self):
        self.calls.append(('on_unload', ()))
        self.settled.set()


@pytest.fixture
def recording_hooks():
    """
    Hooks that record every callback.

    Usage:
        def test_order(make_service, recording_hooks):
            service = make_service(process, hooks=recording_hooks)
            ...
            assert recording_hooks.names()[:2] == ['on_load', 'on_start']
    """
    return RecordingHooks()


class ScriptedProcess:
    """
    Processing function with per-payload return codes.

    Payloads not in `script` return CONTINUE. Every call is recorded in
    `seen`. A script value may be a ReturnCode or an exception instance
    to raise.
    """

    def __init__(self, script=None, gate=None):
        self.script = dict(script or {})
        self.seen = []
        self.gate = gate

    def __call__(self, payload):
        from durable_queue.models import ReturnCode

        self.seen.append(payload)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        outcome = self.script.get(payload, ReturnCode.CONTINUE)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def scripted_process():
    """Factory for ScriptedProcess instances."""
    return ScriptedProcess


@pytest.fixture
def make_service(queue_config):
    """
    Factory building QueueService instances; all are shut down after the test.

    Usage:
        def test_fifo(make_service, scripted_process):
            process = scripted_process()
            service = make_service(process, queue_name='uploads')
    """
    from worker.service import QueueService

    services = []

    def _make(process, config=None, **kwargs):
        kwargs.setdefault('queue_name', 'test')
        service = QueueService(config or queue_config, process, **kwargs)
        services.append(service)
        return service

    yield _make

    for service in services:
        service.shutdown()
