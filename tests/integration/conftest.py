"""
Integration test fixtures.

These fixtures compose the unit test fixtures from tests/conftest.py into
restart scenarios: one service writes to a data directory, is shut down,
and a second service on the same directory picks up where it left off.

All integration tests should be marked with @pytest.mark.integration
"""

import pytest


# Integration fixtures inherit from tests/conftest.py automatically via pytest


@pytest.fixture
def restartable(tmp_path):
    """
    Factory for QueueService instances sharing one data directory.

    Usage:
        def test_restart(restartable, scripted_process):
            first = restartable(process, strategy='durable')
            ...
            first.shutdown()
            second = restartable(process, strategy='durable')
    """
    from validation.config import QueueConfig
    from worker.service import QueueService

    data_dir = str(tmp_path / 'data')
    services = []

    def _make(process, strategy='snapshot', **kwargs):
        kwargs.setdefault('queue_name', 'uploads')
        config = QueueConfig(data_dir=data_dir, strategy=strategy, shutdown_timeout=5.0)
        service = QueueService(config, process, **kwargs)
        services.append(service)
        return service

    yield _make

    for service in services:
        service.shutdown()
