"""
Tests for worker/stats.py - QueueStats dataclass.

Tests counters, persistence, and cumulative merging across saves.
"""

import json
import os
import time

import pytest


@pytest.fixture
def stats():
    """Create fresh QueueStats instance."""
    from worker.stats import QueueStats

    return QueueStats()


@pytest.fixture
def stats_file(tmp_path):
    """Return path for stats JSON file in temp directory."""
    return str(tmp_path / "stats.json")


class TestQueueStatsCounters:
    """Tests for the record_* methods."""

    def test_record_processed_adds_time(self, stats):
        stats.record_processed(0.5)
        stats.record_processed(1.2)

        assert stats.items_processed == 2
        assert stats.total_processing_time == pytest.approx(1.7, rel=1e-6)

    def test_record_aborted_adds_count(self, stats):
        stats.record_aborted(3)
        stats.record_aborted(0)

        assert stats.items_aborted == 3

    def test_single_counters(self, stats):
        stats.record_enqueued()
        stats.record_dropped('serialize')
        stats.record_pause()
        stats.record_stop()
        stats.record_run()

        assert (stats.items_enqueued, stats.items_dropped, stats.pauses, stats.stops, stats.runs) == (1, 1, 1, 1, 1)


class TestQueueStatsAvgProcessingTime:
    """Tests for avg_processing_time property."""

    def test_avg_processing_time_zero_items(self, stats):
        assert stats.avg_processing_time == 0.0

    def test_avg_processing_time(self, stats):
        stats.record_processed(1.0)
        stats.record_processed(3.0)

        assert stats.avg_processing_time == pytest.approx(2.0)


class TestQueueStatsPersistence:
    """Tests for save_to_file / load_from_file."""

    def test_save_creates_file(self, stats, stats_file):
        stats.record_processed(0.1)

        stats.save_to_file(stats_file)

        with open(stats_file) as f:
            data = json.load(f)
        assert data['items_processed'] == 1

    def test_save_creates_parent_directory(self, stats, tmp_path):
        path = str(tmp_path / 'nested' / 'stats.json')

        stats.save_to_file(path)

        assert os.path.exists(path)

    def test_save_merges_with_existing(self, stats_file):
        """Two sessions add up in the file."""
        from worker.stats import QueueStats

        first = QueueStats()
        first.record_processed(1.0)
        first.save_to_file(stats_file)

        second = QueueStats()
        second.record_processed(2.0)
        second.record_enqueued()
        second.save_to_file(stats_file)

        loaded = QueueStats.load_from_file(stats_file)
        assert loaded.items_processed == 2
        assert loaded.items_enqueued == 1
        assert loaded.total_processing_time == pytest.approx(3.0)

    def test_repeated_saves_do_not_double_count(self, stats, stats_file):
        """Saving the same session after each run only adds the new part."""
        from worker.stats import QueueStats

        stats.record_processed(0.1)
        stats.save_to_file(stats_file)
        stats.save_to_file(stats_file)
        stats.record_processed(0.1)
        stats.save_to_file(stats_file)

        assert QueueStats.load_from_file(stats_file).items_processed == 2

    def test_keeps_earliest_session_start(self, stats_file):
        from worker.stats import QueueStats

        early = QueueStats(session_start=time.time() - 1000)
        early.save_to_file(stats_file)
        QueueStats().save_to_file(stats_file)

        assert QueueStats.load_from_file(stats_file).session_start == pytest.approx(early.session_start)

    def test_no_tmp_file_left(self, stats, stats_file):
        stats.save_to_file(stats_file)

        assert not os.path.exists(stats_file + '.tmp')

    def test_load_missing_file(self, stats_file):
        from worker.stats import QueueStats

        assert QueueStats.load_from_file(stats_file).items_processed == 0

    def test_load_corrupt_file(self, stats_file):
        from worker.stats import QueueStats

        with open(stats_file, 'w') as f:
            f.write('{not json')

        assert QueueStats.load_from_file(stats_file).items_processed == 0

    def test_load_ignores_unknown_keys(self, stats_file):
        from worker.stats import QueueStats

        with open(stats_file, 'w') as f:
            json.dump({'items_processed': 4, 'legacy_field': 1}, f)

        assert QueueStats.load_from_file(stats_file).items_processed == 4

    def test_to_dict_has_no_private_fields(self, stats):
        data = stats.to_dict()

        assert 'items_enqueued' in data
        assert not any(key.startswith('_') for key in data)
