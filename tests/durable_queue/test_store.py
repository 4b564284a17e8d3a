"""
Tests for durable_queue/store.py - DurableStore.

Tests row layout, FIFO ordering, queue isolation within one file and the
benign defaults returned on storage failure.
"""

import sqlite3
from unittest.mock import patch

import pytest


class TestTableName:
    """Tests for table_name_for()."""

    def test_prefix_added(self):
        from durable_queue.store import table_name_for

        assert table_name_for('uploads') == 'queue_uploads'

    def test_non_word_characters_replaced(self):
        from durable_queue.store import table_name_for

        assert table_name_for('app.Upload-Service') == 'queue_app_Upload_Service'

    def test_empty_name_rejected(self):
        from durable_queue.store import table_name_for

        with pytest.raises(ValueError):
            table_name_for('')


class TestStoreLayout:
    """Tests for the on-disk schema."""

    def test_creates_parent_directory_and_file(self, tmp_path):
        """Constructing a store creates the data directory and database."""
        from durable_queue.store import DurableStore

        path = tmp_path / 'nested' / 'dir' / 'queues.db'
        DurableStore(str(path), 'uploads')

        assert path.exists()

    def test_table_columns(self, store, db_path):
        """Table has _id, timestamp and data columns."""
        conn = sqlite3.connect(db_path)
        try:
            columns = [row[1] for row in conn.execute('PRAGMA table_info("queue_test")')]
        finally:
            conn.close()

        assert columns == ['_id', 'timestamp', 'data']

    def test_queues_share_file_but_not_rows(self, db_path):
        """Two queue names in one file keep separate rows."""
        from durable_queue.store import DurableStore

        a = DurableStore(db_path, 'a')
        b = DurableStore(db_path, 'b')
        a.insert(1, '"x"')

        assert a.count() == 1
        assert b.count() == 0


class TestStoreOperations:
    """Tests for insert/count/scan/peek/remove/delete/clear."""

    def test_insert_and_count(self, store):
        assert store.insert(100, '"a"') is True
        assert store.insert(101, '"b"') is True

        assert store.count() == 2

    def test_none_payload_stored_as_empty_string(self, store):
        store.insert(100, None)

        assert store.peek_oldest().payload == ''

    def test_ordered_scan_oldest_first(self, store):
        """Rows come back ordered by timestamp, then row id."""
        store.insert(200, '"late"')
        store.insert(100, '"early"')
        store.insert(200, '"late-2"')

        payloads = [row.payload for row in store.ordered_scan()]

        assert payloads == ['"early"', '"late"', '"late-2"']

    def test_peek_does_not_remove(self, store):
        store.insert(100, '"a"')

        first = store.peek_oldest()
        second = store.peek_oldest()

        assert first == second
        assert first.timestamp == 100
        assert store.count() == 1

    def test_peek_empty_returns_none(self, store):
        assert store.peek_oldest() is None

    def test_remove_oldest(self, store):
        store.insert(100, '"a"')
        store.insert(101, '"b"')

        assert store.remove_oldest() is True

        assert [row.payload for row in store.ordered_scan()] == ['"b"']

    def test_remove_oldest_empty(self, store):
        assert store.remove_oldest() is False

    def test_delete_by_id(self, store):
        store.insert(100, '"a"')
        store.insert(101, '"b"')
        row = store.peek_oldest()

        assert store.delete(row.row_id) is True
        assert store.delete(row.row_id) is False
        assert store.count() == 1

    def test_clear_returns_count(self, store):
        for i in range(3):
            store.insert(100 + i, str(i))

        assert store.clear() == 3
        assert store.count() == 0

    def test_rows_survive_new_instance(self, store, db_path):
        """A second store on the same file sees the same rows."""
        from durable_queue.store import DurableStore

        store.insert(100, '"a"')

        assert DurableStore(db_path, 'test').count() == 1


class TestStoreFailures:
    """Storage errors are logged and converted to benign defaults."""

    @pytest.fixture
    def broken(self, store):
        with patch.object(store, '_connect', side_effect=sqlite3.OperationalError('disk I/O error')):
            yield store

    def test_count_returns_zero(self, broken):
        assert broken.count() == 0

    def test_scan_returns_empty(self, broken):
        assert broken.ordered_scan() == []

    def test_peek_returns_none(self, broken):
        assert broken.peek_oldest() is None

    def test_writes_return_false(self, broken):
        assert broken.insert(1, 'x') is False
        assert broken.remove_oldest() is False
        assert broken.delete(1) is False
        assert broken.clear() == 0

    def test_failure_is_logged(self, broken, caplog):
        import logging

        with caplog.at_level(logging.ERROR, logger='workqueue'):
            broken.count()

        assert 'disk I/O error' in caplog.text
