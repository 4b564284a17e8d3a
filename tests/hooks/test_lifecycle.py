"""
Tests for hooks/lifecycle.py - QueueHooks defaults.
"""

from unittest.mock import Mock


class TestQueueHooksDefaults:
    """Every hook is optional."""

    def test_queue_name_is_qualified_class_name(self):
        from hooks.lifecycle import QueueHooks

        class UploadHooks(QueueHooks):
            pass

        name = UploadHooks().queue_name()

        assert name.startswith(UploadHooks.__module__ + '.')
        assert name.endswith('UploadHooks')

    def test_default_item_processed_reports(self):
        from hooks.lifecycle import QueueHooks

        report = Mock()
        QueueHooks().on_item_processed('a', report)

        report.assert_called_once_with()

    def test_keep_alive_is_a_context_manager(self):
        from hooks.lifecycle import QueueHooks

        with QueueHooks().keep_alive():
            pass

    def test_noop_hooks(self):
        from hooks.lifecycle import QueueHooks

        hooks = QueueHooks()
        hooks.on_load()
        hooks.on_start()
        hooks.on_paused('a')
        hooks.on_emptied(True)
        hooks.on_unload()
