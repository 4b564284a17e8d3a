"""
Lifecycle hooks implemented by the application that owns a queue.
"""

from hooks.lifecycle import QueueHooks

__all__ = ['QueueHooks']
