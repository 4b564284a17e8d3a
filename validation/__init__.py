"""
Validation module for the work queue.

Provides configuration validation and classification of processing errors.
"""

from validation.config import QueueConfig, validate_config
from validation.errors import coerce_return_code, return_code_for_exception

__all__ = [
    'QueueConfig',
    'validate_config',
    'coerce_return_code',
    'return_code_for_exception',
]
