"""
Configuration validation for the work queue.

Provides a pydantic v2 model for validating queue configuration
with fail-fast behavior and sensible defaults.
"""

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

log = logging.getLogger('workqueue.config')

VALID_STRATEGIES = ('snapshot', 'durable')


class QueueConfig(BaseModel):
    """
    Work queue configuration with validation.

    Required:
        data_dir: Directory holding the queue database and stats files

    Optional tunables:
        db_filename: Database file name inside data_dir (default: queues.db)
        strategy: 'snapshot' (memory during runs) or 'durable' (store on every call)
        resume_on_new_item: Resume a paused queue when new work arrives (default: True)
        allows_count_reports: Emit count reports to listeners (default: True)
        shutdown_timeout: Seconds to wait for the current item on shutdown (default: 10.0, range: 0.1-300.0)
        save_stats: Persist run statistics to JSON (default: True)
        debug_logging: Enable TRACE level logging (default: False)
    """

    # Required fields
    data_dir: str

    # Optional tunables with defaults
    db_filename: str = Field(default='queues.db', min_length=1)
    strategy: str = Field(
        default='snapshot',
        description="Persistence strategy: snapshot or durable"
    )
    resume_on_new_item: bool = Field(
        default=True,
        description="Restart a paused queue as soon as a new item arrives"
    )
    allows_count_reports: bool = Field(
        default=True,
        description="Send count reports after each item and on QUERY_COUNT"
    )
    shutdown_timeout: float = Field(default=10.0, ge=0.1, le=300.0)
    save_stats: bool = True
    debug_logging: bool = Field(
        default=False,
        description="Enable verbose TRACE logging (for troubleshooting only)"
    )

    @property
    def db_path(self) -> str:
        """Full path to the queue database file."""
        return os.path.join(self.data_dir, self.db_filename)

    @field_validator('data_dir', mode='after')
    @classmethod
    def validate_data_dir(cls, v: str) -> str:
        """Validate data_dir is set and normalize it."""
        if not v or not v.strip():
            raise ValueError('data_dir is required')
        return os.path.expanduser(v.strip())

    @field_validator('db_filename', mode='after')
    @classmethod
    def validate_db_filename(cls, v: str) -> str:
        """Validate db_filename is a bare file name."""
        if os.path.basename(v) != v:
            raise ValueError('db_filename must be a file name, not a path')
        return v

    @field_validator('strategy', mode='before')
    @classmethod
    def validate_strategy(cls, v):
        """Validate strategy is one of: snapshot, durable."""
        if isinstance(v, str) and v.lower() in VALID_STRATEGIES:
            return v.lower()
        raise ValueError(f"strategy must be one of {VALID_STRATEGIES}, got: {v}")

    @field_validator(
        'resume_on_new_item', 'allows_count_reports', 'save_stats', 'debug_logging',
        mode='before'
    )
    @classmethod
    def validate_booleans(cls, v):
        """Ensure boolean fields are actual booleans, not truthy strings."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            lower = v.lower()
            if lower in ('true', '1', 'yes'):
                return True
            if lower in ('false', '0', 'no'):
                return False
            raise ValueError(f"Invalid boolean value: {v}")
        raise ValueError(f"Expected boolean, got {type(v).__name__}")

    @classmethod
    def from_env(cls, **overrides) -> 'QueueConfig':
        """
        Build config from WORKQUEUE_* environment variables.

        WORKQUEUE_DATA_DIR and WORKQUEUE_STRATEGY are read when set;
        keyword overrides win over the environment.
        """
        values = {}
        data_dir = os.environ.get('WORKQUEUE_DATA_DIR')
        if data_dir:
            values['data_dir'] = data_dir
        strategy = os.environ.get('WORKQUEUE_STRATEGY')
        if strategy:
            values['strategy'] = strategy
        values.update(overrides)
        return cls(**values)

    def log_config(self) -> None:
        """Log the effective configuration."""
        log.info(
            f"Queue config: db={self.db_path}, strategy={self.strategy}, "
            f"resume_on_new_item={self.resume_on_new_item}, "
            f"allows_count_reports={self.allows_count_reports}, "
            f"shutdown_timeout={self.shutdown_timeout}s, "
            f"save_stats={self.save_stats}"
        )
        if self.debug_logging:
            log.warning("DEBUG LOGGING ENABLED: TRACE output is very verbose, disable it after troubleshooting")


def validate_config(config_dict: dict) -> tuple[Optional[QueueConfig], Optional[str]]:
    """
    Validate configuration dictionary and return QueueConfig or error message.

    Args:
        config_dict: Dictionary containing configuration values

    Returns:
        Tuple of (QueueConfig, None) on success,
        or (None, error_message) on validation failure
    """
    try:
        config = QueueConfig(**config_dict)
        return (config, None)
    except ValidationError as e:
        # Extract user-friendly error messages
        errors = []
        for error in e.errors():
            field = '.'.join(str(loc) for loc in error['loc'])
            msg = error['msg']
            errors.append(f"{field}: {msg}")
        error_message = '; '.join(errors)
        return (None, error_message)


# Re-export ValidationError for external use
__all__ = ['QueueConfig', 'validate_config', 'ValidationError', 'VALID_STRATEGIES']
