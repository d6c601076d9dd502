"""Logging service module.

Provides:
- LoggingConfig: LOG_-prefixed settings for sinks and levels
- Context binding utilities (query_id / execution_id)
"""

from dunecli.logging.config import LoggingConfig, get_logging_config
from dunecli.logging.context import clear_context, get_current_context, get_dune_logger

__all__ = [
    "LoggingConfig",
    "clear_context",
    "get_current_context",
    "get_dune_logger",
    "get_logging_config",
]
