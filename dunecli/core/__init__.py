"""Core module - exceptions and logger setup shared by every command."""

from dunecli.core.exceptions import (
    ApiError,
    AuthError,
    DuneCliError,
    ExecutionError,
    IoError,
    NetworkError,
    RateLimitError,
    ValidationError,
)

__all__ = [
    "ApiError",
    "AuthError",
    "DuneCliError",
    "ExecutionError",
    "IoError",
    "NetworkError",
    "RateLimitError",
    "ValidationError",
]
