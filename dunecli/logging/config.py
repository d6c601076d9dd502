"""Logging configuration models using Pydantic.

This module defines the configuration schema for the logging service.
All settings can be loaded from environment variables.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class LoggingConfig(BaseSettings):
    """Configuration for the logging service.

    Loaded from environment variables with LOG_ prefix.

    Attributes:
        log_dir: Directory for log files
        console_level: Minimum level for console output
        file_level: Minimum level for file output
        log_to_file: Enable the file sink at all
        rotation: File rotation policy (size or time)
        retention: How long to keep rotated files
        compression: Compression format for rotated files
        json_logs: Enable JSON format for file logs
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_dir: Path = Field(
        default=Path("logs"),
        description="Directory for log files",
    )

    console_level: LogLevel = Field(
        default="INFO",
        description="Minimum level for console output",
    )
    file_level: LogLevel = Field(
        default="DEBUG",
        description="Minimum level for file output",
    )
    log_to_file: bool = Field(
        default=False,
        description="Write log records to files under log_dir",
    )

    rotation: str = Field(
        default="10 MB",
        description="File rotation policy (e.g., '100 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated files",
    )
    compression: str | None = Field(
        default="gz",
        description="Compression format applied when a file is closed (None: keep plain)",
    )
    json_logs: bool = Field(
        default=False,
        description="Enable JSON serialization for file logs",
    )

    # Diagnostics (security)
    diagnose: bool = Field(
        default=False,
        description="Enable diagnostic info in tracebacks (disable in prod)",
    )
    backtrace: bool = Field(
        default=True,
        description="Enable full traceback",
    )


def get_logging_config() -> LoggingConfig:
    """Load logging configuration from environment.

    Returns:
        LoggingConfig instance with values from env vars
    """
    return LoggingConfig()
