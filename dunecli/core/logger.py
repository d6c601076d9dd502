"""Loguru logging configuration.

Centralized logging setup for the CLI. All modules log through the
configured loguru logger.

Features:
    - Console sink on stderr (human-readable), so stdout stays clean for results
    - Optional file sink: rotating text log or JSON serialized records
    - Context binding for query_id / execution_id
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from dunecli.logging.config import LoggingConfig, get_logging_config
from dunecli.logging.context import get_dune_logger

if TYPE_CHECKING:
    from loguru import Logger

# Remove default handler to prevent duplicate logs
logger.remove()


CONSOLE_FORMAT_DEFAULT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def setup_logger_from_config(config: LoggingConfig | None = None) -> None:
    """Initialize logger from Pydantic config model.

    Args:
        config: LoggingConfig instance (loads from LOG_* env vars if None)

    Example:
        >>> from dunecli.core.logger import logger, setup_logger_from_config
        >>> setup_logger_from_config(LoggingConfig(console_level="DEBUG"))
        >>> logger.info("CLI started")
    """
    if config is None:
        config = get_logging_config()

    _setup_logger_internal(config)


def _setup_logger_internal(config: LoggingConfig) -> None:
    """Internal logger setup using config object."""
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT_DEFAULT,
        level=config.console_level,
        colorize=True,
        backtrace=config.backtrace,
        diagnose=config.diagnose,
    )

    if config.log_to_file:
        log_path = Path(config.log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        _setup_file_sink(logger, log_path, config)

    logger.debug(
        "Logger initialized",
        console_level=config.console_level,
        file_level=config.file_level,
        log_to_file=config.log_to_file,
    )


def _setup_file_sink(target: Logger, log_path: Path, config: LoggingConfig) -> None:
    """Set up the file sink with loguru's built-in rotation.

    JSON mode writes one serialized record per line; text mode reuses the
    console format.
    """
    if config.json_logs:
        target.add(
            log_path / "dune_{time:YYYY-MM-DD}.json",
            level=config.file_level,
            serialize=True,
            rotation=config.rotation,
            retention=config.retention,
            compression=config.compression,
            backtrace=config.backtrace,
            diagnose=False,
        )
        return

    target.add(
        log_path / "dune_{time:YYYY-MM-DD}.log",
        format=CONSOLE_FORMAT_DEFAULT,
        level=config.file_level,
        rotation=config.rotation,
        retention=config.retention,
        compression=config.compression,
        backtrace=config.backtrace,
        diagnose=False,
    )


__all__ = [
    "get_dune_logger",
    "logger",
    "setup_logger_from_config",
]
