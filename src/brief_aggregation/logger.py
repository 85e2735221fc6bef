"""
Logging for brief aggregation.

Everything logs through loguru. Modules take a bound logger from
``get_logger(__name__)``; fetch workers wrap a source's work in
``source_context`` so adapter, dedup and health records carry the source
id and type in ``extra``.
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from brief_aggregation.config import LoggingConfig, get_config


def setup_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: Optional[bool] = None,
    config: Optional[LoggingConfig] = None,
) -> list[int]:
    """Replace loguru's default sink with the configured console and file sinks.

    Args:
        level: Minimum level; defaults to ``LOG_LEVEL``
        log_file: File sink path; defaults to ``LOG_FILE_PATH``
        console: Whether to log to stderr; defaults to ``LOG_CONSOLE_ENABLED``
        config: Logging section to read the rest from

    Returns:
        Handler ids of the sinks added
    """
    log_config = config or get_config().logging
    level = level or log_config.level
    console = log_config.console_enabled if console is None else console

    logger.remove()

    handlers = []
    if console:
        handlers.append(
            logger.add(sys.stderr, format=log_config.format, level=level, colorize=True, backtrace=True)
        )

    if log_config.file_enabled:
        path = Path(log_file or log_config.file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logger.add(
                path,
                format=log_config.format,
                level=level,
                rotation=log_config.rotation,
                retention=log_config.retention,
                compression="zip",
                encoding="utf-8",
                enqueue=True,  # fetch workers log from several threads
                backtrace=True,
            )
        )

    return handlers


def get_logger(name: Optional[str] = None):
    """Logger bound to a module name (usually ``__name__``)."""
    if name:
        return logger.bind(name=name)
    return logger


@contextmanager
def source_context(source_id: int, source_type: Optional[str] = None) -> Iterator[None]:
    """Tag every record logged in this thread with the source being fetched."""
    with logger.contextualize(source_id=source_id, source_type=source_type):
        yield


__all__ = ["setup_logger", "get_logger", "source_context", "logger"]
