"""Logging helpers for :mod:`routesplit`.

structlog renders events on top of stdlib logging. Console output goes to
stderr so commands that print generated chunk code on stdout stay
pipeable; an optional log directory receives JSON lines rotated daily.
"""

from __future__ import annotations

import gzip
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
import shutil
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
import structlog

Logger = structlog.stdlib.BoundLogger

LOG_FILENAME = "routesplit.log"
ARCHIVE_DAYS = 7


def _level_number(level: str | int) -> int:
    """Translate ``level`` into a :mod:`logging` constant.

    Raises:
        ValueError: If the level name is not recognized.
    """

    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.strip().upper())
    if not isinstance(number, int):  # unknown names come back as strings
        raise ValueError(f"Unsupported log level: {level!r}")
    return number


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_shared_processors(),
    )


def _compress_archive(source: str, dest: str) -> None:
    with open(source, "rb") as raw, gzip.open(dest, "wb") as packed:
        shutil.copyfileobj(raw, packed)
    Path(source).unlink(missing_ok=True)


def _file_handler(directory: Path, level: int) -> TimedRotatingFileHandler:
    """JSON lines under ``directory``, rolled at midnight UTC and gzipped."""

    directory.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        directory / LOG_FILENAME,
        when="midnight",
        backupCount=ARCHIVE_DAYS,
        utc=True,
        encoding="utf-8",
        delay=True,
    )
    handler.suffix = "%Y-%m-%d"
    handler.namer = lambda name: f"{name}.gz"
    handler.rotator = _compress_archive
    handler.setLevel(level)
    handler.setFormatter(
        _formatter(structlog.processors.JSONRenderer(sort_keys=True))
    )
    return handler


def _console_handler(level: int, console: Console | None) -> RichHandler:
    handler = RichHandler(
        console=console if console is not None else Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        enable_link_path=False,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    handler.setLevel(level)
    handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=False)))
    return handler


def configure_logging(
    *,
    level: str | int = "INFO",
    log_dir: str | Path | None = None,
    console: Console | None = None,
) -> None:
    """Route structlog and stdlib logging through Rich and optional files.

    Calling it again replaces every root handler, so the CLI can apply the
    level from the loaded configuration.

    Args:
        level: Log level name (case-insensitive) or numeric level.
        log_dir: Optional directory receiving ``routesplit.log``.
        console: Optional Rich console override, primarily for testing.

    Raises:
        ValueError: If ``level`` is not a recognized log level name.
    """

    number = _level_number(level)
    handlers: list[logging.Handler] = [_console_handler(number, console)]
    if log_dir is not None:
        directory = Path(log_dir).expanduser().resolve(strict=False)
        handlers.append(_file_handler(directory, number))

    structlog.reset_defaults()
    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(number)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)

    logging.captureWarnings(True)


def get_logger(name: str | None = None, **initial_context: Any) -> Logger:
    """Return a structured logger bound to an optional context.

    Example:
        >>> logger = get_logger(__name__, module="routes/home.tsx")
        >>> hasattr(logger, "debug")
        True
    """

    return structlog.get_logger(name).bind(**initial_context)


__all__ = [
    "ARCHIVE_DAYS",
    "LOG_FILENAME",
    "Logger",
    "configure_logging",
    "get_logger",
]
