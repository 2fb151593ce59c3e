"""Tests for :mod:`routesplit.core.logging`."""

from __future__ import annotations

import gzip
import io
import json
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import pytest
from rich.console import Console
from rich.logging import RichHandler

from routesplit.core.logging import (
    LOG_FILENAME,
    configure_logging,
    get_logger,
)


def _build_console() -> tuple[Console, io.StringIO]:
    """Return a console that writes to an in-memory buffer for tests."""

    buffer = io.StringIO()
    return Console(file=buffer, width=120), buffer


def test_configure_logging_installs_console_and_file_handlers(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    console, _ = _build_console()

    configure_logging(level="debug", log_dir=log_dir, console=console)

    root = logging.getLogger()
    rich_handlers = [h for h in root.handlers if isinstance(h, RichHandler)]
    file_handlers = [
        h for h in root.handlers if isinstance(h, TimedRotatingFileHandler)
    ]

    assert len(rich_handlers) == 1, "Expected a single Rich console handler"
    assert len(file_handlers) == 1, "Expected a file handler for the log directory"

    log_file = Path(file_handlers[0].baseFilename)
    assert log_file.name == LOG_FILENAME

    logger = get_logger(__name__, module="routes/home.tsx")
    logger.info("route-chunks-detected", chunked=["clientLoader"])

    for handler in root.handlers:
        handler.flush()

    payload = json.loads(log_file.read_text(encoding="utf-8").strip())

    assert payload["event"] == "route-chunks-detected"
    assert payload["module"] == "routes/home.tsx"
    assert payload["chunked"] == ["clientLoader"]
    assert payload["level"] == "info"


def test_console_output_goes_to_the_supplied_console() -> None:
    console, buffer = _build_console()

    configure_logging(level="info", console=console)
    get_logger("routesplit.test").info("route-chunk-main", empty=True)

    assert "route-chunk-main" in buffer.getvalue()


def test_configure_logging_without_log_dir_omits_file_handler() -> None:
    console, _ = _build_console()

    configure_logging(level="info", console=console)

    root = logging.getLogger()
    assert any(isinstance(h, RichHandler) for h in root.handlers)
    assert all(
        not isinstance(h, TimedRotatingFileHandler) for h in root.handlers
    ), "No file handler should be registered without a log directory"


def test_configure_logging_filters_below_level() -> None:
    console, buffer = _build_console()

    configure_logging(level="warning", console=console)
    get_logger("routesplit.test").debug("route-module-parse")

    assert "route-module-parse" not in buffer.getvalue()


def test_configure_logging_rejects_unknown_level(tmp_path: Path) -> None:
    console, _ = _build_console()

    with pytest.raises(ValueError):
        configure_logging(level="invalid", log_dir=tmp_path, console=console)


def test_configure_logging_rotates_with_compression(tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    console, _ = _build_console()

    configure_logging(level="warning", log_dir=log_dir, console=console)
    root = logging.getLogger()
    file_handler = next(
        h for h in root.handlers if isinstance(h, TimedRotatingFileHandler)
    )

    get_logger("rotate", task="rotation").warning("pre-rotation", sample=True)

    for handler in root.handlers:
        handler.flush()

    file_handler.doRollover()

    archives = sorted(log_dir.glob(f"{LOG_FILENAME}.*.gz"))
    assert archives, "Expected a compressed log archive after rollover"

    with gzip.open(archives[-1], "rt", encoding="utf-8") as fh:
        archived = fh.read()

    assert "pre-rotation" in archived
    assert "task" in archived
