"""Core utilities shared across :mod:`routesplit` modules.

The core namespace provides configuration loading and logging setup so the
analysis modules stay free of process-level concerns.
"""

from __future__ import annotations

from .config import AppConfig, RouteChunkConfig, SplitMode, load_config
from .logging import configure_logging, get_logger

__all__ = [
    "AppConfig",
    "RouteChunkConfig",
    "SplitMode",
    "configure_logging",
    "get_logger",
    "load_config",
]
