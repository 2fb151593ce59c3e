"""Shared pytest fixtures for route chunk analysis tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from routesplit.core.config import RouteChunkConfig, SplitMode
from routesplit.modules.route_chunks import RouteChunkCache

INDEPENDENT_ROUTE = """\
export const clientAction = async () => {};
export const clientLoader = async () => {};
export const clientMiddleware = async () => {};
export function HydrateFallback() { return null; }
export default function Route() { return null; }
"""

SHARED_ROUTE = """\
const shared = () => {};
export const clientAction = async () => shared();
export const clientLoader = async () => shared();
"""


@pytest.fixture(autouse=True)
def reset_logging_state() -> Iterator[None]:
    """Keep handlers installed by one test from leaking into the next."""

    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    structlog.reset_defaults()


@pytest.fixture
def route_config() -> RouteChunkConfig:
    """Config rooted at ``/app`` with splitting turned on."""

    return RouteChunkConfig(
        split_route_modules=SplitMode.ON,
        app_directory=Path("/app"),
        root_route_file="root.tsx",
    )


@pytest.fixture
def enforce_config(route_config: RouteChunkConfig) -> RouteChunkConfig:
    return route_config.model_copy(
        update={"split_route_modules": SplitMode.ENFORCE}
    )


@pytest.fixture
def cache() -> RouteChunkCache:
    return RouteChunkCache()


@pytest.fixture
def app_tree(tmp_path: Path) -> Path:
    """Write a small app directory with a root route and two routes."""

    app = tmp_path / "app"
    routes = app / "routes"
    routes.mkdir(parents=True)
    (app / "root.tsx").write_text(
        "export const clientLoader = async () => {};\n"
        "export default function Root() { return null; }\n",
        encoding="utf-8",
    )
    (routes / "independent.tsx").write_text(INDEPENDENT_ROUTE, encoding="utf-8")
    (routes / "shared.tsx").write_text(SHARED_ROUTE, encoding="utf-8")
    return app
