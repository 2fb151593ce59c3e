"""Tests for :mod:`routesplit.cli.init`."""

from __future__ import annotations

import tomllib
from pathlib import Path

from routesplit.cli.init import init_config
from routesplit.core.config import SplitMode


def test_init_config_seeds_defaults(tmp_path: Path) -> None:
    project = tmp_path / "project"

    config, path, written = init_config(directory=project)

    assert written is True
    assert path == project / "routesplit.toml"
    rendered = tomllib.loads(path.read_text(encoding="utf-8"))
    assert rendered["log_level"] == "INFO"
    assert rendered["route_chunks"] == {
        "split_route_modules": "off",
        "app_directory": "app",
        "root_route_file": "root.tsx",
    }
    assert config.route_chunks.split_route_modules is SplitMode.OFF


def test_init_config_does_not_overwrite_without_force(tmp_path: Path) -> None:
    path = tmp_path / "routesplit.toml"
    path.write_text('log_level = "ERROR"\n', encoding="utf-8")

    _, _, written = init_config(directory=tmp_path, log_level="debug")

    assert written is False
    assert path.read_text(encoding="utf-8") == 'log_level = "ERROR"\n'


def test_init_config_force_applies_log_level(tmp_path: Path) -> None:
    path = tmp_path / "routesplit.toml"
    path.write_text('log_level = "ERROR"\n', encoding="utf-8")

    config, _, written = init_config(directory=tmp_path, force=True, log_level="debug")

    assert written is True
    assert config.log_level == "DEBUG"
    assert tomllib.loads(path.read_text(encoding="utf-8"))["log_level"] == "DEBUG"
