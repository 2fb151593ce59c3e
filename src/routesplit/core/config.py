"""Configuration models and loaders for :mod:`routesplit`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from enum import StrEnum
from pathlib import Path
from typing import Any, Mapping

import tomllib
import tomlkit
from pydantic import BaseModel, Field, field_validator, model_validator

from routesplit.resources import get_resource

DEFAULTS_RESOURCE_NAME = "routesplit.defaults.toml"
USER_CONFIG_FILENAME = "routesplit.toml"
ENV_PREFIX = "ROUTESPLIT_"

# Environment variable suffix -> dotted config path.
_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "LOG_LEVEL": ("log_level",),
    "LOG_DIR": ("log_dir",),
    "SPLIT_ROUTE_MODULES": ("route_chunks", "split_route_modules"),
    "APP_DIRECTORY": ("route_chunks", "app_directory"),
    "ROOT_ROUTE_FILE": ("route_chunks", "root_route_file"),
}

_TRUTHY = {"1", "true", "yes"}
_FALSY = {"0", "false", "no", ""}


class SplitMode(StrEnum):
    """How route modules are split into chunks."""

    OFF = "off"
    ON = "on"
    ENFORCE = "enforce"

    @classmethod
    def coerce(cls, value: Any) -> "SplitMode":
        """Accept booleans, mode names and truthy strings.

        Example:
            >>> SplitMode.coerce(True)
            <SplitMode.ON: 'on'>
            >>> SplitMode.coerce("Enforce")
            <SplitMode.ENFORCE: 'enforce'>
        """

        if isinstance(value, SplitMode):
            return value
        if isinstance(value, bool):
            return cls.ON if value else cls.OFF
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized in _TRUTHY:
                return cls.ON
            if normalized in _FALSY:
                return cls.OFF
            return cls(normalized)
        raise ValueError(f"Unsupported split mode: {value!r}")

    @property
    def enabled(self) -> bool:
        return self is not SplitMode.OFF


class RouteChunkConfig(BaseModel):
    """Settings that control route chunk detection for one app."""

    split_route_modules: SplitMode = Field(
        default=SplitMode.OFF,
        description="Split mode: off, on, or enforce.",
    )
    app_directory: Path = Field(
        default=Path("app"),
        description="Directory that route module ids are resolved against.",
    )
    root_route_file: str = Field(
        default="root.tsx",
        description="Root route module relative to the app directory.",
    )

    model_config = {
        "frozen": True,
        "str_strip_whitespace": True,
    }

    @field_validator("split_route_modules", mode="before")
    @classmethod
    def _coerce_mode(cls, value: Any) -> SplitMode:
        return SplitMode.coerce(value)

    @field_validator("root_route_file")
    @classmethod
    def _normalize_root(cls, value: str) -> str:
        normalized = value.replace("\\", "/").removeprefix("./")
        if not normalized:
            raise ValueError("root_route_file cannot be blank.")
        return normalized

    @property
    def enabled(self) -> bool:
        return self.split_route_modules.enabled

    @property
    def enforce(self) -> bool:
        return self.split_route_modules is SplitMode.ENFORCE


class AppConfig(BaseModel):
    """Root configuration for the :mod:`routesplit` CLI."""

    log_level: str = Field(
        default="INFO",
        description="Default logging level for the application runtime.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Directory receiving routesplit.log; console only when unset.",
    )
    route_chunks: RouteChunkConfig = Field(
        default_factory=RouteChunkConfig,
        description="Route chunk splitting settings.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @model_validator(mode="after")
    def _post_process(self) -> "AppConfig":
        object.__setattr__(self, "log_level", self.log_level.upper())
        return self


def read_packaged_defaults_text() -> str:
    """Return the raw packaged defaults TOML content.

    Example:
        >>> read_packaged_defaults_text().startswith("#")
        True
    """

    return get_resource(DEFAULTS_RESOURCE_NAME).read_text(encoding="utf-8")


def load_packaged_defaults() -> dict[str, Any]:
    """Load the packaged defaults as a plain dictionary.

    Example:
        >>> load_packaged_defaults()["route_chunks"]["root_route_file"]
        'root.tsx'
    """

    return tomllib.loads(read_packaged_defaults_text())


def load_user_config(path: Path) -> dict[str, Any]:
    """Parse a user ``routesplit.toml``; a missing file yields ``{}``."""

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    return tomllib.loads(text)


def read_env_config(environ: Mapping[str, str]) -> dict[str, Any]:
    """Translate ``ROUTESPLIT_*`` variables into a config layer.

    Example:
        >>> read_env_config({"ROUTESPLIT_SPLIT_ROUTE_MODULES": "enforce"})
        {'route_chunks': {'split_route_modules': 'enforce'}}
    """

    layer: dict[str, Any] = {}
    for suffix, keys in _ENV_KEYS.items():
        value = environ.get(f"{ENV_PREFIX}{suffix}")
        if value is None:
            continue
        target = layer
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value
    return layer


def _deep_merge(
    base: Mapping[str, Any],
    overlay: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge ``overlay`` into ``base`` returning a new dict."""

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    *,
    defaults: Mapping[str, Any],
    user_config: Mapping[str, Any] | None = None,
    env_config: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load configuration according to the precedence stack.

    Args:
        defaults: Packaged defaults shipped with the application.
        user_config: Parsed user ``routesplit.toml`` content.
        env_config: Settings derived from environment variables.
        cli_overrides: Settings supplied via CLI flags.

    Returns:
        A validated :class:`AppConfig` instance.

    Raises:
        pydantic.ValidationError: If the merged values are invalid.
    """

    stack = dict(defaults)
    for layer in (user_config, env_config, cli_overrides):
        if layer:
            stack = _deep_merge(stack, layer)

    route_chunks_raw = stack.pop("route_chunks", None)
    if isinstance(route_chunks_raw, RouteChunkConfig):
        route_chunks = route_chunks_raw
    elif isinstance(route_chunks_raw, MappingABC):
        route_chunks = RouteChunkConfig(**route_chunks_raw)
    elif route_chunks_raw is None:
        route_chunks = RouteChunkConfig()
    else:
        raise TypeError(
            f"Unsupported route_chunks configuration payload: {route_chunks_raw!r}"
        )
    stack["route_chunks"] = route_chunks

    return AppConfig(**stack)


def render_user_config(
    config: AppConfig,
    *,
    include_comments: bool = True,
) -> str:
    """Render a ``routesplit.toml`` for users to customize."""

    document = tomlkit.document()

    if include_comments:
        document.add(tomlkit.comment("Generated by routesplit init"))
        document.add(
            tomlkit.comment(
                "Precedence: CLI flags > env vars > routesplit.toml > defaults"
            )
        )
        document.add(tomlkit.comment("Environment overrides:"))
        for suffix in _ENV_KEYS:
            document.add(tomlkit.comment(f"  {ENV_PREFIX}{suffix}"))
        document.add(tomlkit.nl())

    document["log_level"] = config.log_level
    if config.log_dir is not None:
        document["log_dir"] = config.log_dir.as_posix()

    route_chunks = config.route_chunks
    table = tomlkit.table()
    if include_comments:
        table.add(tomlkit.comment('One of "off", "on" or "enforce".'))
    table["split_route_modules"] = route_chunks.split_route_modules.value
    table["app_directory"] = route_chunks.app_directory.as_posix()
    table["root_route_file"] = route_chunks.root_route_file
    document["route_chunks"] = table

    return tomlkit.dumps(document)


__all__ = [
    "AppConfig",
    "DEFAULTS_RESOURCE_NAME",
    "ENV_PREFIX",
    "RouteChunkConfig",
    "SplitMode",
    "USER_CONFIG_FILENAME",
    "read_env_config",
    "load_config",
    "load_packaged_defaults",
    "load_user_config",
    "read_packaged_defaults_text",
    "render_user_config",
]
