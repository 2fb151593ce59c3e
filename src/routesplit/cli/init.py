"""Helpers for the ``routesplit init`` command."""

from __future__ import annotations

from pathlib import Path

from routesplit.core.config import (
    AppConfig,
    USER_CONFIG_FILENAME,
    load_config,
    load_packaged_defaults,
    render_user_config,
)


def init_config(
    *,
    directory: Path,
    force: bool = False,
    log_level: str | None = None,
) -> tuple[AppConfig, Path, bool]:
    """Write a ``routesplit.toml`` seeded from the packaged defaults.

    Example:
        >>> from pathlib import Path
        >>> config, path, written = init_config(directory=Path("/tmp/routesplit-demo"))
        >>> path.name
        'routesplit.toml'

    Args:
        directory: Project directory receiving the config file.
        force: Overwrite an existing config file.
        log_level: Optional override for the configured logging level.

    Returns:
        The resolved configuration, the config path and whether the file
        was written.
    """

    directory.mkdir(parents=True, exist_ok=True)

    cli_overrides: dict[str, object] = {}
    if log_level:
        cli_overrides["log_level"] = log_level

    config = load_config(
        defaults=load_packaged_defaults(),
        cli_overrides=cli_overrides,
    )

    config_path = directory / USER_CONFIG_FILENAME
    if config_path.exists() and not force:
        return config, config_path, False

    config_path.write_text(render_user_config(config), encoding="utf-8")
    return config, config_path, True


__all__ = ["init_config"]
