"""Command-line interface primitives for :mod:`routesplit`.

This module exposes the Typer application behind the ``routesplit``
console script and wires its commands into the route chunk analysis.

Example:
    >>> import typer
    >>> from routesplit.cli import create_app
    >>> app = create_app()
    >>> isinstance(app, typer.Typer)
    True
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import tomllib
from typing import Any

from pydantic import ValidationError
import typer

from routesplit.cli.init import init_config
from routesplit.core.config import (
    AppConfig,
    DEFAULTS_RESOURCE_NAME,
    RouteChunkConfig,
    SplitMode,
    USER_CONFIG_FILENAME,
    load_config,
    load_packaged_defaults,
    load_user_config,
    read_env_config,
)
from routesplit.core.logging import Logger, configure_logging, get_logger
from routesplit.modules.route_chunks import (
    RouteChunkCache,
    RouteChunkError,
    RouteChunkValidationError,
    RouteModuleSyntaxError,
    UnknownRouteChunkError,
    detect_route_chunks_if_enabled,
    get_route_chunk_if_enabled,
    get_route_export_names,
    grammar_for_path,
    is_root_route_module_id,
    normalize_relative_file_path,
    route_chunk_validity,
    validate_route_chunks,
)

_app_help = (
    "Split route modules into independently loadable chunks."
    "\n\n"
    "Use `routesplit detect` to see which client exports can be split and "
    "`routesplit chunk` to print the code of one chunk."
)


@dataclass(slots=True)
class CLIContext:
    """Shared state carried across ``routesplit`` commands."""

    config_path: Path
    config: AppConfig
    cache: RouteChunkCache
    logger: Logger


def _load_app_config(
    config_path: Path,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    return load_config(
        defaults=load_packaged_defaults(),
        user_config=load_user_config(config_path),
        env_config=read_env_config(os.environ),
        cli_overrides=cli_overrides,
    )


def _require_context(ctx: typer.Context) -> CLIContext:
    context = getattr(ctx, "obj", None)
    if not isinstance(context, CLIContext):
        typer.secho("Internal error: CLI context not initialized.", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return context


def _route_config(
    context: CLIContext,
    *,
    app_dir: Path | None = None,
    root_route: str | None = None,
    mode: str | None = None,
) -> RouteChunkConfig:
    """Apply per-command flags on top of the loaded configuration."""

    overrides: dict[str, Any] = {}
    if app_dir is not None:
        overrides["app_directory"] = str(app_dir)
    if root_route is not None:
        overrides["root_route_file"] = root_route
    if mode is not None:
        overrides["split_route_modules"] = mode
    if not overrides:
        return context.config.route_chunks
    try:
        config = _load_app_config(
            context.config_path,
            {"log_level": context.config.log_level, "route_chunks": overrides},
        )
    except (ValidationError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    return config.route_chunks


def _read_route_module(path: Path) -> tuple[str, str]:
    module_id = path.expanduser().resolve().as_posix()
    return module_id, path.read_text(encoding="utf-8")


def _files_argument() -> Any:
    return typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Route module files to analyze.",
    )


def _app_dir_option() -> Any:
    return typer.Option(
        None,
        "--app-dir",
        "-a",
        help="Directory route module paths are resolved against.",
    )


def _root_route_option() -> Any:
    return typer.Option(
        None,
        "--root-route",
        help="Root route module, relative to the app directory.",
    )


def _mode_option() -> Any:
    return typer.Option(
        None,
        "--mode",
        "-m",
        help="Split mode override: off, on or enforce.",
    )


def create_app() -> "typer.Typer":
    """Return the Typer application powering the ``routesplit`` CLI.

    Returns:
        A configured Typer application ready to be invoked by ``routesplit``.
    """

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
        cls=typer.core.TyperGroup,
    )

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
        config: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help=f"Path to the config file (defaults to ./{USER_CONFIG_FILENAME}).",
        ),
    ) -> None:
        """Load configuration and logging before dispatching a command."""

        config_path = config or Path.cwd() / USER_CONFIG_FILENAME
        overrides = {"log_level": log_level} if log_level else None
        try:
            app_config = _load_app_config(config_path, overrides)
            configure_logging(
                level=app_config.log_level, log_dir=app_config.log_dir
            )
        except tomllib.TOMLDecodeError as exc:
            typer.secho(
                f"Invalid config file {config_path}: {exc}", fg=typer.colors.RED
            )
            raise typer.Exit(code=2) from exc
        except OSError as exc:
            typer.secho(f"Cannot open log directory: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=2) from exc
        except (ValidationError, ValueError) as exc:
            raise typer.BadParameter(str(exc)) from exc

        ctx.obj = CLIContext(
            config_path=config_path,
            config=app_config,
            cache=RouteChunkCache(),
            logger=get_logger(__name__, command=ctx.invoked_subcommand),
        )

    @app.command(
        "init",
        help="Write a routesplit.toml seeded from the packaged defaults.",
    )
    def init_command(
        ctx: typer.Context,
        directory: Path = typer.Option(
            Path("."),
            "--directory",
            "-d",
            help="Project directory receiving routesplit.toml.",
        ),
        force: bool = typer.Option(
            False,
            "--force",
            help="Overwrite an existing routesplit.toml.",
        ),
    ) -> None:
        """Create the user config file.

        Example:
            >>> from typer.testing import CliRunner
            >>> result = CliRunner().invoke(create_app(), ["init", "--help"])
            >>> result.exit_code
            0
        """

        context = _require_context(ctx)
        try:
            config, path, written = init_config(
                directory=directory,
                force=force,
                log_level=context.config.log_level,
            )
        except OSError as exc:
            typer.secho(f"Failed to write config: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1) from exc

        context.logger.info("init-complete", path=str(path), written=written)

        if written:
            typer.secho("Config written", fg=typer.colors.GREEN, bold=True)
        else:
            typer.secho("Config already exists", fg=typer.colors.YELLOW, bold=True)
            typer.echo("  note: pass --force to overwrite")
        typer.echo(f"  config: {path}")
        typer.echo(f"  defaults: packaged resource ({DEFAULTS_RESOURCE_NAME})")
        typer.echo(f"  split mode: {config.route_chunks.split_route_modules.value}")

    @app.command("detect", help="Report which client exports can be split.")
    def detect_command(
        ctx: typer.Context,
        files: list[Path] = _files_argument(),
        app_dir: Path | None = _app_dir_option(),
        root_route: str | None = _root_route_option(),
        mode: str | None = _mode_option(),
    ) -> None:
        context = _require_context(ctx)
        config = _route_config(
            context, app_dir=app_dir, root_route=root_route, mode=mode
        )
        if not config.enabled:
            typer.secho(
                "Route module splitting is off; pass --mode on to analyze.",
                fg=typer.colors.YELLOW,
            )

        failed = False
        for path in files:
            module_id, code = _read_route_module(path)
            relative = normalize_relative_file_path(module_id, config.app_directory)
            try:
                info = detect_route_chunks_if_enabled(
                    context.cache, config, module_id, code
                )
                exports = get_route_export_names(
                    code,
                    cache=context.cache,
                    module_key=relative,
                    grammar=grammar_for_path(module_id),
                )
            except RouteModuleSyntaxError as exc:
                typer.secho(f"{relative}: {exc}", fg=typer.colors.RED, err=True)
                failed = True
                continue

            typer.secho(relative, fg=typer.colors.CYAN, bold=True)
            if is_root_route_module_id(config, module_id):
                typer.echo("  root route: splitting skipped")
                continue
            present = [
                name for name in info.has_route_chunk_by_export_name if name in exports
            ]
            if not present:
                typer.echo("  no splittable exports")
            for name in present:
                chunkable = info.has_route_chunk_by_export_name[name]
                state = "chunkable" if chunkable else "not chunkable"
                typer.echo(f"  {name}: {state}")
            context.logger.debug(
                "detect-module", module=relative, chunked=list(info.chunked_exports)
            )

        if failed:
            raise typer.Exit(code=1)

    @app.command("chunk", help="Print the generated code of one route chunk.")
    def chunk_command(
        ctx: typer.Context,
        file: Path = typer.Argument(
            ...,
            exists=True,
            dir_okay=False,
            readable=True,
            help="Route module file.",
        ),
        name: str = typer.Argument(
            ...,
            help="Chunk name: main, clientAction, clientLoader, "
            "clientMiddleware or HydrateFallback.",
        ),
        app_dir: Path | None = _app_dir_option(),
        root_route: str | None = _root_route_option(),
        mode: str | None = _mode_option(),
    ) -> None:
        context = _require_context(ctx)
        config = _route_config(
            context, app_dir=app_dir, root_route=root_route, mode=mode
        )
        module_id, code = _read_route_module(file)
        relative = normalize_relative_file_path(module_id, config.app_directory)
        try:
            chunk = get_route_chunk_if_enabled(
                context.cache, config, module_id, name, code
            )
        except UnknownRouteChunkError as exc:
            raise typer.BadParameter(str(exc), param_hint="NAME") from exc
        except RouteChunkError as exc:
            typer.secho(f"{relative}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc

        if chunk is None:
            reason = "splitting is off" if not config.enabled else "nothing to emit"
            typer.secho(
                f"No code for chunk {name} of {relative} ({reason}).",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        typer.echo(chunk, nl=False)

    @app.command("check", help="Fail when client exports cannot be split.")
    def check_command(
        ctx: typer.Context,
        files: list[Path] = _files_argument(),
        app_dir: Path | None = _app_dir_option(),
        root_route: str | None = _root_route_option(),
    ) -> None:
        context = _require_context(ctx)
        config = _route_config(
            context,
            app_dir=app_dir,
            root_route=root_route,
            mode=SplitMode.ENFORCE.value,
        )

        failures: list[str] = []
        for path in files:
            module_id, code = _read_route_module(path)
            relative = normalize_relative_file_path(module_id, config.app_directory)
            try:
                info = detect_route_chunks_if_enabled(
                    context.cache, config, module_id, code
                )
                exports = get_route_export_names(
                    code,
                    cache=context.cache,
                    module_key=relative,
                    grammar=grammar_for_path(module_id),
                )
                validate_route_chunks(
                    config=config,
                    module_id=module_id,
                    valid=route_chunk_validity(exports, info),
                )
            except (RouteChunkValidationError, RouteModuleSyntaxError) as exc:
                typer.secho(str(exc), fg=typer.colors.RED, err=True)
                failures.append(relative)
                continue
            typer.echo(f"ok: {relative}")

        context.logger.debug("check-complete", files=len(files), failed=failures)
        if failures:
            typer.secho(
                f"{len(failures)} route module(s) failed validation: "
                + ", ".join(failures),
                fg=typer.colors.RED,
                bold=True,
            )
            raise typer.Exit(code=1)
        typer.secho("All route modules can be split", fg=typer.colors.GREEN)

    return app


__all__ = ["CLIContext", "create_app"]
