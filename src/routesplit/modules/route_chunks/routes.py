"""Route-level entry points used by the build orchestration layer.

These wrap the analysis steps with the route chunk conventions: the four
splittable export names, ``?route-chunk=`` module ids, root route
exemption, the cheap substring prefilter and enforce-mode validation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import posixpath
from typing import Iterable, Literal, Mapping

from routesplit.core.config import RouteChunkConfig
from routesplit.core.logging import get_logger

from .cache import RouteChunkCache
from .codegen import get_chunked_export, omit_chunked_exports
from .errors import RouteChunkValidationError, UnknownRouteChunkError
from .oracle import has_chunkable_export
from .syntax import Grammar, get_route_module, grammar_for_path

__all__ = [
    "ROUTE_CHUNK_EXPORT_NAMES",
    "ROUTE_CHUNK_NAMES",
    "ROUTE_CHUNK_QUERY_PREFIX",
    "RouteChunkExportName",
    "RouteChunkInfo",
    "RouteChunkName",
    "detect_route_chunks",
    "detect_route_chunks_if_enabled",
    "get_route_chunk_code",
    "get_route_chunk_entry_name",
    "get_route_chunk_if_enabled",
    "get_route_chunk_module_id",
    "get_route_chunk_name_from_module_id",
    "get_route_export_names",
    "is_root_route_module_id",
    "is_route_chunk_module_id",
    "normalize_relative_file_path",
    "route_chunk_validity",
    "validate_route_chunks",
]

RouteChunkExportName = Literal[
    "clientAction", "clientLoader", "clientMiddleware", "HydrateFallback"
]
RouteChunkName = Literal[
    "main", "clientAction", "clientLoader", "clientMiddleware", "HydrateFallback"
]

ROUTE_CHUNK_EXPORT_NAMES: tuple[RouteChunkExportName, ...] = (
    "clientAction",
    "clientLoader",
    "clientMiddleware",
    "HydrateFallback",
)
ROUTE_CHUNK_NAMES: tuple[RouteChunkName, ...] = ("main", *ROUTE_CHUNK_EXPORT_NAMES)

ROUTE_CHUNK_QUERY_PREFIX = "?route-chunk="
_QUERY_STRINGS = {
    name: f"{ROUTE_CHUNK_QUERY_PREFIX}{name}" for name in ROUTE_CHUNK_NAMES
}
_ENTRY_SUFFIXES: dict[str, str] = {
    "clientAction": "client-action",
    "clientLoader": "client-loader",
    "clientMiddleware": "client-middleware",
    "HydrateFallback": "hydrate-fallback",
}


@dataclass(frozen=True)
class RouteChunkInfo:
    """Chunkability of the splittable exports of one route module."""

    has_route_chunks: bool = False
    has_route_chunk_by_export_name: Mapping[str, bool] = field(
        default_factory=lambda: dict.fromkeys(ROUTE_CHUNK_EXPORT_NAMES, False)
    )
    chunked_exports: tuple[str, ...] = ()


def detect_route_chunks(
    code: str,
    *,
    cache: RouteChunkCache | None = None,
    module_key: str = "",
    grammar: Grammar = Grammar.TSX,
) -> RouteChunkInfo:
    """Report which splittable exports of ``code`` are chunkable."""

    by_name = {
        name: has_chunkable_export(
            code, name, cache=cache, module_key=module_key, grammar=grammar
        )
        for name in ROUTE_CHUNK_EXPORT_NAMES
    }
    chunked = tuple(name for name, chunkable in by_name.items() if chunkable)
    get_logger(__name__).debug(
        "route-chunks-detected", module=module_key, chunked=list(chunked)
    )
    return RouteChunkInfo(
        has_route_chunks=bool(chunked),
        has_route_chunk_by_export_name=by_name,
        chunked_exports=chunked,
    )


def get_route_chunk_code(
    code: str,
    chunk_name: str,
    *,
    cache: RouteChunkCache | None = None,
    module_key: str = "",
    grammar: Grammar = Grammar.TSX,
) -> str | None:
    """Return the source of chunk ``chunk_name``.

    ``main`` is the module with every chunkable splittable export removed;
    any other name extracts that export.

    Raises:
        UnknownRouteChunkError: If ``chunk_name`` is not a route chunk name.
    """

    if chunk_name == "main":
        return omit_chunked_exports(
            code,
            ROUTE_CHUNK_EXPORT_NAMES,
            cache=cache,
            module_key=module_key,
            grammar=grammar,
        )
    if chunk_name not in ROUTE_CHUNK_EXPORT_NAMES:
        raise UnknownRouteChunkError(
            f"Unknown route chunk {chunk_name!r}; expected one of "
            + ", ".join(ROUTE_CHUNK_NAMES)
        )
    return get_chunked_export(
        code, chunk_name, cache=cache, module_key=module_key, grammar=grammar
    )


def get_route_chunk_module_id(file_path: str, chunk_name: RouteChunkName) -> str:
    """Append the ``?route-chunk=`` query for ``chunk_name`` to ``file_path``.

    Example:
        >>> get_route_chunk_module_id("/app/routes/home.tsx", "clientLoader")
        '/app/routes/home.tsx?route-chunk=clientLoader'
    """

    return f"{file_path}{_QUERY_STRINGS[chunk_name]}"


def is_route_chunk_module_id(module_id: str) -> bool:
    return any(module_id.endswith(query) for query in _QUERY_STRINGS.values())


def get_route_chunk_name_from_module_id(module_id: str) -> RouteChunkName | None:
    """Return the chunk name in ``module_id`` or ``None``.

    Example:
        >>> get_route_chunk_name_from_module_id("/a.tsx?route-chunk=main&v=1")
        'main'
    """

    if ROUTE_CHUNK_QUERY_PREFIX not in module_id:
        return None
    name = module_id.split(ROUTE_CHUNK_QUERY_PREFIX)[1].split("&")[0]
    for known in ROUTE_CHUNK_NAMES:
        if known == name:
            return known
    return None


def get_route_chunk_entry_name(
    route_id: str, chunk_name: RouteChunkExportName
) -> str:
    """Name the build entry of a route chunk.

    Example:
        >>> get_route_chunk_entry_name("routes/home", "HydrateFallback")
        'routes/home-hydrate-fallback'
    """

    return f"{route_id}-{_ENTRY_SUFFIXES[chunk_name]}"


def _posix(path: str | os.PathLike[str]) -> str:
    return os.fspath(path).replace("\\", "/")


def normalize_relative_file_path(
    file: str | os.PathLike[str],
    app_directory: str | os.PathLike[str],
) -> str:
    """Return ``file`` relative to ``app_directory`` without a query string.

    Example:
        >>> normalize_relative_file_path("/app/routes/home.tsx?v=1", "/app")
        'routes/home.tsx'
    """

    app_dir = posixpath.normpath(
        posixpath.join(_posix(Path.cwd()), _posix(app_directory))
    )
    full_path = posixpath.normpath(posixpath.join(app_dir, _posix(file)))
    relative = posixpath.relpath(full_path, app_dir)
    return relative.split("?", 1)[0]


def is_root_route_module_id(config: RouteChunkConfig, module_id: str) -> bool:
    relative = normalize_relative_file_path(module_id, config.app_directory)
    return relative == config.root_route_file


def detect_route_chunks_if_enabled(
    cache: RouteChunkCache | None,
    config: RouteChunkConfig,
    module_id: str,
    code: str,
) -> RouteChunkInfo:
    """Detect route chunks unless splitting is off or cannot apply.

    Splitting is skipped for the root route and for modules that do not
    mention any splittable export name.
    """

    if not config.enabled:
        return RouteChunkInfo()
    if is_root_route_module_id(config, module_id):
        return RouteChunkInfo()
    if not any(name in code for name in ROUTE_CHUNK_EXPORT_NAMES):
        return RouteChunkInfo()

    return detect_route_chunks(
        code,
        cache=cache,
        module_key=normalize_relative_file_path(module_id, config.app_directory),
        grammar=grammar_for_path(module_id),
    )


def get_route_chunk_if_enabled(
    cache: RouteChunkCache | None,
    config: RouteChunkConfig,
    module_id: str,
    chunk_name: str,
    code: str,
) -> str | None:
    """Return the code of ``chunk_name``; ``None`` when splitting is off."""

    if not config.enabled:
        return None
    return get_route_chunk_code(
        code,
        chunk_name,
        cache=cache,
        module_key=normalize_relative_file_path(module_id, config.app_directory),
        grammar=grammar_for_path(module_id),
    )


def validate_route_chunks(
    *,
    config: RouteChunkConfig,
    module_id: str,
    valid: Mapping[str, bool],
) -> None:
    """Raise when any export in ``valid`` is flagged as not splittable.

    Raises:
        RouteChunkValidationError: Listing every invalid export of the module.
    """

    if is_root_route_module_id(config, module_id):
        return
    invalid = [name for name, is_valid in valid.items() if not is_valid]
    if not invalid:
        return
    raise RouteChunkValidationError(
        module_path=normalize_relative_file_path(module_id, config.app_directory),
        export_names=invalid,
    )


def get_route_export_names(
    code: str,
    *,
    cache: RouteChunkCache | None = None,
    module_key: str = "",
    grammar: Grammar = Grammar.TSX,
) -> tuple[str, ...]:
    """Return the export names of ``code`` in declaration order."""

    module = get_route_module(
        code, cache=cache, module_key=module_key, grammar=grammar
    )
    return tuple(module.exports)


def route_chunk_validity(
    export_names: Iterable[str],
    info: RouteChunkInfo,
) -> dict[str, bool]:
    """Flag each splittable export as valid when absent or chunkable.

    Example:
        >>> info = RouteChunkInfo()
        >>> route_chunk_validity(["clientLoader", "default"], info)["clientLoader"]
        False
    """

    present = set(export_names)
    return {
        name: name not in present
        or info.has_route_chunk_by_export_name.get(name, False)
        for name in ROUTE_CHUNK_EXPORT_NAMES
    }
