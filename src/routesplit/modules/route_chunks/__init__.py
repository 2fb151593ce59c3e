"""Route chunk splitting analysis.

Decides which splittable exports of a route module can move into their
own chunk and generates the source of each chunk and of the remaining
``main`` module.

Example:
    >>> from routesplit.modules.route_chunks import detect_route_chunks
    >>> info = detect_route_chunks("export const clientLoader = async () => {};")
    >>> info.chunked_exports
    ('clientLoader',)
"""

from __future__ import annotations

from .cache import CacheEntry, RouteChunkCache, cache_key, get_or_set
from .codegen import (
    extract_chunk,
    get_chunked_export,
    omit_chunked_exports,
    omit_chunks,
)
from .dependencies import (
    DeclaratorRef,
    ExportDependencies,
    build_export_dependencies,
    get_export_dependencies,
)
from .errors import (
    RouteChunkError,
    RouteChunkValidationError,
    RouteModuleSyntaxError,
    UnknownRouteChunkError,
)
from .oracle import has_chunkable_export, is_chunkable, sets_intersect
from .routes import (
    ROUTE_CHUNK_EXPORT_NAMES,
    ROUTE_CHUNK_NAMES,
    RouteChunkInfo,
    detect_route_chunks,
    detect_route_chunks_if_enabled,
    get_route_chunk_code,
    get_route_chunk_entry_name,
    get_route_chunk_if_enabled,
    get_route_chunk_module_id,
    get_route_chunk_name_from_module_id,
    get_route_export_names,
    is_root_route_module_id,
    is_route_chunk_module_id,
    normalize_relative_file_path,
    route_chunk_validity,
    validate_route_chunks,
)
from .syntax import (
    ExportForm,
    Grammar,
    RouteModule,
    get_route_module,
    grammar_for_path,
    parse_route_module,
)

__all__ = [
    "CacheEntry",
    "DeclaratorRef",
    "ExportDependencies",
    "ExportForm",
    "Grammar",
    "ROUTE_CHUNK_EXPORT_NAMES",
    "ROUTE_CHUNK_NAMES",
    "RouteChunkCache",
    "RouteChunkError",
    "RouteChunkInfo",
    "RouteChunkValidationError",
    "RouteModule",
    "RouteModuleSyntaxError",
    "UnknownRouteChunkError",
    "build_export_dependencies",
    "cache_key",
    "detect_route_chunks",
    "detect_route_chunks_if_enabled",
    "extract_chunk",
    "get_chunked_export",
    "get_export_dependencies",
    "get_or_set",
    "get_route_chunk_code",
    "get_route_chunk_entry_name",
    "get_route_chunk_if_enabled",
    "get_route_chunk_module_id",
    "get_route_chunk_name_from_module_id",
    "get_route_export_names",
    "get_route_module",
    "grammar_for_path",
    "has_chunkable_export",
    "is_chunkable",
    "is_root_route_module_id",
    "is_route_chunk_module_id",
    "normalize_relative_file_path",
    "omit_chunked_exports",
    "omit_chunks",
    "parse_route_module",
    "route_chunk_validity",
    "sets_intersect",
    "validate_route_chunks",
]
