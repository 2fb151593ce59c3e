"""Decide which exports can be isolated into their own chunk."""

from __future__ import annotations

from typing import AbstractSet, Mapping, TypeVar

from .cache import RouteChunkCache, cache_key, get_or_set
from .dependencies import ExportDependencies, get_export_dependencies
from .hashing import source_version
from .syntax import Grammar

__all__ = ["has_chunkable_export", "is_chunkable", "sets_intersect"]

T = TypeVar("T")


def sets_intersect(left: AbstractSet[T], right: AbstractSet[T]) -> bool:
    """Return ``True`` when the sets share an element, probing the smaller."""

    smaller, larger = (left, right) if len(left) <= len(right) else (right, left)
    return any(item in larger for item in smaller)


def is_chunkable(
    dependencies: Mapping[str, ExportDependencies],
    export_name: str,
) -> bool:
    """Return whether ``export_name`` can move to a chunk of its own.

    An export is chunkable when no other export shares its top-level code,
    it owns at most one exported declarator that nobody else reaches, and
    no other export reaches the exported declarations it depends on.
    """

    own = dependencies.get(export_name)
    if own is None:
        return False

    others = [
        other for name, other in dependencies.items() if name != export_name
    ]
    for other in others:
        if sets_intersect(
            other.top_level_non_module_statements,
            own.top_level_non_module_statements,
        ):
            return False

    if len(own.exported_variable_declarators) > 1:
        return False
    if own.exported_variable_declarators:
        for other in others:
            if sets_intersect(
                other.exported_variable_declarators,
                own.exported_variable_declarators,
            ):
                return False

    for other in others:
        if sets_intersect(other.exported_declarations, own.exported_declarations):
            return False

    return True


def has_chunkable_export(
    code: str,
    export_name: str,
    *,
    cache: RouteChunkCache | None = None,
    module_key: str = "",
    grammar: Grammar = Grammar.TSX,
) -> bool:
    """Cached :func:`is_chunkable` for the module source ``code``."""

    def _decide() -> bool:
        dependencies = get_export_dependencies(
            code, cache=cache, module_key=module_key, grammar=grammar
        )
        return is_chunkable(dependencies, export_name)

    return get_or_set(
        cache,
        cache_key(module_key, "chunkable", export_name),
        source_version(code),
        _decide,
    )
