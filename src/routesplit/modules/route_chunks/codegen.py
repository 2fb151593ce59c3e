"""Generate chunk source from a parsed route module.

Two operations are provided: :func:`extract_chunk` keeps only one export's
closure and :func:`omit_chunks` removes the closures of chunkable exports
from the full module. Both rebuild text from the original source; retained
statements keep their exact formatting and leading comments, and only
statements that lose specifiers or declarators are re-rendered.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, Mapping, Sequence

from routesplit.core.logging import get_logger

from .cache import RouteChunkCache, cache_key, get_or_set
from .dependencies import DeclaratorRef, ExportDependencies, get_export_dependencies
from .hashing import source_version
from .oracle import is_chunkable
from .syntax import (
    ExportForm,
    ExportSpecifier,
    Grammar,
    ImportSpecifier,
    ModuleStatement,
    RouteModule,
    StatementKind,
    VariableDeclarator,
    get_route_module,
)

__all__ = [
    "extract_chunk",
    "get_chunked_export",
    "omit_chunked_exports",
    "omit_chunks",
]


def _render(module: RouteModule, statement: ModuleStatement, body: str) -> str:
    """Wrap a re-rendered statement body with its comments."""

    node = statement.node
    return (
        module.slice(statement.start, node.start_byte)
        + body
        + module.slice(node.end_byte, statement.end)
    )


def _whole(module: RouteModule, statement: ModuleStatement) -> str:
    return module.slice(statement.start, statement.end)


def _render_imports(
    module: RouteModule,
    statement: ModuleStatement,
    kept: Sequence[ImportSpecifier],
) -> str:
    if len(kept) == len(statement.import_specifiers) or statement.clause is None:
        return _whole(module, statement)
    parts = [spec.text for spec in kept if spec.kind != "named"]
    named = [spec.text for spec in kept if spec.kind == "named"]
    if named:
        parts.append("{ " + ", ".join(named) + " }")
    node = statement.node
    clause_start, clause_end = statement.clause
    body = (
        module.slice(node.start_byte, clause_start)
        + ", ".join(parts)
        + module.slice(clause_end, node.end_byte)
    )
    return _render(module, statement, body)


def _render_declarators(
    module: RouteModule,
    statement: ModuleStatement,
    kept: Sequence[VariableDeclarator],
) -> str:
    if len(kept) == len(statement.declarators):
        return _whole(module, statement)
    node = statement.node
    first, last = statement.declarators[0], statement.declarators[-1]
    body = (
        module.slice(node.start_byte, first.start)
        + ", ".join(declarator.text for declarator in kept)
        + module.slice(last.end, node.end_byte)
    )
    return _render(module, statement, body)


def _render_specifiers(
    module: RouteModule,
    statement: ModuleStatement,
    kept: Sequence[ExportSpecifier],
) -> str:
    if len(kept) == len(statement.specifiers) or statement.clause is None:
        return _whole(module, statement)
    node = statement.node
    clause_start, clause_end = statement.clause
    body = (
        module.slice(node.start_byte, clause_start)
        + "{ "
        + ", ".join(spec.text for spec in kept)
        + " }"
        + module.slice(clause_end, node.end_byte)
    )
    return _render(module, statement, body)


def _join(parts: Iterable[str]) -> str | None:
    rendered = [part for part in parts if part]
    if not rendered:
        return None
    return "\n".join(rendered) + "\n"


def _declarator_ref(
    statement: ModuleStatement, declarator: VariableDeclarator
) -> DeclaratorRef:
    return DeclaratorRef(statement.index, declarator.start, declarator.end)


# ----------------------------------------------------------------------
# Extract one export
# ----------------------------------------------------------------------
def _extract_statement(
    module: RouteModule,
    statement: ModuleStatement,
    dependencies: ExportDependencies,
    export_name: str,
) -> str | None:
    if statement.kind is StatementKind.IMPORT:
        kept = [
            spec
            for spec in statement.import_specifiers
            if spec.local in dependencies.imported_identifier_names
        ]
        return _render_imports(module, statement, kept) if kept else None
    if statement.kind is not StatementKind.EXPORT:
        return _whole(module, statement)

    match statement.form:
        case ExportForm.DEFAULT:
            return _whole(module, statement) if export_name == "default" else None
        case ExportForm.VARIABLE:
            kept = [
                declarator
                for declarator in statement.declarators
                if _declarator_ref(statement, declarator)
                in dependencies.exported_variable_declarators
            ]
            return _render_declarators(module, statement, kept) if kept else None
        case ExportForm.DECLARATION:
            if statement.declaration_name == export_name:
                return _whole(module, statement)
            return None
        case ExportForm.TYPE_ONLY:
            return _whole(module, statement)
        case ExportForm.CLAUSE | ExportForm.REEXPORT:
            if not statement.specifiers:
                if statement.declaration_name == export_name:
                    return _whole(module, statement)
                return None
            kept_specifiers = [
                spec for spec in statement.specifiers if spec.exported == export_name
            ]
            if not kept_specifiers:
                return None
            return _render_specifiers(module, statement, kept_specifiers)
        case _:
            return None


def extract_chunk(
    module: RouteModule,
    dependencies: Mapping[str, ExportDependencies],
    export_name: str,
) -> str | None:
    """Return source holding only ``export_name`` and its closure.

    Returns ``None`` when the export is not chunkable.
    """

    if not is_chunkable(dependencies, export_name):
        return None
    own = dependencies[export_name]
    return _join(
        _extract_statement(module, statement, own, export_name) or ""
        for statement in module.statements
        if statement.index in own.top_level_statements
    )


# ----------------------------------------------------------------------
# Omit many exports
# ----------------------------------------------------------------------
class _Omission:
    """Union of the closures of the exports being removed from main."""

    def __init__(
        self,
        dependencies: Mapping[str, ExportDependencies],
        export_names: Sequence[str],
    ) -> None:
        requested = set(export_names)
        self.omitted = {
            name
            for name in dependencies
            if name in requested and is_chunkable(dependencies, name)
        }
        self.statements: set[int] = set()
        self.declarators: set[DeclaratorRef] = set()
        self.omitted_imports: set[str] = set()
        self.retained_imports: set[str] = set()
        for name, deps in dependencies.items():
            if name in self.omitted:
                self.statements |= deps.top_level_non_module_statements
                self.declarators |= deps.exported_variable_declarators
                self.omitted_imports |= deps.imported_identifier_names
            else:
                self.retained_imports |= deps.imported_identifier_names

    def keeps_import(self, spec: ImportSpecifier) -> bool:
        if spec.local in self.retained_imports:
            return True
        return spec.local not in self.omitted_imports

    def removes(self, name: str | None) -> bool:
        return name is not None and name in self.omitted


def _omit_statement(
    module: RouteModule,
    statement: ModuleStatement,
    omission: _Omission,
) -> str | None:
    if statement.kind is StatementKind.IMPORT:
        if not statement.import_specifiers:
            return _whole(module, statement)
        kept = [
            spec for spec in statement.import_specifiers if omission.keeps_import(spec)
        ]
        return _render_imports(module, statement, kept) if kept else None
    if statement.kind is not StatementKind.EXPORT:
        return _whole(module, statement)

    match statement.form:
        case ExportForm.DEFAULT:
            return None if omission.removes("default") else _whole(module, statement)
        case ExportForm.VARIABLE:
            kept = [
                declarator
                for declarator in statement.declarators
                if _declarator_ref(statement, declarator) not in omission.declarators
            ]
            return _render_declarators(module, statement, kept) if kept else None
        case ExportForm.DECLARATION:
            if omission.removes(statement.declaration_name):
                return None
            return _whole(module, statement)
        case ExportForm.CLAUSE | ExportForm.REEXPORT:
            if not statement.specifiers:
                if omission.removes(statement.declaration_name):
                    return None
                return _whole(module, statement)
            kept_specifiers = [
                spec
                for spec in statement.specifiers
                if not omission.removes(spec.exported)
            ]
            if not kept_specifiers:
                return None
            return _render_specifiers(module, statement, kept_specifiers)
        case _:
            return _whole(module, statement)


def omit_chunks(
    module: RouteModule,
    dependencies: Mapping[str, ExportDependencies],
    export_names: Sequence[str],
) -> str | None:
    """Return ``module`` without the chunkable exports in ``export_names``.

    Names that are not chunkable stay in the output. Returns ``None`` when
    nothing is left.
    """

    omission = _Omission(dependencies, export_names)
    return _join(
        _omit_statement(module, statement, omission) or ""
        for statement in module.statements
        if statement.index not in omission.statements
    )


# ----------------------------------------------------------------------
# Cached entry points
# ----------------------------------------------------------------------
def get_chunked_export(
    code: str,
    export_name: str,
    *,
    cache: RouteChunkCache | None = None,
    module_key: str = "",
    grammar: Grammar = Grammar.TSX,
) -> str | None:
    """Cached :func:`extract_chunk` for the module source ``code``."""

    def _generate() -> str | None:
        module = get_route_module(
            code, cache=cache, module_key=module_key, grammar=grammar
        )
        dependencies = get_export_dependencies(
            code, cache=cache, module_key=module_key, grammar=grammar
        )
        return extract_chunk(module, dependencies, export_name)

    return get_or_set(
        cache,
        cache_key(module_key, "extract", export_name),
        source_version(code),
        _generate,
    )


def omit_chunked_exports(
    code: str,
    export_names: Sequence[str],
    *,
    cache: RouteChunkCache | None = None,
    module_key: str = "",
    grammar: Grammar = Grammar.TSX,
) -> str | None:
    """Cached :func:`omit_chunks` for the module source ``code``."""

    def _generate() -> str | None:
        module = get_route_module(
            code, cache=cache, module_key=module_key, grammar=grammar
        )
        dependencies = get_export_dependencies(
            code, cache=cache, module_key=module_key, grammar=grammar
        )
        result = omit_chunks(module, dependencies, export_names)
        get_logger(__name__).debug(
            "route-chunk-main",
            module=module_key,
            omitted=sorted(_omitted_names(dependencies, export_names)),
            empty=result is None,
        )
        return result

    return get_or_set(
        cache,
        cache_key(module_key, "omit", ",".join(export_names)),
        source_version(code),
        _generate,
    )


def _omitted_names(
    dependencies: Mapping[str, ExportDependencies],
    export_names: Iterable[str],
) -> AbstractSet[str]:
    return {name for name in export_names if is_chunkable(dependencies, name)}
