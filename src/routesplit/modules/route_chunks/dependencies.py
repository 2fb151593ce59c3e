"""Per-export dependency closures over a route module's top-level code."""

from __future__ import annotations

from dataclasses import dataclass, field

from routesplit.core.logging import get_logger

from .cache import RouteChunkCache, cache_key, get_or_set
from .hashing import source_version
from .syntax import (
    BindingKind,
    Grammar,
    ModuleExport,
    RouteModule,
    get_route_module,
)

__all__ = [
    "DeclaratorRef",
    "ExportDependencies",
    "build_export_dependencies",
    "get_export_dependencies",
]

Region = tuple[int, int, int]


@dataclass(frozen=True, slots=True, order=True)
class DeclaratorRef:
    """A declarator or declaration node, identified by statement and span."""

    statement: int
    start: int
    end: int


@dataclass(frozen=True)
class ExportDependencies:
    """Everything one export needs to evaluate.

    Attributes:
        top_level_statements: Ordinals of the exporting statement and every
            top-level statement its closure reaches.
        top_level_non_module_statements: The subset that is neither an
            import, an export nor a type-only declaration.
        imported_identifier_names: Local names bound by imports and used
            by the closure.
        exported_variable_declarators: Declarators of exported variable
            statements reached by the closure.
        exported_declarations: Function, class and enum declarations of
            export statements reached by the closure.
    """

    top_level_statements: frozenset[int]
    top_level_non_module_statements: frozenset[int]
    imported_identifier_names: frozenset[str]
    exported_variable_declarators: frozenset[DeclaratorRef]
    exported_declarations: frozenset[DeclaratorRef] = field(
        default_factory=frozenset
    )


class _Closure:
    """Worklist walk from an export's defining syntax to a fixed point."""

    def __init__(self, module: RouteModule, export: ModuleExport) -> None:
        self._module = module
        self.statements: set[int] = {export.statement}
        self.imported: set[str] = set()
        self.declarators: set[DeclaratorRef] = set()
        self.declarations: set[DeclaratorRef] = set()
        self._seen_regions: set[Region] = set()
        self._seen_names: set[str] = set()
        self._pending: list[Region] = []
        if export.start is not None and export.end is not None:
            self._enqueue((export.statement, export.start, export.end))

    def run(self) -> ExportDependencies:
        module = self._module
        while self._pending:
            statement, start, end = self._pending.pop()
            for occurrence in module.occurrences_in(statement, start, end):
                if occurrence.name not in self._seen_names:
                    self._seen_names.add(occurrence.name)
                    self._visit_binding(occurrence.name)

        non_module = {
            index
            for index in self.statements
            if not module.statements[index].is_module
            and not module.statements[index].is_type_only
        }
        return ExportDependencies(
            top_level_statements=frozenset(self.statements),
            top_level_non_module_statements=frozenset(non_module),
            imported_identifier_names=frozenset(self.imported),
            exported_variable_declarators=frozenset(self.declarators),
            exported_declarations=frozenset(self.declarations),
        )

    def _visit_binding(self, name: str) -> None:
        module = self._module
        for declaration in module.bindings.get(name, ()):
            statement = module.statements[declaration.statement]
            self.statements.add(statement.index)
            if declaration.kind is BindingKind.IMPORT:
                self.imported.add(name)
            elif statement.is_module:
                self._enqueue((statement.index, declaration.start, declaration.end))
                ref = DeclaratorRef(statement.index, declaration.start, declaration.end)
                if declaration.kind is BindingKind.DECLARATOR:
                    self.declarators.add(ref)
                elif declaration.kind is BindingKind.DECLARATION:
                    self.declarations.add(ref)
            else:
                self._enqueue_statement(statement.index)

        # Statements that use or mutate the binding elsewhere, such as
        # ``Component.displayName = "..."``.
        for index in module.references.get(name, ()):
            if not module.statements[index].is_module:
                self._enqueue_statement(index)

    def _enqueue_statement(self, index: int) -> None:
        node = self._module.statements[index].node
        self.statements.add(index)
        self._enqueue((index, node.start_byte, node.end_byte))

    def _enqueue(self, region: Region) -> None:
        if region not in self._seen_regions:
            self._seen_regions.add(region)
            self._pending.append(region)


def build_export_dependencies(module: RouteModule) -> dict[str, ExportDependencies]:
    """Compute the dependency closure of every export in ``module``.

    Re-exports (``export { x } from "./y"``) have no local closure and map
    to the exporting statement alone. ``export * from`` registers no name.

    Example:
        >>> from routesplit.modules.route_chunks.syntax import parse_route_module
        >>> module = parse_route_module("export const clientLoader = () => 1;")
        >>> build_export_dependencies(module)["clientLoader"].top_level_statements
        frozenset({0})
    """

    return {
        name: _Closure(module, export).run() for name, export in module.exports.items()
    }


def get_export_dependencies(
    code: str,
    *,
    cache: RouteChunkCache | None = None,
    module_key: str = "",
    grammar: Grammar = Grammar.TSX,
) -> dict[str, ExportDependencies]:
    """Return the dependency map for ``code``, memoised through ``cache``."""

    def _build() -> dict[str, ExportDependencies]:
        module = get_route_module(
            code, cache=cache, module_key=module_key, grammar=grammar
        )
        dependencies = build_export_dependencies(module)
        get_logger(__name__).debug(
            "route-export-dependencies",
            module=module_key,
            exports=sorted(dependencies),
        )
        return dependencies

    return get_or_set(
        cache,
        cache_key(module_key, "dependencies"),
        source_version(code),
        _build,
    )
