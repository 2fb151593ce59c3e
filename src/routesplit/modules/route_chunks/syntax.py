"""Route module parsing backed by tree-sitter.

:func:`parse_route_module` turns source text into a :class:`RouteModule`:
the ordered top-level statements, the module-level bindings each one
declares, the exports the module exposes and, per statement, the
identifier occurrences that refer to module bindings.

Statements are identified by their ordinal in the module body. Trees are
never mutated; generated code splices byte ranges of the original source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from functools import lru_cache
import threading
from typing import Any, Iterator, Mapping

from routesplit.core.logging import get_logger

from .cache import RouteChunkCache, cache_key, get_or_set
from .errors import RouteChunkError, RouteModuleSyntaxError
from .hashing import source_version
from .scope import Occurrence, OccurrenceCollector, node_text, pattern_identifiers

__all__ = [
    "BindingKind",
    "Declaration",
    "ExportForm",
    "ExportSpecifier",
    "Grammar",
    "ImportSpecifier",
    "ModuleExport",
    "ModuleStatement",
    "RouteModule",
    "StatementKind",
    "VariableDeclarator",
    "get_route_module",
    "grammar_for_path",
    "parse_route_module",
]

Node = Any


class Grammar(StrEnum):
    """tree-sitter grammars shipped by ``tree-sitter-typescript``."""

    TYPESCRIPT = "typescript"
    TSX = "tsx"


class StatementKind(StrEnum):
    IMPORT = "import"
    EXPORT = "export"
    TYPE = "type"
    CODE = "code"


class ExportForm(StrEnum):
    """Closed set of ``export`` statement shapes."""

    DEFAULT = "default"
    VARIABLE = "variable"
    DECLARATION = "declaration"
    CLAUSE = "clause"
    REEXPORT = "reexport"
    WILDCARD = "wildcard"
    TYPE_ONLY = "type_only"
    OPAQUE = "opaque"


class BindingKind(StrEnum):
    IMPORT = "import"
    DECLARATOR = "declarator"
    DECLARATION = "declaration"
    TYPE = "type"


_TYPESCRIPT_SUFFIXES = (".ts", ".mts", ".cts")

_TYPE_DECLARATION_NODES = frozenset(
    {
        "interface_declaration",
        "type_alias_declaration",
        "ambient_declaration",
        "function_signature",
    }
)
_VALUE_DECLARATION_NODES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
        "enum_declaration",
    }
)
_DEFAULT_NAMED_NODES = _VALUE_DECLARATION_NODES | {
    "function_expression",
    "function",
    "generator_function",
    "class",
}
_VARIABLE_NODES = frozenset({"lexical_declaration", "variable_declaration"})


def grammar_for_path(path: str | None) -> Grammar:
    """Pick the grammar for a module id; query strings are ignored.

    Example:
        >>> grammar_for_path("/app/routes/home.ts?route-chunk=main")
        <Grammar.TYPESCRIPT: 'typescript'>
        >>> grammar_for_path("/app/routes/home.jsx")
        <Grammar.TSX: 'tsx'>
    """

    if not path:
        return Grammar.TSX
    bare = path.split("?", 1)[0].lower()
    if bare.endswith(_TYPESCRIPT_SUFFIXES):
        return Grammar.TYPESCRIPT
    return Grammar.TSX


@lru_cache(maxsize=None)
def _language(grammar: Grammar) -> Any:
    from tree_sitter import Language
    import tree_sitter_typescript

    if grammar is Grammar.TYPESCRIPT:
        return Language(tree_sitter_typescript.language_typescript())
    return Language(tree_sitter_typescript.language_tsx())


_PARSERS = threading.local()


def _parser(grammar: Grammar) -> Any:
    """Return this thread's parser for ``grammar``; parsers are not thread-safe."""

    from tree_sitter import Parser

    parsers: dict[Grammar, Any] | None = getattr(_PARSERS, "parsers", None)
    if parsers is None:
        parsers = {}
        _PARSERS.parsers = parsers
    parser = parsers.get(grammar)
    if parser is None:
        parser = Parser(_language(grammar))
        parsers[grammar] = parser
    return parser


@dataclass(frozen=True, slots=True)
class ImportSpecifier:
    local: str
    text: str
    kind: str  # "default", "namespace" or "named"


@dataclass(frozen=True, slots=True)
class ExportSpecifier:
    exported: str
    local: str | None
    text: str
    start: int
    end: int
    type_only: bool = False


@dataclass(frozen=True, slots=True)
class VariableDeclarator:
    names: tuple[str, ...]
    text: str
    start: int
    end: int


@dataclass(slots=True)
class ModuleStatement:
    """A top-level statement with the comments attached to it.

    ``clause`` is the byte span of an import clause or ``export { ... }``
    list; partially retained statements are re-rendered around it.
    """

    index: int
    node: Node
    kind: StatementKind
    start: int
    end: int
    form: ExportForm | None = None
    declaration_name: str | None = None
    declarators: tuple[VariableDeclarator, ...] = ()
    specifiers: tuple[ExportSpecifier, ...] = ()
    import_specifiers: tuple[ImportSpecifier, ...] = ()
    clause: tuple[int, int] | None = None

    @property
    def is_module(self) -> bool:
        return self.kind in (StatementKind.IMPORT, StatementKind.EXPORT)

    @property
    def is_type_only(self) -> bool:
        return self.kind is StatementKind.TYPE or self.form is ExportForm.TYPE_ONLY


@dataclass(frozen=True, slots=True)
class Declaration:
    """Where a module-level binding is declared."""

    name: str
    statement: int
    kind: BindingKind
    start: int
    end: int
    exported: bool = False


@dataclass(frozen=True, slots=True)
class ModuleExport:
    """An export name and the syntax that defines it.

    ``start``/``end`` delimit the defining node inside ``statement``; both
    are ``None`` for re-exports whose value lives in another module.
    """

    name: str
    statement: int
    form: ExportForm
    start: int | None
    end: int | None


@dataclass(frozen=True)
class RouteModule:
    """Parsed, immutable view of a route module."""

    source: bytes
    grammar: Grammar
    statements: tuple[ModuleStatement, ...]
    bindings: Mapping[str, tuple[Declaration, ...]]
    exports: Mapping[str, ModuleExport]
    occurrences: tuple[tuple[Occurrence, ...], ...]
    references: Mapping[str, frozenset[int]] = field(default_factory=dict)

    def slice(self, start: int, end: int) -> str:
        return self.source[start:end].decode("utf-8")

    def occurrences_in(
        self, statement: int, start: int, end: int
    ) -> Iterator[Occurrence]:
        for occurrence in self.occurrences[statement]:
            if occurrence.start >= start and occurrence.end <= end:
                yield occurrence


class _ModuleBuilder:
    """Accumulate statements, bindings and exports from a parsed tree."""

    def __init__(self) -> None:
        self.statements: list[ModuleStatement] = []
        self.bindings: dict[str, list[Declaration]] = {}
        self.exports: dict[str, ModuleExport] = {}

    def build(self, root: Node) -> None:
        pending_start: int | None = None
        pending_end = 0
        for child in root.named_children:
            if child.type == "hash_bang_line":
                continue
            if child.type == "comment":
                previous = self.statements[-1] if self.statements else None
                if (
                    pending_start is None
                    and previous is not None
                    and child.start_point[0] == previous.node.end_point[0]
                ):
                    previous.end = child.end_byte
                elif pending_start is None:
                    pending_start = child.start_byte
                pending_end = child.end_byte
                continue
            start = pending_start if pending_start is not None else child.start_byte
            pending_start = None
            self._add_statement(child, start)
        # Comments closing the file stay with the last statement.
        if pending_start is not None and self.statements:
            self.statements[-1].end = pending_end

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------
    def _add_statement(self, node: Node, start: int) -> None:
        index = len(self.statements)
        statement = ModuleStatement(
            index=index,
            node=node,
            kind=StatementKind.CODE,
            start=start,
            end=node.end_byte,
        )
        self.statements.append(statement)

        kind = node.type
        if kind == "import_statement":
            statement.kind = StatementKind.IMPORT
            self._bind_imports(statement)
        elif kind == "export_statement":
            statement.kind = StatementKind.EXPORT
            self._classify_export(statement)
        elif kind in _TYPE_DECLARATION_NODES:
            statement.kind = StatementKind.TYPE
            self._bind_declaration(node, index, BindingKind.TYPE)
        elif kind in _VARIABLE_NODES:
            self._bind_variables(node, index, exported=False)
        elif kind in _VALUE_DECLARATION_NODES:
            self._bind_declaration(node, index, BindingKind.DECLARATION)
        elif kind == "expression_statement":
            for inner in node.named_children:
                if inner.type in ("internal_module", "module"):
                    self._bind_declaration(inner, index, BindingKind.DECLARATION)
        elif kind in ("internal_module", "module"):
            self._bind_declaration(node, index, BindingKind.DECLARATION)

    def _bind_imports(self, statement: ModuleStatement) -> None:
        node = statement.node
        clause = _first_child(node, "import_clause")
        require = _first_child(node, "import_require_clause")
        specifiers: list[ImportSpecifier] = []

        if clause is not None:
            statement.clause = (clause.start_byte, clause.end_byte)
            for part in clause.named_children:
                if part.type == "identifier":
                    specifiers.append(
                        ImportSpecifier(node_text(part), node_text(part), "default")
                    )
                elif part.type == "namespace_import":
                    identifier = _first_child(part, "identifier")
                    if identifier is not None:
                        specifiers.append(
                            ImportSpecifier(
                                node_text(identifier), node_text(part), "namespace"
                            )
                        )
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        local = spec.child_by_field_name(
                            "alias"
                        ) or spec.child_by_field_name("name")
                        if local is not None:
                            specifiers.append(
                                ImportSpecifier(
                                    node_text(local), node_text(spec), "named"
                                )
                            )
        elif require is not None:
            identifier = _first_child(require, "identifier")
            if identifier is not None:
                specifiers.append(
                    ImportSpecifier(node_text(identifier), node_text(require), "named")
                )

        for spec in specifiers:
            self._bind(
                Declaration(
                    name=spec.local,
                    statement=statement.index,
                    kind=BindingKind.IMPORT,
                    start=node.start_byte,
                    end=node.end_byte,
                )
            )
        statement.import_specifiers = tuple(specifiers)

    def _classify_export(self, statement: ModuleStatement) -> None:
        node = statement.node
        index = statement.index
        tokens = {child.type for child in node.children if not child.is_named}
        declaration = node.child_by_field_name("declaration")
        value = node.child_by_field_name("value")
        source = node.child_by_field_name("source")
        clause = _first_child(node, "export_clause")
        namespace = _first_child(node, "namespace_export")

        if "default" in tokens:
            target = declaration or value
            if target is not None and target.type in _TYPE_DECLARATION_NODES:
                statement.form = ExportForm.TYPE_ONLY
                self._bind_declaration(target, index, BindingKind.TYPE, exported=True)
                return
            statement.form = ExportForm.DEFAULT
            if target is not None and target.type in _DEFAULT_NAMED_NODES:
                name = self._bind_declaration(
                    target, index, BindingKind.DECLARATION, exported=True
                )
                statement.declaration_name = name
            self._export("default", statement, node.start_byte, node.end_byte)
            return

        if declaration is not None:
            if declaration.type in _TYPE_DECLARATION_NODES:
                statement.form = ExportForm.TYPE_ONLY
                self._bind_declaration(
                    declaration, index, BindingKind.TYPE, exported=True
                )
            elif declaration.type in _VARIABLE_NODES:
                statement.form = ExportForm.VARIABLE
                statement.declarators = self._bind_variables(
                    declaration, index, exported=True, statement=statement
                )
            else:
                statement.form = ExportForm.DECLARATION
                name = self._bind_declaration(
                    declaration, index, BindingKind.DECLARATION, exported=True
                )
                statement.declaration_name = name
                if name is not None:
                    self._export(name, statement, node.start_byte, node.end_byte)
            return

        if "type" in tokens:
            statement.form = ExportForm.TYPE_ONLY
            return

        if clause is not None:
            statement.clause = (clause.start_byte, clause.end_byte)
            statement.specifiers = self._export_specifiers(
                clause, reexport=source is not None
            )
            if source is not None:
                statement.form = ExportForm.REEXPORT
                for spec in statement.specifiers:
                    if not spec.type_only:
                        self._export(spec.exported, statement, None, None)
            else:
                statement.form = ExportForm.CLAUSE
                for spec in statement.specifiers:
                    if not spec.type_only:
                        self._export(spec.exported, statement, spec.start, spec.end)
            return

        if namespace is not None and source is not None:
            statement.form = ExportForm.REEXPORT
            if namespace.named_children:
                name_node = namespace.named_children[-1]
                name = _export_name(name_node)
                statement.declaration_name = name
                self._export(name, statement, None, None)
            return

        if "*" in tokens and source is not None:
            statement.form = ExportForm.WILDCARD
            return

        statement.form = ExportForm.OPAQUE

    def _export_specifiers(
        self, clause: Node, *, reexport: bool
    ) -> tuple[ExportSpecifier, ...]:
        specifiers: list[ExportSpecifier] = []
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            name = spec.child_by_field_name("name")
            alias = spec.child_by_field_name("alias")
            if name is None:
                continue
            exported = _export_name(alias if alias is not None else name)
            specifiers.append(
                ExportSpecifier(
                    exported=exported,
                    local=None if reexport else _export_name(name),
                    text=node_text(spec),
                    start=spec.start_byte,
                    end=spec.end_byte,
                    type_only=any(child.type == "type" for child in spec.children),
                )
            )
        return tuple(specifiers)

    # ------------------------------------------------------------------
    # Bindings
    # ------------------------------------------------------------------
    def _bind(self, declaration: Declaration) -> None:
        self.bindings.setdefault(declaration.name, []).append(declaration)

    def _bind_declaration(
        self,
        node: Node,
        index: int,
        kind: BindingKind,
        *,
        exported: bool = False,
    ) -> str | None:
        if node.type == "ambient_declaration":
            for inner in node.named_children:
                if inner.type in _VARIABLE_NODES:
                    for declarator in self._declarators(inner):
                        for name in declarator.names:
                            self._bind(
                                Declaration(
                                    name, index, BindingKind.TYPE,
                                    declarator.start, declarator.end, exported,
                                )
                            )
                elif inner.child_by_field_name("name") is not None:
                    self._bind_declaration(
                        inner, index, BindingKind.TYPE, exported=exported
                    )
            return None
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.type == "string":
            return None
        name = node_text(name_node)
        self._bind(
            Declaration(name, index, kind, node.start_byte, node.end_byte, exported)
        )
        return name

    def _declarators(self, declaration: Node) -> list[VariableDeclarator]:
        declarators: list[VariableDeclarator] = []
        for child in declaration.named_children:
            if child.type != "variable_declarator":
                continue
            identifiers = pattern_identifiers(child.child_by_field_name("name"))
            declarators.append(
                VariableDeclarator(
                    names=tuple(node_text(identifier) for identifier in identifiers),
                    text=node_text(child),
                    start=child.start_byte,
                    end=child.end_byte,
                )
            )
        return declarators

    def _bind_variables(
        self,
        declaration: Node,
        index: int,
        *,
        exported: bool,
        statement: ModuleStatement | None = None,
    ) -> tuple[VariableDeclarator, ...]:
        declarators = self._declarators(declaration)
        for child in declaration.named_children:
            if child.type != "variable_declarator":
                continue
            name_node = child.child_by_field_name("name")
            for identifier in pattern_identifiers(name_node):
                name = node_text(identifier)
                self._bind(
                    Declaration(
                        name, index, BindingKind.DECLARATOR,
                        child.start_byte, child.end_byte, exported,
                    )
                )
                if statement is None:
                    continue
                if name_node is not None and name_node.type == "identifier":
                    self._export(name, statement, child.start_byte, child.end_byte)
                else:
                    self._export(
                        name, statement, identifier.start_byte, identifier.end_byte
                    )
        return tuple(declarators)

    def _export(
        self,
        name: str,
        statement: ModuleStatement,
        start: int | None,
        end: int | None,
    ) -> None:
        if statement.form is None:
            raise RouteChunkError(
                f"Export {name!r} registered before its form was known"
            )
        self.exports[name] = ModuleExport(
            name=name,
            statement=statement.index,
            form=statement.form,
            start=start,
            end=end,
        )


def _first_child(node: Node, type_name: str) -> Node | None:
    for child in node.children:
        if child.type == type_name:
            return child
    return None


def _export_name(node: Node) -> str:
    text = node_text(node)
    if node.type == "string":
        return text[1:-1]
    return text


def _iter_nodes(node: Node) -> Iterator[Node]:
    pending = [node]
    while pending:
        current = pending.pop()
        yield current
        pending.extend(reversed(current.children))


def _raise_syntax_error(root: Node, module_id: str | None) -> None:
    for node in _iter_nodes(root):
        if node.type == "ERROR" or node.is_missing:
            row, column = node.start_point
            raise RouteModuleSyntaxError(
                line=row + 1, column=column + 1, module_id=module_id
            )
    row, column = root.start_point
    raise RouteModuleSyntaxError(line=row + 1, column=column + 1, module_id=module_id)


def parse_route_module(
    code: str,
    *,
    grammar: Grammar = Grammar.TSX,
    module_id: str | None = None,
) -> RouteModule:
    """Parse ``code`` into a :class:`RouteModule`.

    Raises:
        RouteModuleSyntaxError: If tree-sitter reports a syntax error.
    """

    source = code.encode("utf-8")
    tree = _parser(grammar).parse(source)
    root = tree.root_node
    if root.has_error:
        _raise_syntax_error(root, module_id)

    builder = _ModuleBuilder()
    builder.build(root)
    statements = tuple(builder.statements)

    collector = OccurrenceCollector(builder.bindings)
    occurrences: list[tuple[Occurrence, ...]] = []
    references: dict[str, set[int]] = {}
    for statement in statements:
        if statement.kind is StatementKind.IMPORT or statement.form in (
            ExportForm.REEXPORT,
            ExportForm.WILDCARD,
        ):
            found: tuple[Occurrence, ...] = ()
        else:
            found = collector.collect(statement.node)
        occurrences.append(found)
        for occurrence in found:
            references.setdefault(occurrence.name, set()).add(statement.index)

    return RouteModule(
        source=source,
        grammar=grammar,
        statements=statements,
        bindings={name: tuple(decls) for name, decls in builder.bindings.items()},
        exports=dict(builder.exports),
        occurrences=tuple(occurrences),
        references={name: frozenset(found) for name, found in references.items()},
    )


def get_route_module(
    code: str,
    *,
    cache: RouteChunkCache | None = None,
    module_key: str = "",
    grammar: Grammar = Grammar.TSX,
) -> RouteModule:
    """Return the parsed module for ``code``, memoised through ``cache``."""

    def _parse() -> RouteModule:
        get_logger(__name__).debug(
            "route-module-parse", module=module_key, grammar=grammar.value
        )
        return parse_route_module(code, grammar=grammar, module_id=module_key or None)

    return get_or_set(
        cache,
        cache_key(module_key, "parse", grammar.value),
        source_version(code),
        _parse,
    )
