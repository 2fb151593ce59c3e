"""Lexical scope walking over tree-sitter JavaScript/TypeScript trees.

Tree-sitter produces a concrete syntax tree but no binding information.
:class:`OccurrenceCollector` fills that gap for the one question route
chunk analysis needs answered: which identifiers inside a top-level
statement refer to a *module-level* binding. Identifiers declared by an
enclosing function, block, ``catch`` clause, ``for`` head, class
expression or type parameter list shadow module bindings; ``var``
declarations hoist to the nearest function.

The walk uses an explicit stack so deeply nested expressions (long string
concatenations, large JSX trees) cannot exhaust the interpreter stack.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Collection, Iterable, Iterator

__all__ = [
    "Occurrence",
    "OccurrenceCollector",
    "node_text",
    "pattern_identifiers",
]

Node = Any

IDENTIFIER_NODES = frozenset(
    {
        "identifier",
        "shorthand_property_identifier",
        "shorthand_property_identifier_pattern",
        "type_identifier",
    }
)
FUNCTION_NODES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
        "method_definition",
        "function_signature",
    }
)
_DECLARED_FUNCTION_NODES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_signature",
    }
)
_CLASS_DECLARATION_NODES = frozenset(
    {"class_declaration", "abstract_class_declaration"}
)
_CLASS_EXPRESSION_NODES = frozenset({"class"})
_BLOCK_NODES = frozenset({"statement_block", "switch_body", "class_static_block"})
_NAMED_DECLARATION_NODES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "class_declaration",
        "abstract_class_declaration",
        "enum_declaration",
        "interface_declaration",
        "type_alias_declaration",
    }
)
_VARIABLE_NODES = frozenset({"lexical_declaration", "variable_declaration"})
_JSX_NAME_PARENTS = frozenset(
    {"jsx_opening_element", "jsx_closing_element", "jsx_self_closing_element"}
)
_QUALIFIED_NAME_NODES = frozenset({"nested_type_identifier", "nested_identifier"})


@dataclass(frozen=True, slots=True)
class Occurrence:
    """An identifier that resolves to a module-level binding."""

    name: str
    start: int
    end: int


def node_text(node: Node) -> str:
    return node.text.decode("utf-8")


def pattern_identifiers(node: Node | None) -> list[Node]:
    """Return the identifier nodes bound by a declaration pattern.

    Walks object, array, rest and default-value patterns as well as
    TypeScript parameter wrappers. Default values are not descended into.
    """

    found: list[Node] = []
    pending = [node] if node is not None else []
    while pending:
        current = pending.pop()
        kind = current.type
        if kind in ("identifier", "shorthand_property_identifier_pattern"):
            found.append(current)
        elif kind in ("object_pattern", "array_pattern"):
            pending.extend(reversed(current.named_children))
        elif kind == "pair_pattern":
            _push_field(pending, current, "value")
        elif kind in ("assignment_pattern", "object_assignment_pattern"):
            _push_field(pending, current, "left")
        elif kind == "rest_pattern":
            pending.extend(reversed(current.named_children))
        elif kind in ("required_parameter", "optional_parameter"):
            _push_field(pending, current, "pattern")
    return found


def _push_field(pending: list[Node], node: Node, field: str) -> None:
    child = node.child_by_field_name(field)
    if child is not None:
        pending.append(child)


def _pattern_names(node: Node | None) -> set[str]:
    return {node_text(identifier) for identifier in pattern_identifiers(node)}


def _declarator_names(declaration: Node) -> set[str]:
    names: set[str] = set()
    for declarator in declaration.named_children:
        if declarator.type == "variable_declarator":
            names |= _pattern_names(declarator.child_by_field_name("name"))
    return names


def _lexical_names(block: Node) -> set[str]:
    """Names declared directly inside ``block``.

    Case clauses of a ``switch`` share the scope of its body.
    """

    names: set[str] = set()
    for child in block.named_children:
        if child.type in ("switch_case", "switch_default"):
            names |= _lexical_names(child)
            continue
        if child.type in _VARIABLE_NODES:
            names |= _declarator_names(child)
        elif child.type in _NAMED_DECLARATION_NODES:
            name = child.child_by_field_name("name")
            if name is not None:
                names.add(node_text(name))
    return names


def _hoisted_var_names(body: Node) -> set[str]:
    """``var`` names declared anywhere in ``body`` outside nested functions."""

    names: set[str] = set()
    pending = list(body.named_children)
    while pending:
        current = pending.pop()
        if current.type in FUNCTION_NODES:
            continue
        if current.type == "variable_declaration":
            names |= _declarator_names(current)
        elif current.type == "for_in_statement":
            kind = current.child_by_field_name("kind")
            if kind is not None and kind.type == "var":
                names |= _pattern_names(current.child_by_field_name("left"))
        pending.extend(current.named_children)
    return names


def _type_parameter_names(node: Node) -> set[str]:
    params = node.child_by_field_name("type_parameters")
    if params is None:
        return set()
    names: set[str] = set()
    for param in params.named_children:
        name = param.child_by_field_name("name")
        if name is not None:
            names.add(node_text(name))
    return names


def _same_node(left: Node | None, right: Node) -> bool:
    return (
        left is not None
        and left.start_byte == right.start_byte
        and left.end_byte == right.end_byte
        and left.type == right.type
    )


class _Scope:
    __slots__ = ("names", "parent")

    def __init__(
        self, names: Collection[str] = (), parent: "_Scope | None" = None
    ) -> None:
        self.names = frozenset(names)
        self.parent = parent

    def declares(self, name: str) -> bool:
        scope: _Scope | None = self
        while scope is not None:
            if name in scope.names:
                return True
            scope = scope.parent
        return False

    def child(self, names: Collection[str]) -> "_Scope":
        if not names:
            return self
        return _Scope(names, self)


class OccurrenceCollector:
    """Collect module-binding references beneath a top-level statement."""

    def __init__(self, module_names: Collection[str]) -> None:
        self._module_names = frozenset(module_names)

    def collect(self, node: Node) -> tuple[Occurrence, ...]:
        found: list[Occurrence] = []
        stack: list[tuple[Node, _Scope]] = [(node, _Scope())]
        while stack:
            current, scope = stack.pop()
            if current.type in IDENTIFIER_NODES:
                occurrence = self._resolve(current, scope)
                if occurrence is not None:
                    found.append(occurrence)
                continue
            stack.extend(self._expand(current, scope))
        found.sort(key=lambda occurrence: occurrence.start)
        return tuple(found)

    def _resolve(self, node: Node, scope: _Scope) -> Occurrence | None:
        name = node_text(node)
        if name not in self._module_names or scope.declares(name):
            return None
        parent = node.parent
        if (
            node.type == "identifier"
            and parent is not None
            and parent.type in _JSX_NAME_PARENTS
            and name[:1].islower()
        ):
            return None
        return Occurrence(name=name, start=node.start_byte, end=node.end_byte)

    def _expand(
        self, node: Node, scope: _Scope
    ) -> Iterator[tuple[Node, _Scope]]:
        kind = node.type
        if kind in FUNCTION_NODES:
            yield from self._expand_function(node, scope)
        elif kind in _CLASS_DECLARATION_NODES or kind in _CLASS_EXPRESSION_NODES:
            yield from self._expand_class(node, scope)
        elif kind in _BLOCK_NODES:
            yield from _children(node, scope.child(_lexical_names(node)))
        elif kind == "for_statement":
            initializer = node.child_by_field_name("initializer")
            names = (
                _declarator_names(initializer)
                if initializer is not None and initializer.type in _VARIABLE_NODES
                else set()
            )
            yield from _children(node, scope.child(names))
        elif kind == "for_in_statement":
            names = set()
            if node.child_by_field_name("kind") is not None:
                names = _pattern_names(node.child_by_field_name("left"))
            yield from _children(node, scope.child(names))
        elif kind == "catch_clause":
            names = _pattern_names(node.child_by_field_name("parameter"))
            yield from _children(node, scope.child(names))
        elif kind in ("interface_declaration", "type_alias_declaration"):
            yield from _children(node, scope.child(_type_parameter_names(node)))
        elif kind in _QUALIFIED_NAME_NODES:
            # Only the leftmost segment of ``A.B.C`` can name a binding.
            if node.named_children:
                yield node.named_children[0], scope
        elif kind == "export_specifier":
            name = node.child_by_field_name("name")
            if name is not None:
                yield name, scope
        else:
            yield from _children(node, scope)

    def _expand_function(
        self, node: Node, scope: _Scope
    ) -> Iterator[tuple[Node, _Scope]]:
        name = node.child_by_field_name("name")
        names = _type_parameter_names(node)
        if name is not None:
            if node.type in _DECLARED_FUNCTION_NODES:
                yield name, scope
            elif node.type != "method_definition":
                names.add(node_text(name))

        single = node.child_by_field_name("parameter")
        if single is not None:
            names |= _pattern_names(single)
        params = node.child_by_field_name("parameters")
        if params is not None:
            for param in params.named_children:
                names |= _pattern_names(param)

        body = node.child_by_field_name("body")
        if body is not None and body.type == "statement_block":
            names |= _hoisted_var_names(body)

        inner = scope.child(names)
        for child in node.named_children:
            if _same_node(name, child):
                continue
            yield child, inner

    def _expand_class(
        self, node: Node, scope: _Scope
    ) -> Iterator[tuple[Node, _Scope]]:
        name = node.child_by_field_name("name")
        names = _type_parameter_names(node)
        if name is not None:
            if node.type in _CLASS_DECLARATION_NODES:
                yield name, scope
            else:
                names.add(node_text(name))
        inner = scope.child(names)
        for child in node.named_children:
            if _same_node(name, child):
                continue
            yield child, inner


def _children(node: Node, scope: _Scope) -> Iterable[tuple[Node, _Scope]]:
    return ((child, scope) for child in node.named_children)
