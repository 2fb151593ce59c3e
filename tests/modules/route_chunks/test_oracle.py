from __future__ import annotations

from itertools import combinations

import pytest

from routesplit.modules.route_chunks import RouteChunkCache
from routesplit.modules.route_chunks.dependencies import (
    DeclaratorRef,
    ExportDependencies,
    get_export_dependencies,
)
from routesplit.modules.route_chunks.oracle import (
    has_chunkable_export,
    is_chunkable,
    sets_intersect,
)


def _deps(
    statement: int,
    *,
    non_module: set[int] | None = None,
    declarators: set[DeclaratorRef] | None = None,
    declarations: set[DeclaratorRef] | None = None,
) -> ExportDependencies:
    non_module = non_module or set()
    return ExportDependencies(
        top_level_statements=frozenset({statement, *non_module}),
        top_level_non_module_statements=frozenset(non_module),
        imported_identifier_names=frozenset(),
        exported_variable_declarators=frozenset(declarators or ()),
        exported_declarations=frozenset(declarations or ()),
    )


@pytest.mark.parametrize(
    ("left", "right", "expected"),
    [
        (set(), set(), False),
        ({1}, set(), False),
        ({1, 2, 3}, {3}, True),
        ({4}, {1, 2, 3}, False),
    ],
)
def test_sets_intersect(left: set[int], right: set[int], expected: bool) -> None:
    assert sets_intersect(left, right) is expected
    assert sets_intersect(right, left) is expected


def test_missing_export_is_not_chunkable() -> None:
    assert is_chunkable({"default": _deps(0)}, "clientLoader") is False


def test_disjoint_exports_are_chunkable() -> None:
    deps = {
        "clientLoader": _deps(1, non_module={0}),
        "default": _deps(3, non_module={2}),
    }

    assert is_chunkable(deps, "clientLoader") is True
    assert is_chunkable(deps, "default") is True


def test_shared_non_module_statement_blocks_both_exports() -> None:
    deps = {
        "clientAction": _deps(1, non_module={0}),
        "clientLoader": _deps(2, non_module={0}),
    }

    assert is_chunkable(deps, "clientAction") is False
    assert is_chunkable(deps, "clientLoader") is False


def test_more_than_one_exported_declarator_is_not_chunkable() -> None:
    deps = {
        "clientLoader": _deps(
            0, declarators={DeclaratorRef(0, 13, 30), DeclaratorRef(0, 32, 50)}
        ),
    }

    assert is_chunkable(deps, "clientLoader") is False


def test_shared_exported_declarator_is_not_chunkable() -> None:
    shared = DeclaratorRef(1, 13, 42)
    deps = {
        "clientAction": _deps(1, declarators={shared}),
        "clientLoader": _deps(1, declarators={shared}),
    }

    assert is_chunkable(deps, "clientAction") is False


def test_exported_declaration_reached_elsewhere_is_not_chunkable() -> None:
    fallback = DeclaratorRef(0, 7, 50)
    deps = {
        "HydrateFallback": _deps(0, declarations={fallback}),
        "default": _deps(1, declarations={fallback, DeclaratorRef(1, 60, 120)}),
    }

    assert is_chunkable(deps, "HydrateFallback") is False


def test_import_sharing_does_not_block_chunking() -> None:
    deps = {
        "clientLoader": ExportDependencies(
            top_level_statements=frozenset({0, 1}),
            top_level_non_module_statements=frozenset(),
            imported_identifier_names=frozenset({"fetchData"}),
            exported_variable_declarators=frozenset(),
        ),
        "default": ExportDependencies(
            top_level_statements=frozenset({0, 2}),
            top_level_non_module_statements=frozenset(),
            imported_identifier_names=frozenset({"fetchData"}),
            exported_variable_declarators=frozenset(),
        ),
    }

    assert is_chunkable(deps, "clientLoader") is True


class TestHasChunkableExport:
    @pytest.fixture(autouse=True)
    def _grammar(self) -> None:
        pytest.importorskip("tree_sitter_typescript")

    def test_shared_code_is_reported_for_both_exports(self) -> None:
        code = (
            "const shared = () => {};\n"
            "export const clientAction = async () => shared();\n"
            "export const clientLoader = async () => shared();\n"
        )

        assert has_chunkable_export(code, "clientAction") is False
        assert has_chunkable_export(code, "clientLoader") is False

    def test_destructured_exports_are_not_chunkable(self) -> None:
        code = (
            "const source = { clientAction: () => {}, clientLoader: () => {} };\n"
            "export const { clientAction, clientLoader } = source;\n"
        )

        assert has_chunkable_export(code, "clientAction") is False

    def test_multi_declarator_statement_exports_are_chunkable(self) -> None:
        code = (
            "export const clientLoader = () => 1, clientAction = () => 2;\n"
            "export default function Route() { return null; }\n"
        )

        assert has_chunkable_export(code, "clientLoader") is True
        assert has_chunkable_export(code, "clientAction") is True

    def test_fallback_rendered_by_the_component_is_not_chunkable(self) -> None:
        code = (
            "export function HydrateFallback() { return null; }\n"
            "export default function Route() { return <HydrateFallback />; }\n"
        )

        assert has_chunkable_export(code, "HydrateFallback") is False

    def test_absent_export_is_not_chunkable(self) -> None:
        assert has_chunkable_export("export default 1;\n", "clientLoader") is False

    def test_answers_are_cached_per_export(self) -> None:
        cache = RouteChunkCache()
        code = "export const clientLoader = () => 1;\n"

        assert has_chunkable_export(
            code, "clientLoader", cache=cache, module_key="routes/a.tsx"
        )
        assert "routes/a.tsx::chunkable::clientLoader" in cache
        assert "routes/a.tsx::dependencies" in cache

    def test_chunkable_exports_never_share_non_module_code(self) -> None:
        code = (
            'import { api } from "./api";\n'
            "const shared = () => api();\n"
            "const own = () => 2;\n"
            "export const clientAction = async () => shared();\n"
            "export const clientLoader = async () => shared();\n"
            "export const clientMiddleware = [own];\n"
            "export function HydrateFallback() { return null; }\n"
            "export default function Route() { return api; }\n"
        )

        dependencies = get_export_dependencies(code)
        chunkable = sorted(
            name for name in dependencies if is_chunkable(dependencies, name)
        )

        assert chunkable == ["HydrateFallback", "clientMiddleware", "default"]
        for left, right in combinations(chunkable, 2):
            assert not (
                dependencies[left].top_level_non_module_statements
                & dependencies[right].top_level_non_module_statements
            ), (left, right)
