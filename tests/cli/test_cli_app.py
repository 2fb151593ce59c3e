"""Integration tests for the Typer application exposed by :mod:`routesplit.cli`."""

from __future__ import annotations

from pathlib import Path
import tomllib

import pytest
from typer.testing import CliRunner

from routesplit.cli import create_app

_CLEAN_ENV: dict[str, str | None] = {
    "ROUTESPLIT_LOG_LEVEL": None,
    "ROUTESPLIT_LOG_DIR": None,
    "ROUTESPLIT_SPLIT_ROUTE_MODULES": None,
    "ROUTESPLIT_APP_DIRECTORY": None,
    "ROUTESPLIT_ROOT_ROUTE_FILE": None,
}


@pytest.fixture()
def runner() -> CliRunner:
    """Return a Typer CLI runner for invoking the application."""

    return CliRunner()


@pytest.fixture()
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run each command from an empty project directory."""

    monkeypatch.chdir(tmp_path)
    return tmp_path


def _invoke(runner: CliRunner, *args: str):
    return runner.invoke(
        create_app(),
        ["--log-level", "WARNING", *args],
        env=_CLEAN_ENV,
        catch_exceptions=False,
    )


def test_cli_init_writes_config(runner: CliRunner, project: Path) -> None:
    result = _invoke(runner, "init", "--directory", str(project))

    assert result.exit_code == 0, result.output
    assert "Config written" in result.output
    assert "split mode: off" in result.output

    rendered = tomllib.loads((project / "routesplit.toml").read_text("utf-8"))
    assert rendered["log_level"] == "WARNING"
    assert rendered["route_chunks"]["root_route_file"] == "root.tsx"


def test_cli_init_keeps_existing_config(runner: CliRunner, project: Path) -> None:
    config_path = project / "routesplit.toml"
    config_path.write_text('log_level = "ERROR"\n', encoding="utf-8")

    result = _invoke(runner, "init", "--directory", str(project))

    assert result.exit_code == 0, result.output
    assert "Config already exists" in result.output
    assert "--force" in result.output
    assert config_path.read_text(encoding="utf-8") == 'log_level = "ERROR"\n'

    forced = _invoke(runner, "init", "--directory", str(project), "--force")
    assert "Config written" in forced.output
    assert "Generated by routesplit init" in config_path.read_text("utf-8")


def test_cli_detect_reports_each_module(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    app_dir = app_tree.resolve()
    result = _invoke(
        runner,
        "detect",
        str(app_dir / "routes" / "independent.tsx"),
        str(app_dir / "routes" / "shared.tsx"),
        str(app_dir / "root.tsx"),
        "--app-dir",
        str(app_dir),
        "--mode",
        "on",
    )

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    independent = lines.index("routes/independent.tsx")
    assert lines[independent + 1 : independent + 5] == [
        "  clientAction: chunkable",
        "  clientLoader: chunkable",
        "  clientMiddleware: chunkable",
        "  HydrateFallback: chunkable",
    ]
    shared = lines.index("routes/shared.tsx")
    assert lines[shared + 1 : shared + 3] == [
        "  clientAction: not chunkable",
        "  clientLoader: not chunkable",
    ]
    root = lines.index("root.tsx")
    assert lines[root + 1] == "  root route: splitting skipped"


def test_cli_detect_warns_when_splitting_is_off(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    result = _invoke(
        runner,
        "detect",
        str(app_tree / "routes" / "independent.tsx"),
        "--app-dir",
        str(app_tree.resolve()),
    )

    assert result.exit_code == 0, result.output
    assert "Route module splitting is off" in result.output
    assert "clientLoader: not chunkable" in result.output


def test_cli_detect_reports_modules_without_client_exports(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    plain = app_tree / "routes" / "plain.tsx"
    plain.write_text("export default function Plain() { return null; }\n", "utf-8")

    result = _invoke(
        runner, "detect", str(plain), "--app-dir", str(app_tree.resolve())
    )

    assert result.exit_code == 0, result.output
    assert "routes/plain.tsx" in result.output
    assert "no splittable exports" in result.output


def test_cli_detect_reports_syntax_errors(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    broken = app_tree / "routes" / "broken.tsx"
    broken.write_text("export const clientLoader = (;\n", encoding="utf-8")

    result = _invoke(
        runner,
        "detect",
        str(broken),
        "--app-dir",
        str(app_tree.resolve()),
        "--mode",
        "on",
    )

    assert result.exit_code == 1
    assert "Failed to parse route module" in result.output


def test_cli_detect_rejects_unknown_modes(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    result = runner.invoke(
        create_app(),
        ["detect", str(app_tree / "root.tsx"), "--mode", "sometimes"],
        env=_CLEAN_ENV,
    )

    assert result.exit_code == 2


def test_cli_chunk_prints_generated_code(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    app_dir = app_tree.resolve()
    route = str(app_dir / "routes" / "independent.tsx")
    common = ["--app-dir", str(app_dir), "--mode", "on"]

    main = _invoke(runner, "chunk", route, "main", *common)
    loader = _invoke(runner, "chunk", route, "clientLoader", *common)

    assert main.exit_code == 0, main.output
    assert main.stdout == "export default function Route() { return null; }\n"
    assert loader.stdout == "export const clientLoader = async () => {};\n"


def test_cli_chunk_fails_for_non_chunkable_exports(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    app_dir = app_tree.resolve()
    result = _invoke(
        runner,
        "chunk",
        str(app_dir / "routes" / "shared.tsx"),
        "clientAction",
        "--app-dir",
        str(app_dir),
        "--mode",
        "on",
    )

    assert result.exit_code == 1
    assert "No code for chunk clientAction of routes/shared.tsx" in result.output
    assert "nothing to emit" in result.output


def test_cli_chunk_reports_disabled_splitting(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    result = _invoke(
        runner, "chunk", str(app_tree / "routes" / "independent.tsx"), "main"
    )

    assert result.exit_code == 1
    assert "splitting is off" in result.output


def test_cli_chunk_rejects_unknown_chunk_names(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    result = runner.invoke(
        create_app(),
        [
            "chunk",
            str(app_tree / "routes" / "independent.tsx"),
            "default",
            "--mode",
            "on",
        ],
        env=_CLEAN_ENV,
    )

    assert result.exit_code == 2


def test_cli_check_fails_for_shared_code(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    app_dir = app_tree.resolve()
    result = _invoke(
        runner,
        "check",
        str(app_dir / "routes" / "independent.tsx"),
        str(app_dir / "routes" / "shared.tsx"),
        "--app-dir",
        str(app_dir),
    )

    assert result.exit_code == 1
    assert "ok: routes/independent.tsx" in result.output
    assert "Error splitting route module: routes/shared.tsx" in result.output
    assert "1 route module(s) failed validation: routes/shared.tsx" in result.output


def test_cli_check_passes_for_splittable_modules(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    app_dir = app_tree.resolve()
    result = _invoke(
        runner,
        "check",
        str(app_dir / "routes" / "independent.tsx"),
        str(app_dir / "root.tsx"),
        "--app-dir",
        str(app_dir),
    )

    assert result.exit_code == 0, result.output
    assert "ok: root.tsx" in result.output
    assert "All route modules can be split" in result.output


def test_cli_reads_app_directory_from_config(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    (project / "routesplit.toml").write_text(
        "[route_chunks]\n"
        'split_route_modules = "on"\n'
        f'app_directory = "{app_tree.resolve().as_posix()}"\n',
        encoding="utf-8",
    )

    result = _invoke(
        runner, "chunk", str(app_tree / "routes" / "independent.tsx"), "main"
    )

    assert result.exit_code == 0, result.output
    assert result.stdout == "export default function Route() { return null; }\n"


def test_cli_rejects_invalid_config_files(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    (project / "routesplit.toml").write_text("log_level = [\n", encoding="utf-8")

    result = runner.invoke(
        create_app(),
        ["detect", str(app_tree / "root.tsx")],
        env=_CLEAN_ENV,
    )

    assert result.exit_code == 2
    assert "Invalid config file" in result.output


def test_cli_writes_log_file_when_configured(
    runner: CliRunner, project: Path, app_tree: Path
) -> None:
    log_dir = project / "logs"
    (project / "routesplit.toml").write_text(
        f'log_dir = "{log_dir.as_posix()}"\n', encoding="utf-8"
    )

    result = runner.invoke(
        create_app(),
        ["init", "--directory", str(project / "nested")],
        env=_CLEAN_ENV,
        catch_exceptions=False,
    )

    assert result.exit_code == 0, result.output
    assert "init-complete" in (log_dir / "routesplit.log").read_text("utf-8")
