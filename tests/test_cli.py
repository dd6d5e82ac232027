from __future__ import annotations

import textwrap

import pytest
from click.testing import CliRunner

from bwdev.cli import cli
from bwdev.workspace import WORKSPACE_FILE


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path):
    """Write bw_workspace.py (and the project dirs it names) under tmp_path."""

    def make(body: str, *dirs: str):
        for d in dirs:
            (tmp_path / d).mkdir(parents=True, exist_ok=True)
        path = tmp_path / WORKSPACE_FILE
        path.write_text(textwrap.dedent(body))
        return str(path)

    return make


SIMPLE = """
    from bwdev.dsl import command_tool, project

    TOOLS = [
        command_tool(
            "sh",
            fmt="touch formatted.txt",
            lint="echo lint broke >&2; exit 3",
            deploy='echo "$BW_DEPLOYMENT $BW_HOTSWAP" > deploy.txt',
        ),
    ]
    PROJECTS = [
        project("lib", "lib", "sh"),
        project("app", "app", "sh", depends_on=["lib"]),
    ]
"""


def test_fmt_runs_every_project(runner, workspace, tmp_path):
    path = workspace(SIMPLE, "lib", "app")

    result = runner.invoke(cli, ["--workspace", path, "fmt"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "lib" / "formatted.txt").exists()
    assert (tmp_path / "app" / "formatted.txt").exists()
    assert "lib:fmt:sh: SUCCESS" in result.output
    assert "Nodes: 2" in result.output


def test_failing_step_exits_nonzero_and_reports_skips(runner, workspace, tmp_path):
    path = workspace(SIMPLE, "lib", "app")

    result = runner.invoke(cli, ["--workspace", path, "lint"])

    assert result.exit_code == 1
    assert "lib:lint:sh: FAILED" in result.output
    assert "app:lint:sh: SKIPPED" in result.output
    assert "1 node(s) failed, 1 skipped" in result.output


def test_project_filter(runner, workspace, tmp_path):
    path = workspace(SIMPLE, "lib", "app")

    result = runner.invoke(cli, ["--workspace", path, "-p", "lib", "fmt"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "lib" / "formatted.txt").exists()
    assert not (tmp_path / "app" / "formatted.txt").exists()


def test_unknown_project(runner, workspace):
    path = workspace(SIMPLE, "lib", "app")

    result = runner.invoke(cli, ["--workspace", path, "-p", "web", "fmt"])

    assert result.exit_code == 1
    assert "Unknown project" in result.output


def test_infra_deploy_passes_run_parameters(runner, workspace, tmp_path):
    path = workspace(SIMPLE, "lib", "app")

    result = runner.invoke(cli, ["--workspace", path, "infra", "deploy", "Prod", "--hotswap"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "app" / "deploy.txt").read_text().strip() == "Prod 1"


def test_unknown_tool_exits_before_running(runner, workspace, tmp_path):
    path = workspace("""
        from bwdev.dsl import command_tool, project

        TOOLS = [command_tool("sh", fmt="touch formatted.txt")]
        PROJECTS = [project("app", "app", "sh", "nope")]
    """, "app")

    result = runner.invoke(cli, ["--workspace", path, "fmt"])

    assert result.exit_code == 1
    assert "Unknown tool" in result.output
    assert "'nope'" in result.output
    assert not (tmp_path / "app" / "formatted.txt").exists()


def test_cycle_exits_before_running(runner, workspace):
    path = workspace("""
        from bwdev.dsl import command_tool, project

        TOOLS = [
            command_tool("a", runs_after=["b"], build="true"),
            command_tool("b", runs_after=["a"], build="true"),
        ]
        PROJECTS = [project("app", "app", "a", "b")]
    """, "app")

    result = runner.invoke(cli, ["--workspace", path, "build"])

    assert result.exit_code == 1
    assert "Dependency cycle" in result.output
    assert "app:build:a" in result.output


def test_invalid_workspace(runner, tmp_path):
    result = runner.invoke(cli, ["--workspace", str(tmp_path), "fmt"])

    assert result.exit_code == 1
    assert "Invalid workspace" in result.output


def test_tools_matrix(runner, workspace):
    path = workspace(SIMPLE, "lib", "app")

    result = runner.invoke(cli, ["--workspace", path, "tools"])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].split()[:3] == ["TOOL", "RUNS", "AFTER"]
    assert "UNIT-TEST" in lines[0]
    listed = [line.split()[0] for line in lines[1:]]
    assert listed == ["shell", "go", "python", "sh"]
    go_row = next(line for line in lines if line.startswith("go "))
    assert "templ" in go_row
    assert "modules" in go_row
