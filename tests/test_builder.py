from __future__ import annotations

import pytest

from bwdev.errors import CycleDetectedError, UnknownToolError
from bwdev.model import PREFLIGHT_STEPS, Step
from bwdev.runner import build
from bwdev.tools import GoTool, ShellTool, default_registry

from conftest import FakeTool, make_registry, proj


def names(graph):
    return [n.name for n in graph]


def edge_names(graph):
    return sorted((a.name, b.name) for a, b in graph.edges())


def test_one_node_per_supported_project_step_tool(request_for, log):
    projects = [proj("app", "go", "shell")]
    registry = make_registry(GoTool(), ShellTool())

    graph = build(projects, registry, request_for(projects), [Step.FMT, Step.BUILD, Step.DEPLOY])

    assert names(graph) == ["app:fmt:go", "app:fmt:shell", "app:build:go"]


def test_tool_chain_skips_steps_the_tool_does_not_implement(request_for):
    projects = [proj("scripts", "shell")]
    steps = [Step.GEN, Step.FMT, Step.LINT, Step.BUILD, Step.UNIT_TEST]

    graph = build(projects, default_registry(), request_for(projects), steps)

    assert names(graph) == ["scripts:fmt:shell", "scripts:lint:shell"]
    assert edge_names(graph) == [("scripts:fmt:shell", "scripts:lint:shell")]


def test_preflight_chains_each_tool_in_requested_order(request_for):
    projects = [proj("app", "go", "shell")]

    graph = build(projects, default_registry(), request_for(projects), PREFLIGHT_STEPS)

    go = [f"app:{s.label}:go" for s in PREFLIGHT_STEPS]
    expected = list(zip(go, go[1:]))
    expected += [("app:doctor:shell", "app:fmt:shell"), ("app:fmt:shell", "app:lint:shell")]
    assert edge_names(graph) == sorted(expected)


def test_runs_after_orders_tools_step_by_step(request_for, log):
    projects = [proj("web", "go", "templ")]
    registry = make_registry(GoTool(), FakeTool("templ", [Step.GEN, Step.BUILD], log))

    graph = build(projects, registry, request_for(projects), [Step.GEN, Step.BUILD])

    assert edge_names(graph) == sorted([
        ("web:gen:templ", "web:gen:go"),
        ("web:build:templ", "web:build:go"),
        ("web:gen:go", "web:build:go"),
        ("web:gen:templ", "web:build:templ"),
    ])


def test_runs_after_ignores_tools_the_project_does_not_use(request_for):
    projects = [proj("svc", "go")]

    graph = build(projects, default_registry(), request_for(projects), [Step.GEN])

    assert names(graph) == ["svc:gen:go"]
    assert graph.edges() == []


def test_depends_on_orders_same_step_across_projects(request_for, log):
    projects = [proj("lib", "t"), proj("app", "t", depends_on=["lib"])]
    registry = make_registry(FakeTool("t", [Step.LINT, Step.BUILD], log))

    graph = build(projects, registry, request_for(projects), [Step.LINT, Step.BUILD])

    assert edge_names(graph) == sorted([
        ("lib:lint:t", "lib:build:t"),
        ("app:lint:t", "app:build:t"),
        ("lib:lint:t", "app:lint:t"),
        ("lib:build:t", "app:build:t"),
    ])


def test_depends_on_connects_every_tool_pair(request_for, log):
    projects = [proj("lib", "a", "b"), proj("app", "c", depends_on=["lib"])]
    registry = make_registry(
        FakeTool("a", [Step.LINT], log),
        FakeTool("b", [Step.LINT], log),
        FakeTool("c", [Step.LINT], log),
    )

    graph = build(projects, registry, request_for(projects), [Step.LINT])

    assert edge_names(graph) == [("lib:lint:a", "app:lint:c"), ("lib:lint:b", "app:lint:c")]


def test_redundant_edges_are_reduced_but_ordering_kept(request_for, log):
    projects = [
        proj("a", "t"),
        proj("b", "t", depends_on=["a"]),
        proj("c", "t", depends_on=["a", "b"]),
    ]
    registry = make_registry(FakeTool("t", [Step.LINT], log))

    graph = build(projects, registry, request_for(projects), [Step.LINT])

    assert edge_names(graph) == [("a:lint:t", "b:lint:t"), ("b:lint:t", "c:lint:t")]
    nodes = {n.name: n for n in graph}
    assert graph.has_path(nodes["a:lint:t"], nodes["c:lint:t"])


def test_mutual_runs_after_is_a_cycle(request_for, log):
    projects = [proj("p", "a", "b")]
    registry = make_registry(
        FakeTool("a", [Step.LINT], log, runs_after=["b"]),
        FakeTool("b", [Step.LINT], log, runs_after=["a"]),
    )

    with pytest.raises(CycleDetectedError) as exc:
        build(projects, registry, request_for(projects), [Step.LINT])

    assert len(exc.value.cycles) == 1
    assert sorted(exc.value.cycles[0]) == ["p:lint:a", "p:lint:b"]
    assert "p:lint:a" in str(exc.value)


def test_mutual_depends_on_is_a_cycle(request_for, log):
    projects = [proj("x", "t", depends_on=["y"]), proj("y", "t", depends_on=["x"])]
    registry = make_registry(FakeTool("t", [Step.BUILD], log))

    with pytest.raises(CycleDetectedError):
        build(projects, registry, request_for(projects), [Step.BUILD])


def test_unknown_tool_names_project_and_tool(request_for):
    projects = [proj("ok", "shell"), proj("app", "go", "nope")]

    with pytest.raises(UnknownToolError) as exc:
        build(projects, default_registry(), request_for(projects), [Step.LINT])

    assert exc.value.tool == "nope"
    assert exc.value.project == "app"
    assert "app" in str(exc.value) and "nope" in str(exc.value)


def test_unknown_dependency_is_ignored(request_for, log):
    projects = [proj("app", "t", depends_on=["ghost"])]
    registry = make_registry(FakeTool("t", [Step.LINT], log))

    graph = build(projects, registry, request_for(projects), [Step.LINT])

    assert names(graph) == ["app:lint:t"]


def test_nodes_carry_dir_and_tool_config(request_for, tmp_path, log):
    projects = [proj("app", "t", "u", tool_config={"t": {"level": 3}})]
    registry = make_registry(FakeTool("t", [Step.LINT], log), FakeTool("u", [Step.LINT], log))

    graph = build(projects, registry, request_for(projects), [Step.LINT])

    nodes = {n.name: n for n in graph}
    assert nodes["app:lint:t"].config == {"level": 3}
    assert nodes["app:lint:u"].config is None
    assert nodes["app:lint:t"].dir == (tmp_path / "app").resolve()


def test_no_requested_steps_builds_empty_graph(request_for):
    projects = [proj("app", "go")]
    graph = build(projects, default_registry(), request_for(projects), [])
    assert len(graph) == 0


def test_repeated_step_builds_one_node(request_for, log):
    projects = [proj("a", "t")]
    registry = make_registry(FakeTool("t", [Step.LINT, Step.BUILD], log))

    graph = build(projects, registry, request_for(projects), [Step.LINT, Step.BUILD, Step.LINT])

    assert names(graph) == ["a:lint:t", "a:build:t"]
    assert edge_names(graph) == [("a:lint:t", "a:build:t")]
