# runner.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .dag import Graph
from .errors import (
    BwError,
    CycleDetectedError,
    DependencySkippedError,
    ExecutionError,
    NodeExecutionError,
    UnknownToolError,
)
from .logging import get_logger
from .model import ProjectConfig, RunRequest, Step
from .tool import Registry, Reporter, Tool, run_step, supports_step

log = get_logger(__name__)


@dataclass(frozen=True)
class Node:
    """
    One schedulable unit of work: `tool` running `step` for `project`.

    Identity is the (project, step, tool name) triple; the resolved tool,
    directory and config ride along without taking part in equality.
    """
    project: str
    step: Step
    tool_name: str
    tool: Tool = field(compare=False, repr=False)
    dir: Path = field(compare=False, repr=False)
    config: Any = field(default=None, compare=False, repr=False)

    @property
    def name(self) -> str:
        return f"{self.project}:{self.step.label}:{self.tool_name}"

    def __str__(self) -> str:
        return self.name


NodeKey = Tuple[str, Step, str]


# ----------------------------------------------------------------------
# Graph build
# ----------------------------------------------------------------------

class _Builder:
    def __init__(self, registry: Registry, request: RunRequest, steps: Sequence[Step]):
        self.registry = registry
        self.request = request
        # a step requested twice runs once, at its first position
        self.steps = list(dict.fromkeys(steps))
        self.graph: Graph[Node] = Graph()
        self.nodes: Dict[NodeKey, Node] = {}

    def resolve_tools(self, proj: ProjectConfig) -> List[Tool]:
        tools: List[Tool] = []
        for tool_name in proj.tools:
            try:
                tools.append(self.registry.get(tool_name))
            except UnknownToolError as e:
                raise UnknownToolError(tool=tool_name, project=proj.name) from e
        return tools

    def create_nodes(self, projects: Sequence[ProjectConfig]) -> None:
        # Resolve everything first so an unknown tool leaves no partial graph.
        resolved = [(proj, self.resolve_tools(proj)) for proj in projects]

        for proj, tools in resolved:
            proj_dir = self.request.project_dir(proj)
            for step in self.steps:
                for tl in tools:
                    if not supports_step(tl, step):
                        continue
                    node = Node(
                        project=proj.name,
                        step=step,
                        tool_name=tl.name,
                        tool=tl,
                        dir=proj_dir,
                        config=proj.tool_config.get(tl.name),
                    )
                    self.nodes[(proj.name, step, tl.name)] = node
                    self.graph.add(node)

    def node(self, project: str, step: Step, tool_name: str) -> Optional[Node]:
        return self.nodes.get((project, step, tool_name))

    def add_step_edges(self, projects: Sequence[ProjectConfig]) -> None:
        """Chain each tool's nodes of a project in requested-step order."""
        for proj in projects:
            for tl in proj.tools:
                for idx in range(1, len(self.steps)):
                    curr = self.node(proj.name, self.steps[idx], tl)
                    if curr is None:
                        continue
                    for back in range(idx - 1, -1, -1):
                        prev = self.node(proj.name, self.steps[back], tl)
                        if prev is not None:
                            self.graph.connect(prev, curr)
                            break

    def add_tool_dep_edges(self, projects: Sequence[ProjectConfig]) -> None:
        """A tool waits, step by step, for the tools it runs after."""
        for proj in projects:
            proj_tools = set(proj.tools)
            for tool_name in proj.tools:
                for dep_name in self.registry.get(tool_name).runs_after:
                    if dep_name not in proj_tools:
                        continue
                    for step in self.steps:
                        src = self.node(proj.name, step, dep_name)
                        dst = self.node(proj.name, step, tool_name)
                        if src is not None and dst is not None:
                            self.graph.connect(src, dst)

    def add_project_dep_edges(self, projects: Sequence[ProjectConfig]) -> None:
        """Every tool of a project waits for every tool of its dependencies at the same step."""
        by_name = {proj.name: proj for proj in projects}

        for proj in projects:
            for dep_name in proj.depends_on:
                dep_proj = by_name.get(dep_name)
                if dep_proj is None:
                    # references are validated when the workspace is loaded
                    continue
                for step in self.steps:
                    for tool_name in proj.tools:
                        dst = self.node(proj.name, step, tool_name)
                        if dst is None:
                            continue
                        for dep_tool in dep_proj.tools:
                            src = self.node(dep_name, step, dep_tool)
                            if src is not None:
                                self.graph.connect(src, dst)


def build(
    projects: Sequence[ProjectConfig],
    registry: Registry,
    request: RunRequest,
    steps: Sequence[Step],
) -> Graph[Node]:
    """
    Build the execution graph for `steps` over `projects`.

    Raises UnknownToolError when a project names an unregistered tool and
    CycleDetectedError when the ordering constraints contradict each other;
    in both cases nothing has run.
    """
    bld = _Builder(registry, request, steps)
    bld.create_nodes(projects)
    bld.add_step_edges(projects)
    bld.add_tool_dep_edges(projects)
    bld.add_project_dep_edges(projects)

    # Reduction is only well-defined on a DAG (a cycle implies all of its own
    # edges), so reject cycles first; reduction never creates or removes one.
    cycles = bld.graph.cycles()
    if cycles:
        raise CycleDetectedError([[n.name for n in cycle] for cycle in cycles])
    bld.graph.transitive_reduction()

    log.info(
        "built graph: %d node(s), %d edge(s) for steps %s",
        len(bld.graph),
        len(bld.graph.edges()),
        ",".join(s.label for s in steps),
    )
    return bld.graph


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

def execute(
    request: RunRequest,
    graph: Graph[Node],
    reporter: Reporter,
    *,
    max_workers: int | None = None,
) -> Dict[str, str]:
    """
    Run every node once its dependencies are done.

    Returns {node name: "ok"} when everything succeeded. Otherwise raises
    ExecutionError listing each failed node with its cause and each node
    skipped because something upstream failed; nodes independent of a
    failure still run.
    """

    def run_node(node: Node) -> None:
        r = reporter.for_node(node.project, node.step.label, node.tool_name)
        run_step(request.for_node(node.config), node.tool, node.step, node.dir, r)

    walk = graph.walk(run_node, max_workers=max_workers, cancel_event=request.cancel_event)

    results: Dict[str, str] = {}
    failures: List[BwError] = []
    for node in graph:
        if node in walk.failed:
            results[node.name] = "failed"
            cause = walk.failed[node]
            log.info("%s failed: %s", node.name, cause)
            failures.append(NodeExecutionError(node=node.name, cause=cause))
        elif node in walk.skipped:
            results[node.name] = "skipped"
            blocker = walk.skipped[node]
            log.info("%s skipped (blocked by %s)", node.name, blocker)
            failures.append(
                DependencySkippedError(node=node.name, cause_node=blocker.name if blocker is not None else None)
            )
        else:
            results[node.name] = "ok"

    if failures:
        raise ExecutionError(failures=failures, results=results)
    return results
