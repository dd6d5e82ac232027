# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence


class BwError(Exception):
    """Base class for every error raised by bwdev."""


# ----------------------------------------------------------------------
# Construction time: raised before any node runs
# ----------------------------------------------------------------------

@dataclass(eq=False)
class UnknownToolError(BwError):
    tool: str
    project: Optional[str] = None

    def __str__(self) -> str:
        if self.project:
            return f"project {self.project!r}: unknown tool: {self.tool!r}"
        return f"unknown tool: {self.tool!r}"


@dataclass(eq=False)
class CycleDetectedError(BwError):
    """The execution graph is not acyclic. `cycles` holds node names."""
    cycles: List[List[str]]

    def __str__(self) -> str:
        lines = ["dependency cycle detected in execution graph"]
        for cycle in self.cycles:
            lines.append("  " + " -> ".join(cycle + cycle[:1]))
        return "\n".join(lines)


class WorkspaceError(BwError):
    """The workspace definition is missing or invalid."""


# ----------------------------------------------------------------------
# Execution time: collected during the walk, raised once at the end
# ----------------------------------------------------------------------

@dataclass(eq=False)
class NodeExecutionError(BwError):
    node: str
    cause: BaseException

    def __str__(self) -> str:
        return f"{self.node}: {self.cause}"


@dataclass(eq=False)
class DependencySkippedError(BwError):
    """`cause_node` is None when the run was cancelled before the node started."""
    node: str
    cause_node: Optional[str] = None

    def __str__(self) -> str:
        if self.cause_node is None:
            return f"{self.node}: skipped (run cancelled)"
        return f"{self.node}: skipped (dependency {self.cause_node} failed)"


@dataclass(eq=False)
class ExecutionError(BwError):
    failures: List[BwError]
    results: Dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> List[NodeExecutionError]:
        return [f for f in self.failures if isinstance(f, NodeExecutionError)]

    @property
    def skipped(self) -> List[DependencySkippedError]:
        return [f for f in self.failures if isinstance(f, DependencySkippedError)]

    def __str__(self) -> str:
        lines = [f"{len(self.failed)} node(s) failed, {len(self.skipped)} skipped"]
        lines.extend(f"  {f}" for f in self.failures)
        return "\n".join(lines)


# ----------------------------------------------------------------------
# Raised inside tools
# ----------------------------------------------------------------------

@dataclass(eq=False)
class CommandError(BwError):
    cmd: str
    argv: Sequence[str]
    dir: str
    exit_code: int
    stderr: str = ""

    def __str__(self) -> str:
        msg = f"(in {self.dir}) {' '.join([self.cmd, *self.argv])}"
        if self.stderr.strip():
            return f"{msg}: exit {self.exit_code}\n{self.stderr.strip()}"
        return f"{msg}: exit {self.exit_code}"


@dataclass(eq=False)
class DoctorError(BwError):
    problems: List[str]

    def __str__(self) -> str:
        return "doctor checks failed: " + "; ".join(self.problems)


def describe(exc: Any) -> str:
    """First line of an error, for compact status output."""
    text = str(exc) or type(exc).__name__
    return text.splitlines()[0]
