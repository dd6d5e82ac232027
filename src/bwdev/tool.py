# tool.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Protocol, Sequence, Tuple

from .errors import UnknownToolError
from .model import RunRequest, Step


# ----------------------------------------------------------------------
# Reporter contract
# ----------------------------------------------------------------------

class NodeReporter(Protocol):
    def section(self, heading: str) -> None: ...

    def table(self, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None: ...

    def error(self, msg: str) -> None: ...


class Reporter(Protocol):
    def for_node(self, project: str, step: str, tool: str) -> NodeReporter: ...


class NopNodeReporter:
    def section(self, heading: str) -> None:
        pass

    def table(self, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        pass

    def error(self, msg: str) -> None:
        pass


class NopReporter:
    """Discards all node output."""

    def for_node(self, project: str, step: str, tool: str) -> NodeReporter:
        return NopNodeReporter()


# ----------------------------------------------------------------------
# Tools and capabilities
# ----------------------------------------------------------------------

Handler = Callable[[RunRequest, Path, NodeReporter], None]


class Tool:
    """
    A named plugin implementing some subset of the pipeline steps.

    Subclasses set `name` (and optionally `runs_after`) and return their
    handlers from capabilities(): the mapping *is* the set of supported
    steps. A handler signals failure by raising.
    """
    name: str = ""
    runs_after: Tuple[str, ...] = ()

    def capabilities(self) -> Dict[Step, Handler]:
        return {}

    def inspections(self) -> List[Inspection]:
        return []

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def supports_step(tool: Tool, step: Step) -> bool:
    return step in tool.capabilities()


def run_step(request: RunRequest, tool: Tool, step: Step, dir: Path, reporter: NodeReporter) -> None:
    """Invoke the tool's handler for `step`. Unsupported steps are a no-op."""
    handler = tool.capabilities().get(step)
    if handler is None:
        return
    handler(request, Path(dir), reporter)


class Registry:
    """name -> Tool, listed in first-registration order."""

    def __init__(self) -> None:
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if not tool.name:
            raise ValueError(f"tool {tool!r} has no name")
        # re-registering a name replaces the tool but keeps its position
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(tool=name) from None

    def all(self) -> List[Tool]:
        return list(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._tools)


# ----------------------------------------------------------------------
# Inspections (infra inspect lenses)
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Inspection:
    name: str
    description: str
    run: Handler


def run_inspections(
    request: RunRequest,
    inspections: Sequence[Inspection],
    dir: Path,
    reporter: NodeReporter,
) -> None:
    """Run every inspection, or only those selected with `request.inspect_lenses`."""
    selected = set(request.inspect_lenses)
    for insp in inspections:
        if selected and insp.name not in selected:
            continue
        reporter.section(insp.name)
        insp.run(request, dir, reporter)


def inspection_names(tool: Tool) -> List[str]:
    return [insp.name for insp in tool.inspections()]
