from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytest

from bwdev.model import ProjectConfig, RunRequest, Step
from bwdev.tool import Handler, NodeReporter, Registry, Tool


class EventLog:
    """Thread-safe record of ("start"|"end", node name) events in wall-clock order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: List[Tuple[str, str]] = []

    def add(self, kind: str, node: str) -> None:
        with self._lock:
            self.events.append((kind, node))

    def index(self, kind: str, node: str) -> int:
        return self.events.index((kind, node))

    def started(self) -> List[str]:
        return [n for k, n in self.events if k == "start"]

    def finished_before_started(self, first: str, second: str) -> bool:
        return self.index("end", first) < self.index("start", second)


class FakeTool(Tool):
    """
    Records every invocation. Fails on the steps in `fail_on`, optionally
    sleeping first so that concurrent nodes overlap.
    """

    def __init__(
        self,
        name: str,
        steps: Iterable[Step],
        log: EventLog,
        *,
        runs_after: Sequence[str] = (),
        fail_on: Iterable[Tuple[str, Step]] = (),
        delay: float = 0.0,
    ):
        self.name = name
        self.runs_after = tuple(runs_after)
        self.steps = list(steps)
        self.log = log
        self.fail_on = set(fail_on)
        self.delay = delay
        self.requests: Dict[str, RunRequest] = {}
        self.dirs: Dict[str, Path] = {}

    def capabilities(self) -> Dict[Step, Handler]:
        return {step: self._handler(step) for step in self.steps}

    def _handler(self, step: Step) -> Handler:
        def handle(request: RunRequest, dir: Path, r: NodeReporter) -> None:
            project = dir.name
            node = f"{project}:{step.label}:{self.name}"
            self.requests[node] = request
            self.dirs[node] = dir
            self.log.add("start", node)
            try:
                if self.delay:
                    time.sleep(self.delay)
                r.section(node)
                if (project, step) in self.fail_on:
                    raise RuntimeError(f"{self.name} {step.label} broke")
            finally:
                self.log.add("end", node)

        return handle


class RecordingNodeReporter:
    def __init__(self, key: Tuple[str, str, str], sink: "RecordingReporter"):
        self.key = key
        self.sink = sink

    def section(self, heading: str) -> None:
        self.sink.record(self.key, "section", heading)

    def table(self, columns, rows) -> None:
        self.sink.record(self.key, "table", (list(columns), [list(r) for r in rows]))

    def error(self, msg: str) -> None:
        self.sink.record(self.key, "error", msg)


class RecordingReporter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.nodes: List[Tuple[str, str, str]] = []
        self.output: List[Tuple[Tuple[str, str, str], str, object]] = []

    def for_node(self, project: str, step: str, tool: str) -> RecordingNodeReporter:
        key = (project, step, tool)
        with self._lock:
            self.nodes.append(key)
        return RecordingNodeReporter(key, self)

    def record(self, key, kind: str, payload) -> None:
        with self._lock:
            self.output.append((key, kind, payload))


@pytest.fixture
def log() -> EventLog:
    return EventLog()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def request_for(tmp_path):
    """RunRequest rooted at tmp_path with one directory per project name."""

    def make(projects: Sequence[ProjectConfig], **kwargs) -> RunRequest:
        for proj in projects:
            (tmp_path / proj.dir).mkdir(parents=True, exist_ok=True)
        return RunRequest(root=tmp_path, **kwargs)

    return make


def make_registry(*tools: Tool) -> Registry:
    reg = Registry()
    for tl in tools:
        reg.register(tl)
    return reg


def proj(name: str, *tools: str, depends_on: Sequence[str] = (), tool_config: Optional[dict] = None) -> ProjectConfig:
    return ProjectConfig(
        name=name,
        dir=name,
        tools=tuple(tools),
        depends_on=tuple(depends_on),
        tool_config=dict(tool_config or {}),
    )
