# model.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .doctor import BinChecker


class Step(IntEnum):
    """
    A pipeline stage. The integer value is the fixed total order.

    Only the order among the steps requested for a run matters; a tool that
    does not implement a requested step simply has no node for it.
    """
    INIT = 0
    DOCTOR = 1
    FMT = 2
    GEN = 3
    LINT = 4
    BUILD = 5
    UNIT_TEST = 6
    RELEASE = 7
    BOOTSTRAP = 8
    DIFF = 9
    DEPLOY = 10
    INSPECT = 11

    @property
    def label(self) -> str:
        return _STEP_LABELS[self]

    def __str__(self) -> str:
        return self.label

    @classmethod
    def parse(cls, label: str) -> "Step":
        for step, name in _STEP_LABELS.items():
            if name == label:
                return step
        raise ValueError(f"Unknown step: {label!r}")


_STEP_LABELS = {
    Step.INIT: "init",
    Step.DOCTOR: "doctor",
    Step.FMT: "fmt",
    Step.GEN: "gen",
    Step.LINT: "lint",
    Step.BUILD: "build",
    Step.UNIT_TEST: "unit-test",
    Step.RELEASE: "release",
    Step.BOOTSTRAP: "bootstrap",
    Step.DIFF: "diff",
    Step.DEPLOY: "deploy",
    Step.INSPECT: "inspect",
}

DEV_STEPS: Tuple[Step, ...] = (Step.GEN, Step.FMT)
CHECK_STEPS: Tuple[Step, ...] = (Step.LINT, Step.BUILD, Step.UNIT_TEST)
PREFLIGHT_STEPS: Tuple[Step, ...] = (Step.DOCTOR,) + DEV_STEPS + CHECK_STEPS
RELEASE_STEPS: Tuple[Step, ...] = (Step.RELEASE,)
MATRIX_STEPS: Tuple[Step, ...] = tuple(Step)


@dataclass(frozen=True)
class ProjectConfig:
    """
    One project of the workspace.

    `tools` is ordered; `depends_on` names other projects whose same-step
    work must finish first. `tool_config` is handed to the tool untouched.
    """
    name: str
    dir: str
    tools: Tuple[str, ...] = ()
    depends_on: Tuple[str, ...] = ()
    tool_config: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class BootstrapOptions:
    profile: str = ""
    execution_policies: str = ""
    permissions_boundary: str = ""


@dataclass(frozen=True)
class RunRequest:
    """
    Parameters of a single run, passed to every node invocation.

    Every field is optional; tools read only what they need. `cancel_event`
    is owned by the caller: setting it stops the scheduler from starting
    new nodes, and long-running tools may poll `cancelled`.
    """
    root: Path = field(default_factory=Path.cwd)
    deployment: Optional[str] = None
    hotswap: bool = False
    bootstrap: Optional[BootstrapOptions] = None
    inspect_lenses: Tuple[str, ...] = ()
    release_dry_run: bool = False
    tool_config: Any = None
    bin_checker: BinChecker = field(default_factory=BinChecker, compare=False)
    cancel_event: threading.Event = field(default_factory=threading.Event, compare=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def for_node(self, config: Any) -> "RunRequest":
        if config is None and self.tool_config is None:
            return self
        return replace(self, tool_config=config)

    def project_dir(self, project: ProjectConfig) -> Path:
        return (Path(self.root) / project.dir).resolve()
