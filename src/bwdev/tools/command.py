# tools/command.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Sequence, Union

from .. import cmdexec
from ..model import RunRequest, Step
from ..tool import Handler, NodeReporter, Tool

StepAction = Union[str, Handler]


def request_env(request: RunRequest, step: Step) -> Dict[str, str]:
    """
    Run parameters exported to command steps as BW_* environment variables.
    Unset parameters are left out.
    """
    env = {"BW_STEP": step.label}
    if request.deployment:
        env["BW_DEPLOYMENT"] = request.deployment
    if request.hotswap:
        env["BW_HOTSWAP"] = "1"
    if request.release_dry_run:
        env["BW_RELEASE_DRY_RUN"] = "1"
    if request.inspect_lenses:
        env["BW_INSPECT_LENSES"] = ",".join(request.inspect_lenses)
    if request.bootstrap is not None:
        opts = request.bootstrap
        for key, value in (
            ("PROFILE", opts.profile),
            ("EXECUTION_POLICIES", opts.execution_policies),
            ("PERMISSIONS_BOUNDARY", opts.permissions_boundary),
        ):
            if value:
                env[f"BW_BOOTSTRAP_{key}"] = value
    if isinstance(request.tool_config, Mapping):
        for key, value in request.tool_config.items():
            env[f"BW_CONFIG_{str(key).upper()}"] = str(value)
    return env


class CommandTool(Tool):
    """
    A tool assembled from per-step actions: a shell command line, or any
    callable with the handler signature. Built by `bwdev.dsl.command_tool`.
    """

    def __init__(self, name: str, actions: Mapping[Step, StepAction], runs_after: Sequence[str] = ()):
        if not name:
            raise ValueError("command tool needs a name")
        self.name = name
        self.runs_after = tuple(runs_after)
        self._handlers: Dict[Step, Handler] = {
            step: self._wrap(step, action) for step, action in actions.items()
        }

    def capabilities(self) -> Dict[Step, Handler]:
        return dict(self._handlers)

    @staticmethod
    def _wrap(step: Step, action: StepAction) -> Handler:
        if callable(action):
            return action
        if not isinstance(action, str) or not action.strip():
            raise ValueError(f"step {step.label!r}: expected a command string or callable, got {action!r}")

        def run_command(request: RunRequest, dir: Path, r: NodeReporter) -> None:
            cmdexec.run_shell(dir, action, env=request_env(request, step))

        return run_command


def step_actions(actions: Mapping[str, StepAction]) -> Dict[Step, StepAction]:
    """Map keyword names (fmt=..., unit_test=...) onto steps."""
    out: Dict[Step, StepAction] = {}
    for key, action in actions.items():
        if action is None:
            continue
        try:
            step = Step[key.upper()]
        except KeyError:
            raise ValueError(f"unknown step {key!r}; expected one of {[s.name.lower() for s in Step]}") from None
        out[step] = action
    return out

