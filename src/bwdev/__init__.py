from .dsl import command_tool, project, ws
from .model import PREFLIGHT_STEPS, ProjectConfig, RunRequest, Step
from .runner import Node, build, execute
from .tool import NopReporter, Registry, Tool, run_step, supports_step

__all__ = [
    "command_tool", "project", "ws",
    "PREFLIGHT_STEPS", "ProjectConfig", "RunRequest", "Step",
    "Node", "build", "execute",
    "NopReporter", "Registry", "Tool", "run_step", "supports_step",
]
