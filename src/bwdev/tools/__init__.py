from __future__ import annotations

from ..tool import Registry
from .command import CommandTool
from .golang import GoTool
from .python import PythonTool
from .shell import ShellTool


def default_registry() -> Registry:
    """Built-in tools, in capability-matrix order."""
    reg = Registry()
    reg.register(ShellTool())
    reg.register(GoTool())
    reg.register(PythonTool())
    return reg


__all__ = ["CommandTool", "GoTool", "PythonTool", "ShellTool", "default_registry"]
