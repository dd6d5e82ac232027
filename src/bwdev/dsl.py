# dsl.py
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .model import ProjectConfig
from .tools.command import CommandTool, StepAction, step_actions


# ---------------------------------------------------------------------
# Project helper
# ---------------------------------------------------------------------

def project(
    name: str,
    dir: str,
    *tools: str,  # allow: project("app", "app", "go", "shell")
    tools_list: Optional[List[str]] = None,  # allow: project("app", "app", tools_list=[...])
    depends_on: Optional[Iterable[str]] = None,
    tool_config: Optional[Dict[str, Any]] = None,
) -> ProjectConfig:
    tools_final: List[str] = []
    if tools_list:
        tools_final.extend(tools_list)
    tools_final.extend(tools)

    if not tools_final:
        raise ValueError(f"project({name!r}) must use at least one tool")

    return ProjectConfig(
        name=name,
        dir=dir,
        tools=tuple(tools_final),
        depends_on=tuple(depends_on or ()),
        tool_config=dict(tool_config or {}),
    )


# ---------------------------------------------------------------------
# Tool helper
# ---------------------------------------------------------------------

def command_tool(
    name: str,
    *,
    runs_after: Iterable[str] = (),
    **steps: Optional[StepAction],
) -> CommandTool:
    """
    Define a workspace-local tool from shell commands (or callables).

    Example:
        TOOLS = [
            command_tool(
                "cdk",
                runs_after=["go"],
                diff="npx cdk diff",
                deploy="npx cdk deploy --all $([ -n \"$BW_HOTSWAP\" ] && echo --hotswap)",
            ),
        ]

    Step keywords: init, doctor, fmt, gen, lint, build, unit_test, release,
    bootstrap, diff, deploy, inspect.
    """
    return CommandTool(name, step_actions(steps), runs_after=tuple(runs_after))


# ---------------------------------------------------------------------
# Workspace helper (single-file story)
# ---------------------------------------------------------------------

def ws(*projects: ProjectConfig) -> List[ProjectConfig]:
    """
    Workspace definition helper. Users can write:

        from bwdev.dsl import ws, project

        def workspace():
            return ws(
                project("lib", "lib", "go"),
                project("app", "app", "go", "shell", depends_on=["lib"]),
            )

    Or use PROJECTS directly:
        PROJECTS = ws(project(...), project(...))
    """
    return list(projects)
