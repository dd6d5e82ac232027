# workspace.py
from __future__ import annotations

import os
import runpy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

from .errors import WorkspaceError
from .model import ProjectConfig
from .tool import Registry, Tool

WORKSPACE_FILE = "bw_workspace.py"


@dataclass
class Workspace:
    root: Path
    projects: List[ProjectConfig]
    tools: List[Tool] = field(default_factory=list)

    def registry(self, base: Registry | None = None) -> Registry:
        """`base` (the built-in tools) extended with the tools the workspace defines."""
        reg = Registry()
        for tl in base or ():
            reg.register(tl)
        for tl in self.tools:
            reg.register(tl)
        return reg


# ----------------------------------------------------------------------
# Discovery / loading
# ----------------------------------------------------------------------

def find_root(start: str | Path | None = None) -> Path:
    """Walk up from `start` (default: cwd) to the directory holding bw_workspace.py."""
    current = Path(start or os.getcwd()).resolve()
    for directory in (current, *current.parents):
        if (directory / WORKSPACE_FILE).is_file():
            return directory
    raise WorkspaceError(f"could not find {WORKSPACE_FILE} in {current} or any parent directory")


def load_workspace(path: str | Path | None = None) -> Workspace:
    """
    Load a workspace from a python file.

    The file must define either:
      - workspace() -> List[ProjectConfig]
      - PROJECTS = [ProjectConfig, ...]
    and may define TOOLS = [Tool, ...] to extend the built-in registry.

    `path` may be the file itself or a directory to search upwards from.
    """
    if path is None or Path(path).is_dir():
        ws_path = find_root(path) / WORKSPACE_FILE
    else:
        ws_path = Path(path).expanduser().resolve()
        if not ws_path.exists():
            raise WorkspaceError(f"Workspace file not found: {ws_path}")
        if ws_path.suffix != ".py":
            raise WorkspaceError(f"Workspace must be a .py file, got: {ws_path.name}")

    module_name = f"bw_workspace_{ws_path.parent.name}"
    try:
        globals_dict = runpy.run_path(str(ws_path), run_name=module_name)
    except WorkspaceError:
        raise
    except Exception as e:
        raise WorkspaceError(f"error while loading {ws_path}: {e}") from e

    projects = None
    if "workspace" in globals_dict and callable(globals_dict["workspace"]):
        projects = globals_dict["workspace"]()
    elif "PROJECTS" in globals_dict:
        projects = globals_dict["PROJECTS"]

    if not isinstance(projects, list) or not all(isinstance(p, ProjectConfig) for p in projects):
        raise WorkspaceError(
            f"{ws_path.name} must return/define a List[ProjectConfig]. "
            "Define workspace() -> List[ProjectConfig] or PROJECTS = [project(...), ...]."
        )

    tools = globals_dict.get("TOOLS", [])
    if not isinstance(tools, list) or not all(isinstance(t, Tool) for t in tools):
        raise WorkspaceError(f"{ws_path.name}: TOOLS must be a List[Tool]")

    validate_projects(projects)
    return Workspace(root=ws_path.parent, projects=projects, tools=tools)


# ----------------------------------------------------------------------
# Validation / selection
# ----------------------------------------------------------------------

def validate_projects(projects: Sequence[ProjectConfig]) -> None:
    names: Dict[str, int] = {}
    for i, proj in enumerate(projects):
        if not proj.name:
            raise WorkspaceError(f"project[{i}].name is required")
        if not proj.dir:
            raise WorkspaceError(f"project[{i}].dir is required")
        if Path(proj.dir).is_absolute():
            raise WorkspaceError(f"project[{i}].dir must be relative, got {proj.dir!r}")
        if not proj.tools:
            raise WorkspaceError(f"project[{i}].tools is required")
        if proj.name in names:
            raise WorkspaceError(f"duplicate project name {proj.name!r}")
        names[proj.name] = i

    for i, proj in enumerate(projects):
        for dep in proj.depends_on:
            if dep not in names:
                raise WorkspaceError(f"project[{i}] ({proj.name!r}) depends on unknown project {dep!r}")


def filter_projects(projects: Sequence[ProjectConfig], name: str | None, no_deps: bool = False) -> List[ProjectConfig]:
    """
    Restrict a run to project `name` and, unless `no_deps`, everything it
    transitively depends on (dependencies first). An empty or unknown name
    selects every project.
    """
    if not name:
        return list(projects)

    by_name = {p.name: p for p in projects}
    if name not in by_name:
        return list(projects)

    if no_deps:
        return [by_name[name]]

    visited: set[str] = set()
    order: List[ProjectConfig] = []

    def visit(n: str) -> None:
        if n in visited:
            return
        visited.add(n)
        proj = by_name.get(n)
        if proj is None:
            return
        for dep in proj.depends_on:
            visit(dep)
        order.append(proj)

    visit(name)
    return order
