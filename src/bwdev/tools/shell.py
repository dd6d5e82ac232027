# tools/shell.py
from __future__ import annotations

from pathlib import Path
from typing import Dict

from .. import cmdexec
from ..doctor import BinaryRequirement, diagnose_defaults
from ..model import RunRequest, Step
from ..tool import Handler, NodeReporter, Tool
from .files import find_by_extension

SHELL_EXTENSIONS = (".sh", ".bash")


class ShellTool(Tool):
    """Formats (shfmt) and lints (shellcheck) the shell scripts of a project."""
    name = "shell"

    required_binaries = [
        BinaryRequirement("shfmt", "format shell scripts"),
        BinaryRequirement("shellcheck", "lint shell scripts"),
    ]

    def capabilities(self) -> Dict[Step, Handler]:
        return {
            Step.DOCTOR: self.diagnose,
            Step.FMT: self.fmt,
            Step.LINT: self.lint,
        }

    def diagnose(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        diagnose_defaults(dir, self.required_binaries, [], request.bin_checker, r)

    def fmt(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        scripts = find_by_extension(dir, *SHELL_EXTENSIONS)
        if not scripts:
            return
        cmdexec.run(dir, "shfmt", "-w", *scripts)

    def lint(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        scripts = find_by_extension(dir, *SHELL_EXTENSIONS)
        if not scripts:
            return
        cmdexec.run(dir, "shellcheck", *scripts)
