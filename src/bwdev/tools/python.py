# tools/python.py
from __future__ import annotations

from pathlib import Path
from typing import Dict

from .. import cmdexec
from ..doctor import BinaryRequirement, FileRequirement, diagnose_defaults
from ..model import RunRequest, Step
from ..tool import Handler, NodeReporter, Tool


class PythonTool(Tool):
    name = "python"

    required_binaries = [
        BinaryRequirement("ruff", "format and lint Python code"),
        BinaryRequirement("pytest", "run Python unit tests"),
    ]
    required_files = [FileRequirement("pyproject.toml", "Python project definition")]

    def capabilities(self) -> Dict[Step, Handler]:
        return {
            Step.DOCTOR: self.diagnose,
            Step.FMT: self.fmt,
            Step.LINT: self.lint,
            Step.UNIT_TEST: self.unit_test,
        }

    def diagnose(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        diagnose_defaults(dir, self.required_binaries, self.required_files, request.bin_checker, r)

    def fmt(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        cmdexec.run(dir, "ruff", "format", ".")

    def lint(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        cmdexec.run(dir, "ruff", "check", ".")

    def unit_test(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        cmdexec.run(dir, "pytest", "-q")
