# tools/golang.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from .. import cmdexec
from ..doctor import BinaryRequirement, FileRequirement, check_files, diagnose_defaults
from ..model import RunRequest, Step
from ..tool import Handler, Inspection, NodeReporter, Tool, run_inspections


class GoTool(Tool):
    """Go modules: download, tidy/format, generate, lint, build and test."""
    name = "go"
    # generated templ code must exist before go compiles it
    runs_after = ("templ",)

    required_binaries = [
        BinaryRequirement("go", "build, generate, and test Go code"),
        BinaryRequirement("golangci-lint", "format and lint Go code"),
    ]
    required_files = [
        FileRequirement("go.mod", "Go module definition"),
        FileRequirement(".golangci.yml", "golangci-lint configuration"),
    ]

    def capabilities(self) -> Dict[Step, Handler]:
        return {
            Step.INIT: self.init,
            Step.DOCTOR: self.diagnose,
            Step.FMT: self.fmt,
            Step.GEN: self.gen,
            Step.LINT: self.lint,
            Step.BUILD: self.build,
            Step.UNIT_TEST: self.unit_test,
            Step.INSPECT: self.inspect,
        }

    def inspections(self) -> List[Inspection]:
        return [Inspection("modules", "Module dependency list (go list -m all)", self._modules)]

    def diagnose(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        diagnose_defaults(dir, self.required_binaries, self.required_files, request.bin_checker, r)

    def init(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        self._go(dir, "mod", "download")

    def fmt(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        self._go(dir, "mod", "tidy")
        cmdexec.run(dir, "golangci-lint", "fmt", "./...")

    def gen(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        self._go(dir, "generate", "./...")

    def lint(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        check_files(dir, self.required_files)
        cmdexec.run(dir, "golangci-lint", "run", "./...")

    def build(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        self._go(dir, "build", "./...")

    def unit_test(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        self._go(dir, "test", "./...")

    def inspect(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        run_inspections(request, self.inspections(), dir, r)

    def _go(self, dir: Path, *args: str) -> None:
        check_files(dir, self.required_files)
        cmdexec.run(dir, "go", *args)

    def _modules(self, request: RunRequest, dir: Path, r: NodeReporter) -> None:
        out = cmdexec.output(dir, "go", "list", "-m", "all")
        rows = []
        for line in out.splitlines():
            parts = line.split()
            if parts:
                rows.append([parts[0], parts[1] if len(parts) > 1 else "(main)"])
        r.table(["MODULE", "VERSION"], rows)
