# doctor.py
from __future__ import annotations

import shutil
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, IO, List, Optional, Sequence

from .errors import DoctorError


TOOL_HINTS = {
    "go": "Install Go (https://go.dev/dl) or fix PATH.",
    "golangci-lint": "Install golangci-lint (e.g., mise use golangci-lint).",
    "shfmt": "Install shfmt (e.g., mise use shfmt).",
    "shellcheck": "Install shellcheck (e.g., mise use shellcheck).",
    "pytest": "Install pytest (e.g., pip install pytest).",
    "ruff": "Install ruff (e.g., pip install ruff).",
    "docker": "Install Docker and ensure the daemon is running.",
}


@dataclass(frozen=True)
class BinaryRequirement:
    name: str
    reason: str


@dataclass(frozen=True)
class FileRequirement:
    path: str
    reason: str
    check: Optional[Callable[[IO[str]], None]] = None


@dataclass(frozen=True)
class BinResult:
    in_path: bool
    mise_managed: bool


class BinChecker:
    """
    Looks up binaries once per run. Shared by every node of a run so that
    concurrent doctor steps do not repeat the same PATH / mise probes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cache: Dict[str, BinResult] = {}

    def check(self, name: str) -> BinResult:
        with self._lock:
            cached = self._cache.get(name)
        if cached is not None:
            return cached

        result = BinResult(in_path=shutil.which(name) is not None, mise_managed=_is_mise_managed(name))
        with self._lock:
            return self._cache.setdefault(name, result)


def _is_mise_managed(binary: str) -> bool:
    if shutil.which("mise") is None:
        return False
    proc = subprocess.run(["mise", "which", binary], capture_output=True, text=True)
    return proc.returncode == 0


def check_files(dir: str | Path, reqs: Sequence[FileRequirement]) -> None:
    """Raise FileNotFoundError / the check's error for the first unmet requirement."""
    for req in reqs:
        full = Path(dir) / req.path
        if not full.exists():
            raise FileNotFoundError(f"required file {req.path!r} not found in {dir} ({req.reason})")
        if req.check is not None:
            with full.open("r", encoding="utf-8") as f:
                try:
                    req.check(f)
                except Exception as e:
                    raise ValueError(f"file {req.path!r} in {dir}: {e}") from e


def diagnose_defaults(
    dir: str | Path,
    binaries: Sequence[BinaryRequirement],
    files: Sequence[FileRequirement],
    checker: BinChecker,
    reporter,
) -> None:
    """
    Standard doctor step: every binary must be on PATH and every required
    file present. Results go to the reporter; problems raise DoctorError.
    """
    problems: List[str] = []

    for req in binaries:
        res = checker.check(req.name)
        if res.in_path and res.mise_managed:
            reporter.table([], [["✓", req.name, "(mise)"]])
        elif res.in_path:
            reporter.table([], [["✓", req.name, "(system)"]])
        else:
            hint = TOOL_HINTS.get(req.name, f"Install {req.name} or fix PATH.")
            msg = f"{req.name} not found ({req.reason}). {hint}"
            reporter.error("✗ " + msg)
            problems.append(msg)

    try:
        check_files(dir, files)
    except (OSError, ValueError) as e:
        reporter.error("✗ " + str(e))
        problems.append(str(e))
    else:
        for req in files:
            reporter.table([], [["✓", req.path]])

    if problems:
        raise DoctorError(problems)
