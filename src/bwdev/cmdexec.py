# cmdexec.py
# The one place tools start subprocesses. Every command runs in an absolute
# project directory and failures become CommandError with the stderr tail.
from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Dict, Optional

from .errors import CommandError

STDERR_TAIL = 4000


def _check_dir(dir: str | Path) -> Path:
    path = Path(dir)
    if not path.is_absolute():
        raise ValueError(f"cmdexec: dir must be absolute, got {str(dir)!r}")
    if not path.is_dir():
        raise FileNotFoundError(f"cmdexec: dir not found: {path}")
    return path


def _env(extra: Optional[Dict[str, str]]) -> Dict[str, str]:
    env = os.environ.copy()
    env.update(extra or {})
    return env


def run(dir: str | Path, name: str, *args: str, env: Optional[Dict[str, str]] = None) -> None:
    """Run `name args...` in `dir`, streaming stdout and capturing stderr for the error."""
    cwd = _check_dir(dir)
    try:
        proc = subprocess.run(
            [name, *args],
            cwd=str(cwd),
            env=_env(env),
            text=True,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise CommandError(cmd=name, argv=list(args), dir=str(cwd), exit_code=127, stderr=str(e)) from e

    if proc.returncode != 0:
        raise CommandError(
            cmd=name,
            argv=list(args),
            dir=str(cwd),
            exit_code=proc.returncode,
            stderr=(proc.stderr or "")[-STDERR_TAIL:],
        )


def run_shell(dir: str | Path, command: str, *, env: Optional[Dict[str, str]] = None) -> None:
    """Run a shell command line in `dir`."""
    cwd = _check_dir(dir)
    proc = subprocess.run(
        command,
        shell=True,
        cwd=str(cwd),
        env=_env(env),
        text=True,
        stderr=subprocess.PIPE,
    )
    if proc.returncode != 0:
        raise CommandError(
            cmd=command,
            argv=[],
            dir=str(cwd),
            exit_code=proc.returncode,
            stderr=(proc.stderr or "")[-STDERR_TAIL:],
        )


def output(dir: str | Path, name: str, *args: str, env: Optional[Dict[str, str]] = None) -> str:
    """Run a command and return its stdout."""
    cwd = _check_dir(dir)
    try:
        proc = subprocess.run(
            [name, *args],
            cwd=str(cwd),
            env=_env(env),
            text=True,
            capture_output=True,
        )
    except FileNotFoundError as e:
        raise CommandError(cmd=name, argv=list(args), dir=str(cwd), exit_code=127, stderr=str(e)) from e

    if proc.returncode != 0:
        raise CommandError(
            cmd=name,
            argv=list(args),
            dir=str(cwd),
            exit_code=proc.returncode,
            stderr=(proc.stderr or "")[-STDERR_TAIL:],
        )
    return proc.stdout
