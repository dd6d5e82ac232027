"""Console output formatting utilities for bw."""

from __future__ import annotations

import sys
import threading
from typing import Dict, List, Optional, Sequence

from ..errors import BwError, ExecutionError, describe

_write_lock = threading.Lock()


def format_table(columns: Sequence[str], rows: Sequence[Sequence[str]], padding: int = 2) -> List[str]:
    """Left-aligned columns, like a tab writer. An empty `columns` prints no header."""
    all_rows = ([list(columns)] if columns else []) + [list(r) for r in rows]
    if not all_rows:
        return []
    ncols = max(len(r) for r in all_rows)
    widths = [0] * ncols
    for row in all_rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))
    lines = []
    for row in all_rows:
        cells = [str(c).ljust(widths[i]) for i, c in enumerate(row)]
        lines.append((" " * padding).join(cells).rstrip())
    return lines


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def _out(self, text: str = "", err: bool = False) -> None:
        with _write_lock:
            print(text, file=sys.stderr if err else sys.stdout)

    def print_run_started(self, workspace: str, steps: Sequence[str], node_count: int) -> None:
        """Print run start information."""
        self._out("\nRUN STARTED")
        self._out(f"Workspace: {workspace}")
        self._out(f"Steps: {', '.join(steps)}")
        self._out(f"Nodes: {node_count}")
        self._out()

    def print_results(self, results: Dict[str, str]) -> None:
        """Print final results summary."""
        self._out("\n" + "=" * 40)
        self._out("RESULTS")
        self._out("=" * 40)
        for node, status in results.items():
            status_display = status.upper() if status != "ok" else "SUCCESS"
            self._out(f"  {node}: {status_display}")

    def print_table(self, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        for line in format_table(columns, rows):
            self._out(line)

    def print_execution_error(self, exc: ExecutionError) -> None:
        """Print every failed and skipped node with its cause."""
        self._out(f"\nERROR: {len(exc.failed)} node(s) failed, {len(exc.skipped)} skipped", err=True)
        for failure in exc.failed:
            cause = str(failure.cause) if self.debug else describe(failure.cause)
            self._out(f"  ✗ {failure.node}: {cause}", err=True)
        for skip in exc.skipped:
            self._out(f"  ⏭ {skip}", err=True)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[List[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        self._out(f"\nERROR: {title}", err=True)
        self._out(f"{message}", err=True)
        if details:
            for detail in details:
                self._out(f"  {detail}", err=True)
        if suggestion:
            self._out(f"\n{suggestion}", err=True)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            with _write_lock:
                traceback.print_exception(type(exc), exc, exc.__traceback__)
        elif isinstance(exc, BwError):
            self._out(f"Error: {exc}", err=True)
        else:
            self._out(f"Error: {type(exc).__name__}: {exc}", err=True)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        self._out(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            self._out(f"[DEBUG] {message}", err=True)


class ConsoleNodeReporter:
    """Node output prefixed with the node name, so concurrent nodes stay readable."""

    def __init__(self, console: Console, node: str):
        self.console = console
        self.node = node

    def section(self, heading: str) -> None:
        self.console.print_info(f"[{self.node}] === {heading} ===")

    def table(self, columns: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        for line in format_table(columns, rows):
            self.console.print_info(f"[{self.node}] {line}")

    def error(self, msg: str) -> None:
        self.console._out(f"[{self.node}] {msg}", err=True)


class ConsoleReporter:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_console()

    def for_node(self, project: str, step: str, tool: str) -> ConsoleNodeReporter:
        return ConsoleNodeReporter(self.console, f"{project}:{step}:{tool}")


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
