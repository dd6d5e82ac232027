# cli.py
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Sequence

import click

from .errors import BwError, CycleDetectedError, ExecutionError, UnknownToolError, WorkspaceError
from .logging import set_level
from .model import (
    MATRIX_STEPS,
    PREFLIGHT_STEPS,
    RELEASE_STEPS,
    BootstrapOptions,
    RunRequest,
    Step,
)
from .runner import build, execute
from .tool import inspection_names, supports_step
from .tools import default_registry
from .ui.console import Console, ConsoleReporter, get_console, set_console
from .workspace import WORKSPACE_FILE, Workspace, filter_projects, load_workspace


def _load(ctx: click.Context) -> Workspace:
    console = get_console()
    try:
        return load_workspace(ctx.obj.get("workspace"))
    except WorkspaceError as e:
        console.print_error(
            "Invalid workspace",
            str(e),
            suggestion=f"Create a {WORKSPACE_FILE} at the workspace root or point at one:\n  bw --workspace path/to/{WORKSPACE_FILE} preflight",
        )
        sys.exit(1)


def run_steps(ctx: click.Context, steps: Sequence[Step], **params: Any) -> None:
    """Build the graph for `steps` over the selected projects and execute it."""
    console = get_console()
    ws = _load(ctx)

    project = ctx.obj.get("project")
    if project and project not in {p.name for p in ws.projects}:
        console.print_error(
            "Unknown project",
            f"No project named {project!r} in {ws.root / WORKSPACE_FILE}",
            details=[f"Known projects: {', '.join(p.name for p in ws.projects)}"],
        )
        sys.exit(1)
    projects = filter_projects(ws.projects, project, ctx.obj.get("no_deps", False))

    request = RunRequest(root=ws.root, **params)
    registry = ws.registry(default_registry())

    try:
        graph = build(projects, registry, request, steps)
    except UnknownToolError as e:
        console.print_error(
            "Unknown tool",
            str(e),
            details=[f"Registered tools: {', '.join(t.name for t in registry)}"],
            suggestion=f"Define it in {WORKSPACE_FILE} with TOOLS = [command_tool(...)] or fix the project's tools.",
        )
        sys.exit(1)
    except CycleDetectedError as e:
        console.print_error("Dependency cycle", str(e), suggestion="Check runs_after and depends_on declarations.")
        sys.exit(1)

    console.print_run_started(
        workspace=str(ws.root),
        steps=[s.label for s in steps],
        node_count=len(graph),
    )

    try:
        results = execute(request, graph, ConsoleReporter(console), max_workers=ctx.obj.get("workers"))
    except ExecutionError as e:
        console.print_results(e.results)
        console.print_execution_error(e)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)

    console.print_results(results)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and scheduler logs)",
)
@click.option(
    "--workspace",
    default=None,
    type=click.Path(path_type=Path),
    help=f"Workspace file or directory (defaults to the nearest {WORKSPACE_FILE})",
)
@click.option("-p", "--project", default=None, help="Run only for a specific project (includes transitive dependencies)")
@click.option("--no-deps", is_flag=True, default=False, help="With -p, skip transitive dependencies")
@click.option("--workers", default=None, type=click.IntRange(min=1), envvar="BW_WORKERS", help="Number of parallel workers")
@click.pass_context
def cli(ctx, debug, workspace, project, no_deps, workers):
    """bw: multi-project development pipeline."""
    console = Console(debug=debug)
    set_console(console)
    if debug:
        set_level(logging.DEBUG)
    ctx.ensure_object(dict)
    ctx.obj.update(debug=debug, workspace=workspace, project=project, no_deps=no_deps, workers=workers)


def _step_command(name: str, step: Step, help: str) -> None:
    @cli.command(name=name, help=help)
    @click.pass_context
    def command(ctx):
        run_steps(ctx, [step])


_step_command("doctor", Step.DOCTOR, "Check that all required tools and files are present.")
_step_command("init", Step.INIT, "Initialize local development environment.")
_step_command("fmt", Step.FMT, "Format code in all projects.")
_step_command("gen", Step.GEN, "Generate code in all projects.")
_step_command("lint", Step.LINT, "Run linters for all projects.")
_step_command("build", Step.BUILD, "Build all projects.")
_step_command("unit-test", Step.UNIT_TEST, "Run unit tests for all projects.")


@cli.command()
@click.pass_context
def preflight(ctx):
    """Run all doctor, gen, fmt, lint, build, and unit-test steps."""
    run_steps(ctx, PREFLIGHT_STEPS)


@cli.command()
@click.option("--dry-run", is_flag=True, default=False, help="Build release artifacts without pushing tags or publishing")
@click.pass_context
def release(ctx, dry_run):
    """Build and publish release artifacts."""
    run_steps(ctx, RELEASE_STEPS, release_dry_run=dry_run)


@cli.command()
@click.pass_context
def tools(ctx):
    """Show the tool/step capability matrix."""
    console = get_console()
    registry = default_registry()
    try:
        registry = load_workspace(ctx.obj.get("workspace")).registry(registry)
    except WorkspaceError as e:
        # outside a workspace the matrix still lists the built-in tools
        console.print_debug(f"no workspace tools: {e}")

    columns = ["TOOL", "RUNS AFTER"] + [s.label.upper() for s in MATRIX_STEPS] + ["LENSES"]
    rows = []
    for tl in registry:
        row = [tl.name, ", ".join(tl.runs_after) or "-"]
        row.extend("✓" if supports_step(tl, s) else "-" for s in MATRIX_STEPS)
        row.append(", ".join(inspection_names(tl)) or "-")
        rows.append(row)
    console.print_table(columns, rows)


# ----------------------------------------------------------------------
# infra
# ----------------------------------------------------------------------

@cli.group()
def infra():
    """Infrastructure commands."""


@infra.command("bootstrap")
@click.option("--profile", default="", help="AWS profile to use for bootstrap (requires admin permissions)")
@click.option("--execution-policies", default="", help="IAM policy ARNs for the CloudFormation execution role")
@click.option("--permissions-boundary", default="", help="IAM permissions boundary for bootstrap roles")
@click.pass_context
def infra_bootstrap(ctx, profile, execution_policies, permissions_boundary):
    """Bootstrap infrastructure tooling in the current account/region."""
    run_steps(
        ctx,
        [Step.BOOTSTRAP],
        bootstrap=BootstrapOptions(
            profile=profile,
            execution_policies=execution_policies,
            permissions_boundary=permissions_boundary,
        ),
    )


@infra.command("diff")
@click.argument("deployment", required=False)
@click.pass_context
def infra_diff(ctx, deployment):
    """Show infrastructure diff for a deployment."""
    run_steps(ctx, [Step.DIFF], deployment=deployment or None)


@infra.command("deploy")
@click.argument("deployment", required=False)
@click.option("--hotswap", is_flag=True, default=False, help="Enable hotswap deployment for faster iterations")
@click.pass_context
def infra_deploy(ctx, deployment, hotswap):
    """Deploy infrastructure stacks for a deployment."""
    run_steps(ctx, [Step.DEPLOY], deployment=deployment or None, hotswap=hotswap)


@infra.command("inspect")
@click.argument("deployment", required=False)
@click.option("-l", "--lens", "lenses", multiple=True, help="Run specific inspections (repeatable)")
@click.pass_context
def infra_inspect(ctx, deployment, lenses):
    """Inspect a deployment. Use -l to select lenses."""
    run_steps(ctx, [Step.INSPECT], deployment=deployment or None, inspect_lenses=tuple(lenses))


def main() -> None:
    try:
        cli(standalone_mode=True)
    except BwError as e:
        get_console().print_exception(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
