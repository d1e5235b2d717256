"""CLI entrypoint.

- claude-mem-setup            run the full installer (no arguments needed)
- claude-mem-setup doctor     re-check the installed state only

CONTRACT
- Inputs: Command line arguments (parsed by Typer), HOME and PATH
- Outputs (required):
  - Exit code 0 on success; 1 if the install aborted or verification found errors
  - Console output describing each step, a summary table and next steps
- Invariants:
  - Logging goes to ~/.claude-mem/logs/installer.log; stderr only with --verbose
- Failure:
  - Fatal step failures print the step's raw error text and exit 1
  - Invalid --config files raise typer.BadParameter
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import SetupConfig, load_config
from .context import ExecContext
from .doctor import doctor_report
from .orchestrator import Orchestrator
from .schemas import InstallationReport
from .steps.base import InstallationStep, Outcome, StepResult

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Install claude-mem: tools, PATH, plugin build + sync, worker service.",
)
console = Console()

_MARKS = {
    Outcome.OK: "[bold green]✓[/bold green]",
    Outcome.ALREADY_SATISFIED: "[bold green]✓[/bold green]",
    Outcome.SKIPPED: "[dim]-[/dim]",
    Outcome.WARNING: "[bold yellow]![/bold yellow]",
    Outcome.FAILED: "[bold red]✗[/bold red]",
}

_SOURCE_OPTION = typer.Option(
    None,
    "--source",
    help="Plugin project root to build (default: current dir).",
)
_CONFIG_OPTION = typer.Option(
    None,
    "--config",
    help="YAML file with installer overrides.",
)
_SKIP_PREWARM_OPTION = typer.Option(
    False,
    "--skip-prewarm",
    help="Do not pre-warm the vector database.",
)
_SKIP_SERVICE_OPTION = typer.Option(
    False,
    "--skip-service",
    help="Do not start the worker service.",
)
_VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    help="Also log to stderr.",
)


def _version_callback(value: bool):
    if value:
        console.print(f"claude-mem-setup version: {__version__}")
        raise typer.Exit()


def _configure_logging(cfg: SetupConfig, verbose: bool) -> None:
    logger.remove()
    if verbose:
        logger.add(sys.stderr, level="DEBUG")
    try:
        cfg.logs_dir.mkdir(parents=True, exist_ok=True)
        logger.add(cfg.logs_dir / "installer.log", level="DEBUG", rotation="1 MB", retention=3)
    except OSError as e:
        console.print(f"[yellow]![/yellow] File logging disabled: {e}")


def _load(source: Path | None, config: Path | None, **flags) -> SetupConfig:
    if config is not None and not config.is_file():
        raise typer.BadParameter(f"Config file not found: {config}")
    try:
        return load_config(source_dir=source, config_file=config, **flags)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _print_step(step: InstallationStep, result: StepResult | None) -> None:
    if result is None:
        console.print(f"[bold blue]==>[/bold blue] {step.name}")
        return
    style = "red" if result.outcome == Outcome.FAILED else None
    text = result.message or result.outcome.value
    console.print(f"{_MARKS[result.outcome]} {text}", style=style, highlight=False)


def _print_report(report: InstallationReport) -> None:
    table = Table(title="claude-mem install")
    table.add_column("#")
    table.add_column("Step")
    table.add_column("Policy")
    table.add_column("Outcome")
    for e in report.entries:
        table.add_row(str(e.ordinal), e.step, e.policy, e.outcome)
    console.print(table)

    if not report.succeeded:
        console.print(f"[bold red]✗[/bold red] Installation aborted at {report.aborted_step}:")
        console.print(report.abort_error or "", highlight=False, markup=False)
        return
    if report.verify_errors:
        console.print(f"[bold red]✗[/bold red] {report.verify_errors} errors found")
    else:
        console.print("\n[bold]Installation complete![/bold]\n")
    console.print("Next steps:")
    for i, line in enumerate(report.guidance, start=1):
        console.print(f"  {i}. {line}", highlight=False)


@app.callback()
def main(
    ctx: typer.Context,
    source: Path | None = _SOURCE_OPTION,
    config: Path | None = _CONFIG_OPTION,
    skip_prewarm: bool = _SKIP_PREWARM_OPTION,
    skip_service: bool = _SKIP_SERVICE_OPTION,
    verbose: bool = _VERBOSE_OPTION,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    ),
) -> None:
    """Run the installer (default) or a subcommand."""
    flags = {}
    if skip_prewarm:
        flags["prewarm"] = False
    if skip_service:
        flags["start_service"] = False
    cfg = _load(source, config, **flags)
    _configure_logging(cfg, verbose)
    ctx.obj = cfg
    if ctx.invoked_subcommand is not None:
        return

    console.print("\n[bold]Claude-mem Installer[/bold]\n====================\n")
    report = Orchestrator(cfg, observer=_print_step).run()
    _print_report(report)
    raise typer.Exit(code=report.exit_code)


@app.command()
def doctor(ctx: typer.Context) -> None:
    """Check tools, plugin tree and database without changing anything."""
    cfg: SetupConfig = ctx.obj
    report = doctor_report(cfg, ExecContext.from_env(cfg.home))
    table = Table(title="claude-mem doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Details")
    for item in report.items:
        table.add_row(item.name, item.status, item.details)
    console.print(table)
    if report.ok:
        console.print("[green]OK[/green]")
    else:
        raise typer.Exit(code=2)


if __name__ == "__main__":
    app()
