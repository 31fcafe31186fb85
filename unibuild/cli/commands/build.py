"""``unibuild build`` and ``unibuild extract`` — run a build request.

``build`` extracts and builds every project and prints one row per
project; the exit code is 1 when any project did not build.  ``extract``
stops after extraction and prints the sub-projects found.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from unibuild.cli.common import (
    LOG_LEVEL_OPTION,
    REPOSITORY_OPTION,
    WORK_DIR_OPTION,
    configure_logging,
    console,
    load_request,
    load_settings,
)
from unibuild.core.orchestrator import Orchestrator
from unibuild.errors import UnibuildError
from unibuild.models.outcomes import BuildGood, BuildReport


def _report_table(report: BuildReport) -> Table:
    table = Table(title="Build Outcomes")
    table.add_column("Project", style="cyan")
    table.add_column("Result", justify="center")
    table.add_column("UUID")
    table.add_column("Files", justify="right")
    table.add_column("Status")

    for outcome in report.outcomes:
        if isinstance(outcome, BuildGood):
            table.add_row(
                outcome.project,
                "[green]OK[/green]",
                outcome.uuid[:12],
                str(len(outcome.artifacts.shas)),
                "",
            )
        else:
            table.add_row(
                outcome.project, "[red]FAILED[/red]", outcome.uuid[:12], "-", outcome.status
            )
    return table


def build_cmd(
    config: Path = typer.Argument(..., help="JSON build request."),
    work_dir: Path = WORK_DIR_OPTION,
    repository: Path = REPOSITORY_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Extract and build every project of a request."""
    settings = load_settings(work_dir, repository, log_level)
    configure_logging(settings.log_level)
    request = load_request(config)

    try:
        report = Orchestrator(settings).build(request)
    except UnibuildError as e:
        console.print(f"[bold red]Build aborted:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    console.print(_report_table(report))
    if not report.succeeded:
        failed = ", ".join(o.project for o in report.failures)
        console.print(f"[bold red]Failed:[/bold red] {failed}")
        raise typer.Exit(code=1)
    console.print("[bold green]All projects built.[/bold green]")


def extract_cmd(
    config: Path = typer.Argument(..., help="JSON build request."),
    work_dir: Path = WORK_DIR_OPTION,
    repository: Path = REPOSITORY_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Resolve and extract every project of a request, without building."""
    settings = load_settings(work_dir, repository, log_level)
    configure_logging(settings.log_level)
    request = load_request(config)

    try:
        pces = Orchestrator(settings).extract_all(request)
    except UnibuildError as e:
        console.print(f"[bold red]Extraction aborted:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    for pce in pces:
        subprojects = ", ".join(pce.extracted.subprojects) or "[dim](none)[/dim]"
        console.print(
            f"[bold cyan]{pce.config.name}[/bold cyan] {pce.extracted.version}: {subprojects}"
        )
