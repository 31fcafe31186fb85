"""``unibuild fingerprint`` and ``unibuild systems`` — read-only queries."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from unibuild.cli.common import console, load_request
from unibuild.core.fingerprint import fingerprint
from unibuild.systems.registry import default_registry


def fingerprint_cmd(
    config: Path = typer.Argument(..., help="JSON build request."),
) -> None:
    """Print the fingerprint of each project config (its working-directory name)."""
    request = load_request(config)
    for project in request.projects:
        console.print(f"{fingerprint(project)}  {project.name}")


def systems_cmd() -> None:
    """List the registered build-system tags."""
    table = Table(title="Build Systems")
    table.add_column("Tag", style="cyan")
    table.add_column("Implementation")
    for system in default_registry():
        table.add_row(system.name, type(system).__name__)
    console.print(table)
