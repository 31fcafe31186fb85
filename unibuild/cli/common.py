"""Helpers shared by the CLI commands: settings, logging, request loading."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from unibuild.config import UnibuildSettings
from unibuild.models.project import BuildRequest

console = Console()
err_console = Console(stderr=True)

WORK_DIR_OPTION = typer.Option(
    None, "--work-dir", "-w", help="Directory for per-project working directories."
)
REPOSITORY_OPTION = typer.Option(
    None, "--repository", "-r", help="Path to the durable artifact repository."
)
LOG_LEVEL_OPTION = typer.Option(
    None, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)."
)


def load_settings(
    work_dir: Path | None = None,
    repository: Path | None = None,
    log_level: str | None = None,
) -> UnibuildSettings:
    """Environment settings, with the command-line overrides applied."""
    overrides = {
        "work_dir": work_dir,
        "repository_path": repository,
        "log_level": log_level.upper() if log_level else None,
    }
    settings = UnibuildSettings()
    return settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def load_request(path: Path) -> BuildRequest:
    """Read a JSON ``BuildRequest``; exits with code 2 if it is unusable."""
    if not path.is_file():
        console.print(f"[bold red]Request file not found:[/bold red] {path}")
        raise typer.Exit(code=2)
    try:
        return BuildRequest.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        console.print(f"[bold red]Invalid build request {path}:[/bold red]\n{escape(str(e))}")
        raise typer.Exit(code=2) from e
