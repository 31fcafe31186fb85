"""Main Typer application — imports and registers all CLI commands.

Entry point: ``unibuild`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import typer

from unibuild.cli.commands.build import build_cmd, extract_cmd
from unibuild.cli.commands.inspect import fingerprint_cmd, systems_cmd

app = typer.Typer(
    name="unibuild",
    help="Unibuild: multi-project build orchestration with fingerprint caching.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="build", help="Extract and build a request.")(build_cmd)
app.command(name="extract", help="Extract a request without building it.")(extract_cmd)
app.command(name="fingerprint", help="Print project fingerprints.")(fingerprint_cmd)
app.command(name="systems", help="List registered build systems.")(systems_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
