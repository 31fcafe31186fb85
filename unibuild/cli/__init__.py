"""Unibuild CLI — Typer-based command-line interface.

Provides the ``unibuild`` command with subcommands for building and
extracting a request, printing project fingerprints, and listing the
registered build systems.

All output uses Rich for formatted terminal display.
"""
