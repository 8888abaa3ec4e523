"""CLI package for polypkg.

This package contains the Typer application and all subcommands.
"""

from polypkg.cli.main import app

__all__ = ["app"]
