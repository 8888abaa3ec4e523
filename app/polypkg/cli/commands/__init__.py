"""CLI commands for polypkg.

This package contains all subcommand implementations.
"""

from polypkg.cli.commands import config, listing, packages, refresh, repos, search, sources, updates

__all__ = ["config", "listing", "packages", "refresh", "repos", "search", "sources", "updates"]
