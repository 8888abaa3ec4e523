"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer

from polypkg import __version__
from polypkg.cli.commands import config, listing, packages, refresh, repos, search, sources, updates

# Create main Typer app
app = typer.Typer(
    name="polypkg",
    help="One interface for every package manager on your system.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"polypkg version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Configure the root logger for the CLI process."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """polypkg - One interface for every package manager on your system.

    Lists, searches, installs and updates packages from APT, DNF, pacman,
    Flatpak, Snap, npm, pip, cargo and more.
    """
    configure_logging(verbose, quiet)
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(listing.app, name="list")
app.add_typer(updates.app, name="updates")
app.command("search")(search.search_packages)
app.command("install")(packages.install)
app.command("remove")(packages.remove)
app.command("update")(packages.update)
app.add_typer(sources.app, name="sources")
app.add_typer(repos.app, name="repos")
app.command("refresh")(refresh.refresh)
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
