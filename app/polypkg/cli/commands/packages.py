"""Install, remove and update commands.

Each command acts on one package of one source. Privileged sources
prompt for authorization through the configured elevation launcher.
"""

from typing import Annotated

import typer

from polypkg.cli.types import SourceChoice, run_package_action

PackageArg = Annotated[str, typer.Argument(help="Package name.")]
SourceOpt = Annotated[
    SourceChoice,
    typer.Option(
        "--source",
        "-s",
        help="Package source that owns the package.",
        case_sensitive=False,
    ),
]


def install(name: PackageArg, source: SourceOpt) -> None:
    """Install a package.

    Examples:
        polypkg install vim --source apt
        polypkg install org.gnome.Calculator -s flatpak
    """
    run_package_action("install", name, source)


def remove(
    name: PackageArg,
    source: SourceOpt,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a package.

    Examples:
        polypkg remove vim --source apt
        polypkg remove spotify -s snap --yes
    """
    if not yes and not typer.confirm(f"Remove {name} ({source.value})?", default=False):
        raise typer.Exit(code=0)
    run_package_action("remove", name, source)


def update(name: PackageArg, source: SourceOpt) -> None:
    """Update a package to the newest available version.

    Examples:
        polypkg update firefox --source flatpak
    """
    run_package_action("update", name, source)
