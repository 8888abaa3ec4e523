"""List command implementation.

Lists installed packages from every enabled package source.
"""

import json
from enum import Enum
from typing import Annotated

import typer

from polypkg.cli.display import package_to_dict
from polypkg.cli.types import SourceChoice, get_manager, run_engine
from polypkg.utils.formatting import console, create_package_table, format_package_row

app = typer.Typer(
    help="List installed packages.",
    invoke_without_command=True,
)


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


@app.callback(invoke_without_command=True)
def list_packages(
    ctx: typer.Context,
    source: Annotated[
        SourceChoice,
        typer.Option(
            "--source",
            "-s",
            help="Package source to list, or all.",
            case_sensitive=False,
        ),
    ] = SourceChoice.ALL,
    limit: Annotated[
        int | None,
        typer.Option(
            "--limit",
            "-n",
            help="Limit number of packages to display.",
        ),
    ] = None,
    count_only: Annotated[
        bool,
        typer.Option(
            "--count",
            "-c",
            help="Only show package counts.",
        ),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """List installed packages, sorted by name.

    Examples:
        polypkg list                    # All enabled sources
        polypkg list --source flatpak   # Flatpak only
        polypkg list --count            # Counts per source
        polypkg list --format json      # Output as JSON
    """
    if ctx.invoked_subcommand is not None:
        return

    manager = get_manager(source)
    packages = run_engine(manager.list_all_installed)

    if count_only:
        counts: dict[str, int] = {}
        for pkg in packages:
            counts[pkg.source.display_name] = counts.get(pkg.source.display_name, 0) + 1
        console.print(f"[info]Total packages: {len(packages)}[/]")
        for name, count in sorted(counts.items()):
            console.print(f"  {name}: {count}")
        return

    display_packages = packages[:limit] if limit else packages

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([package_to_dict(pkg) for pkg in display_packages]))
        return

    table = create_package_table("Installed Packages")
    for pkg in display_packages:
        table.add_row(*format_package_row(pkg))
    console.print(table)

    summary = f"Showing {len(display_packages)} of {len(packages)} packages"
    if limit and len(display_packages) < len(packages):
        summary += f" (limited to {limit})"
    console.print(f"\n[dim]{summary}[/]")
