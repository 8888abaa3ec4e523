"""Updates command implementation.

Shows packages with a pending update across every enabled source.
"""

import json
from typing import Annotated

import typer

from polypkg.cli.display import package_to_dict
from polypkg.cli.types import SourceChoice, get_manager, run_engine
from polypkg.utils.formatting import (
    console,
    create_package_table,
    format_package_row,
    print_success,
)

app = typer.Typer(
    help="Show available updates.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def show_updates(
    ctx: typer.Context,
    source: Annotated[
        SourceChoice,
        typer.Option(
            "--source",
            "-s",
            help="Package source to check, or all.",
            case_sensitive=False,
        ),
    ] = SourceChoice.ALL,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Check every enabled source for package updates.

    Sources that fail to answer are skipped (run with --verbose to see why).

    Examples:
        polypkg updates
        polypkg updates --source apt
        polypkg updates --json
    """
    if ctx.invoked_subcommand is not None:
        return

    manager = get_manager(source)
    updates = run_engine(manager.check_all_updates)

    if json_output:
        console.print_json(json.dumps([package_to_dict(pkg) for pkg in updates]))
        return

    if not updates:
        print_success("All packages are up to date.")
        return

    table = create_package_table("Available Updates")
    for pkg in updates:
        table.add_row(*format_package_row(pkg))
    console.print(table)
    console.print(f"\n[dim]{len(updates)} updates available[/]")
