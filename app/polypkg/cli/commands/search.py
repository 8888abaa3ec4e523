"""Search command implementation."""

import json
from typing import Annotated

import typer

from polypkg.cli.display import package_to_dict
from polypkg.cli.types import SourceChoice, get_manager, run_engine
from polypkg.utils.formatting import console, create_package_table, format_package_row, print_info


def search_packages(
    query: Annotated[str, typer.Argument(help="Text to search for.")],
    source: Annotated[
        SourceChoice,
        typer.Option(
            "--source",
            "-s",
            help="Package source to search, or all.",
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
    """Search every enabled source and merge the results by name.

    Examples:
        polypkg search firefox
        polypkg search ripgrep --source cargo
    """
    manager = get_manager(source)
    results = run_engine(lambda: manager.search(query))

    if json_output:
        console.print_json(json.dumps([package_to_dict(pkg) for pkg in results]))
        return

    if not results:
        print_info(f"No packages found for '{query}'.")
        return

    table = create_package_table(f"Search Results: {query}")
    for pkg in results:
        table.add_row(*format_package_row(pkg))
    console.print(table)
