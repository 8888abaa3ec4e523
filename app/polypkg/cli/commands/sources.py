"""Sources command implementation.

Reports which package sources are available on this system and why the
others are not.
"""

import asyncio
import json
from typing import Annotated

import typer

from polypkg.cli.display import create_providers_table
from polypkg.cli.types import load_config_or_exit
from polypkg.core.providers import detect_providers
from polypkg.utils.formatting import console

app = typer.Typer(
    help="Show detected package sources.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def show_sources(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Show every package source, its tools and version.

    Examples:
        polypkg sources
        polypkg sources --json
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_config_or_exit()
    providers = asyncio.run(detect_providers())

    if json_output:
        data = [
            {
                "source": status.source.value,
                "display_name": status.display_name,
                "available": status.available,
                "enabled": config.is_enabled(status.source),
                "found_paths": [str(path) for path in status.found_paths],
                "version": status.version,
                "reason": status.reason,
            }
            for status in providers
        ]
        console.print_json(json.dumps(data))
        return

    console.print(create_providers_table(providers))
    disabled = [
        s.display_name for s in providers if s.available and not config.is_enabled(s.source)
    ]
    if disabled:
        console.print(f"\n[dim]Disabled in config: {', '.join(disabled)}[/]")
