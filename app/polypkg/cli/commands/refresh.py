"""Refresh command implementation.

Refreshes package metadata (e.g. ``apt-get update``) and prints the
tool's output live.
"""

import asyncio
from typing import Annotated

import typer

from polypkg.cli.display import print_stream_line
from polypkg.cli.types import SourceChoice, get_manager, run_engine
from polypkg.core.manager import PackageManager
from polypkg.models.package import PackageSource
from polypkg.models.stream import StreamResult
from polypkg.utils.formatting import print_error, print_success


async def _refresh(manager: PackageManager, source: PackageSource) -> StreamResult:
    channel = manager.new_channel()
    task = asyncio.create_task(manager.refresh(source, channel))
    async for line in channel:
        print_stream_line(line)
    return await task


def refresh(
    source: Annotated[
        SourceChoice,
        typer.Option(
            "--source",
            "-s",
            help="Package source to refresh.",
            case_sensitive=False,
        ),
    ],
) -> None:
    """Refresh a source's package metadata, showing live output.

    Examples:
        polypkg refresh --source apt
        polypkg refresh -s flatpak
    """
    selected = source.to_source()
    if selected is None:
        print_error("A specific --source is required.")
        raise typer.Exit(code=1)

    manager = get_manager(source)
    result = run_engine(lambda: _refresh(manager, selected))

    if not result.success:
        code = result.exit_code if result.exit_code is not None else "signal"
        print_error(f"Refreshing {selected} failed (exit code {code})")
        raise typer.Exit(code=1)
    print_success(f"{selected} metadata refreshed")
