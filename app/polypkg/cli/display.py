"""Shared Rich display functions for repositories, providers and live output.

Provides reusable table builders for CLI commands that do not display
packages (those use ``create_package_table`` from utils.formatting).
"""

from rich.markup import escape
from rich.table import Table

from polypkg.core.providers import ProviderStatus
from polypkg.models.package import Package
from polypkg.models.repository import Repository
from polypkg.models.stream import StreamLine
from polypkg.utils.formatting import console


def create_repositories_table(repositories: list[Repository]) -> Table:
    """Create a Rich table displaying configured repositories.

    Args:
        repositories: Repositories to display.

    Returns:
        Rich Table with Source, Name, URL and status columns.
    """
    table = Table(
        title="Repositories",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Source", width=8)
    table.add_column("Name", no_wrap=True)
    table.add_column("URL", style="muted", overflow="fold")
    table.add_column("Description", style="text")

    for repo in repositories:
        icon = "[success]●[/]" if repo.enabled else "[muted]○[/]"
        table.add_row(
            icon,
            repo.source.display_name,
            escape(repo.name),
            escape(repo.url or "-"),
            escape(repo.description or ""),
        )
    return table


def create_providers_table(providers: list[ProviderStatus]) -> Table:
    """Create a Rich table describing every package source's availability."""
    table = Table(
        title="Package Sources",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Source", no_wrap=True)
    table.add_column("Version", style="muted")
    table.add_column("Tools", style="info")
    table.add_column("Notes", style="text")

    for status in providers:
        icon = "[success]✓[/]" if status.available else "[error]✗[/]"
        tools = ", ".join(str(path) for path in status.found_paths) or "-"
        table.add_row(
            icon,
            status.display_name,
            escape(status.version or "-"),
            escape(tools),
            escape(status.reason or ""),
        )
    return table


def print_stream_line(line: StreamLine) -> None:
    """Print one line of live command output; stderr lines use the warning style."""
    if line.is_stderr:
        console.print(f"[warning]{escape(line.text)}[/]", highlight=False)
    else:
        console.print(escape(line.text), highlight=False)


def package_to_dict(pkg: Package) -> dict[str, object]:
    """Convert a package to a JSON-serializable dictionary."""
    return {
        "id": pkg.id,
        "name": pkg.name,
        "source": pkg.source.value,
        "version": pkg.version,
        "status": pkg.status.value,
        "available_version": pkg.available_version,
        "description": pkg.description,
        "size": pkg.size,
    }
