"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from polypkg.core.errors import split_suggestion
from polypkg.core.theme import get_theme
from polypkg.models.package import PackageStatus

if TYPE_CHECKING:
    from polypkg.models.package import Package


def _detect_color_system() -> str | None:
    """Return "truecolor" for interactive terminals, None to let Rich decide."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())

_STATUS_ICONS: dict[PackageStatus, str] = {
    PackageStatus.INSTALLED: "[installed]●[/]",  # Filled circle
    PackageStatus.UPDATE_AVAILABLE: "[update_available]↑[/]",  # Up arrow
    PackageStatus.NOT_INSTALLED: "[not_installed]○[/]",  # Empty circle
}


def create_package_table(title: str = "Installed Packages") -> Table:
    """Create a pre-configured table for displaying packages.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for package display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],  # Zebra striping for readability
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Source", width=8)
    table.add_column("Version", style="muted")
    table.add_column("Size", style="info", justify="right")
    table.add_column("Description", style="text", overflow="ellipsis")
    return table


def format_package_row(pkg: Package) -> tuple[str, str, str, str, str, str]:
    """Format a package as a table row with status styling.

    Args:
        pkg: The package to format.

    Returns:
        Tuple of (icon, name, source, version, size, description) with Rich markup.
    """
    icon = _STATUS_ICONS.get(pkg.status, "[muted]…[/]")
    style = pkg.status.value if pkg.status in _STATUS_ICONS else "muted"
    return (
        icon,
        f"[{style}]{pkg.name}[/]",
        pkg.source.display_name,
        f"[muted]{pkg.display_version or '-'}[/]",
        f"[info]{pkg.size_human}[/]",
        f"[text]{pkg.description or '-'}[/]",
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message, with any suggested manual command on its own line."""
    text, command = split_suggestion(message)
    err_console.print(f"[error]Error:[/] {escape(text)}", highlight=False)
    if command:
        err_console.print(f"[muted]Try manually:[/] {escape(command)}", highlight=False)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
