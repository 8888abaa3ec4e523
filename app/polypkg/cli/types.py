"""Shared types and utilities for CLI commands.

This module provides common enums and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

import typer

from polypkg.core.config import ConfigError, EngineConfig, load_config
from polypkg.core.errors import AuthorizationCancelled, PackageError
from polypkg.core.manager import PackageManager
from polypkg.models.package import Package, PackageSource
from polypkg.utils.formatting import print_error, print_success, print_warning

T = TypeVar("T")


class SourceChoice(str, Enum):
    """Available package sources for CLI commands."""

    APT = "apt"
    DNF = "dnf"
    PACMAN = "pacman"
    ZYPPER = "zypper"
    FLATPAK = "flatpak"
    SNAP = "snap"
    NPM = "npm"
    PIP = "pip"
    PIPX = "pipx"
    CARGO = "cargo"
    BREW = "brew"
    AUR = "aur"
    CONDA = "conda"
    MAMBA = "mamba"
    DART = "dart"
    DEB = "deb"
    APPIMAGE = "appimage"
    ALL = "all"

    def to_source(self) -> PackageSource | None:
        """Return the matching PackageSource, None for ALL."""
        if self == SourceChoice.ALL:
            return None
        return PackageSource(self.value)


def load_config_or_exit() -> EngineConfig:
    """Load the engine configuration, exiting with an error message on failure."""
    try:
        return load_config()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def get_manager(source: SourceChoice = SourceChoice.ALL) -> PackageManager:
    """Create a PackageManager, narrowed to one source unless ``source`` is ALL.

    Args:
        source: The source choice.

    Returns:
        PackageManager with the requested sources enabled.
    """
    manager = PackageManager(load_config_or_exit())
    selected = source.to_source()
    if selected is not None:
        if selected not in manager.available_sources():
            print_error(f"{selected} is not available on this system.")
            raise typer.Exit(code=1)
        manager.set_enabled_sources([selected])
    elif not manager.enabled_sources():
        print_error("No package managers are available on this system.")
        raise typer.Exit(code=1)
    return manager


def run_engine(call: Callable[[], Awaitable[T]]) -> T:
    """Run an engine coroutine, translating engine errors into CLI exits.

    Args:
        call: Zero-argument coroutine function to run.

    Returns:
        The coroutine's result.
    """
    try:
        return asyncio.run(call())  # type: ignore[arg-type]
    except AuthorizationCancelled as e:
        print_warning("Authorization was canceled.")
        raise typer.Exit(code=1) from e
    except PackageError as e:
        print_error(e.to_message())
        raise typer.Exit(code=1) from e


def run_package_action(verb: str, name: str, source: SourceChoice) -> None:
    """Run install, remove or update for one package.

    Args:
        verb: One of "install", "remove", "update".
        name: Package name.
        source: Source owning the package; ALL is rejected.
    """
    selected = source.to_source()
    if selected is None:
        print_error("A specific --source is required.")
        raise typer.Exit(code=1)

    if not name:
        print_error("Package name cannot be empty.")
        raise typer.Exit(code=1)

    manager = get_manager(source)
    package = Package(name=name, source=selected)

    run_engine(lambda: getattr(manager, verb)(package))
    done = {"install": "Installed", "remove": "Removed", "update": "Updated"}[verb]
    print_success(f"{done} {name} ({selected})")
