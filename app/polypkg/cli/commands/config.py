"""Config commands.

Shows the engine configuration and enables or disables package sources
in ~/.config/polypkg/config.toml.
"""

from typing import Annotated

import typer

from polypkg.cli.types import SourceChoice, load_config_or_exit
from polypkg.core.config import ConfigError, EngineConfig, save_config
from polypkg.core.paths import get_config_path
from polypkg.models.package import PackageSource
from polypkg.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    name="config",
    help="Show and change engine settings.",
    no_args_is_help=True,
)

SourceArg = Annotated[
    SourceChoice,
    typer.Argument(help="Package source.", case_sensitive=False),
]


def _save(config: EngineConfig) -> None:
    try:
        path = save_config(config)
    except (ConfigError, RuntimeError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_info(f"Saved {path}")


def _single_source(choice: SourceChoice) -> PackageSource:
    source = choice.to_source()
    if source is None:
        print_error("Name a single source.")
        raise typer.Exit(code=1)
    return source


@app.command("show")
def show() -> None:
    """Show the effective configuration."""
    config = load_config_or_exit()
    console.print(f"[header]Config file:[/] {get_config_path()}")

    if config.enabled_sources is None:
        sources = "all available"
    else:
        sources = ", ".join(s.display_name for s in config.enabled_sources) or "none"
    console.print(f"  Enabled sources:   {sources}")
    console.print(f"  Stream buffer:     {config.stream_buffer}")
    timeout = f"{config.command_timeout:g}s" if config.command_timeout else "none"
    console.print(f"  Command timeout:   {timeout}")
    console.print(f"  Elevation program: {config.elevation_program}")


@app.command("enable")
def enable(source: SourceArg) -> None:
    """Enable a package source.

    Examples:
        polypkg config enable flatpak
    """
    selected = _single_source(source)
    config = load_config_or_exit()

    if config.is_enabled(selected):
        print_info(f"{selected} is already enabled.")
        return

    enabled = [*(config.enabled_sources or []), selected]
    _save(config.model_copy(update={"enabled_sources": enabled}))
    print_success(f"Enabled {selected}")


@app.command("disable")
def disable(source: SourceArg) -> None:
    """Disable a package source.

    Examples:
        polypkg config disable snap
    """
    selected = _single_source(source)
    config = load_config_or_exit()

    if not config.is_enabled(selected):
        print_info(f"{selected} is already disabled.")
        return

    # None means every source, so spell the remaining ones out
    current = config.enabled_sources if config.enabled_sources is not None else list(PackageSource)
    enabled = [s for s in current if s != selected]
    _save(config.model_copy(update={"enabled_sources": enabled}))
    print_success(f"Disabled {selected}")
