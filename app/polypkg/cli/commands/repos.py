"""Repository management commands.

Lists, adds and removes the repositories (APT sources, Flatpak remotes,
zypper repos, ...) of package sources that support them.
"""

from typing import Annotated

import typer

from polypkg.cli.display import create_repositories_table
from polypkg.cli.types import SourceChoice, get_manager, run_engine
from polypkg.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    name="repos",
    help="Manage package repositories.",
    no_args_is_help=True,
)

SourceOpt = Annotated[
    SourceChoice,
    typer.Option(
        "--source",
        "-s",
        help="Package source whose repositories to manage.",
        case_sensitive=False,
    ),
]


@app.command("list")
def list_repositories(source: SourceOpt = SourceChoice.ALL) -> None:
    """List configured repositories.

    Examples:
        polypkg repos list
        polypkg repos list --source flatpak
    """
    manager = get_manager(source)
    selected = source.to_source()
    if selected is None:
        repositories = run_engine(manager.list_all_repositories)
    else:
        repositories = run_engine(lambda: manager.list_repositories(selected))

    if not repositories:
        print_info("No repositories found.")
        return
    console.print(create_repositories_table(repositories))


@app.command("add")
def add_repository(
    url: Annotated[str, typer.Argument(help="Repository URL or PPA.")],
    source: SourceOpt,
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Repository name (where the source needs one)."),
    ] = None,
) -> None:
    """Add a repository.

    Examples:
        polypkg repos add ppa:git-core/ppa --source apt
        polypkg repos add https://flathub.org/repo/flathub.flatpakrepo -s flatpak -n flathub
    """
    selected = source.to_source()
    if selected is None:
        print_error("A specific --source is required.")
        raise typer.Exit(code=1)

    manager = get_manager(source)
    run_engine(lambda: manager.add_repository(selected, url, name))
    print_success(f"Added repository {name or url} to {selected}")


@app.command("remove")
def remove_repository(
    name: Annotated[str, typer.Argument(help="Repository name.")],
    source: SourceOpt,
) -> None:
    """Remove a repository.

    Examples:
        polypkg repos remove ppa:git-core/ppa --source apt
    """
    selected = source.to_source()
    if selected is None:
        print_error("A specific --source is required.")
        raise typer.Exit(code=1)

    manager = get_manager(source)
    run_engine(lambda: manager.remove_repository(selected, name))
    print_success(f"Removed repository {name} from {selected}")
