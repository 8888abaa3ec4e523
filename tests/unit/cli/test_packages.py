"""Unit tests for package CLI commands.

Tests for list, updates, search, install, remove, update, repos and
refresh, with the package manager replaced by a mock.
"""

import json
from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from polypkg.cli.main import app
from polypkg.core.config import EngineConfig
from polypkg.core.errors import AuthorizationCancelled, CommandUnsuccessful
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.models.repository import Repository
from polypkg.models.stream import StreamLine, StreamResult
from polypkg.utils.streaming import LineChannel
from typer.testing import CliRunner

runner = CliRunner()

FIREFOX = Package(name="firefox", source=PackageSource.APT, version="128.0")
VIM_UPDATE = Package(
    name="vim",
    source=PackageSource.APT,
    version="9.0",
    status=PackageStatus.UPDATE_AVAILABLE,
    available_version="9.1",
)


@pytest.fixture
def manager() -> Iterator[MagicMock]:
    """Patch the CLI's PackageManager with APT and Flatpak available."""
    with (
        patch("polypkg.cli.types.load_config", return_value=EngineConfig()),
        patch("polypkg.cli.types.PackageManager") as mock_cls,
    ):
        instance = mock_cls.return_value
        instance.available_sources.return_value = [PackageSource.APT, PackageSource.FLATPAK]
        instance.enabled_sources.return_value = [PackageSource.APT, PackageSource.FLATPAK]
        for method in (
            "list_all_installed",
            "check_all_updates",
            "search",
            "install",
            "remove",
            "update",
            "list_all_repositories",
            "list_repositories",
            "add_repository",
            "remove_repository",
            "refresh",
        ):
            setattr(instance, method, AsyncMock())
        yield instance


class TestList:
    """Tests for polypkg list command."""

    def test_table(self, manager: MagicMock) -> None:
        """Installed packages are shown with a summary."""
        manager.list_all_installed.return_value = [FIREFOX]

        result = runner.invoke(app, ["list"])

        assert result.exit_code == 0
        assert "firefox" in result.output
        assert "Showing 1 of 1 packages" in result.output

    def test_count(self, manager: MagicMock) -> None:
        """--count prints totals per source."""
        manager.list_all_installed.return_value = [FIREFOX, VIM_UPDATE]

        result = runner.invoke(app, ["list", "--count"])

        assert "Total packages: 2" in result.output
        assert "APT: 2" in result.output

    def test_json(self, manager: MagicMock) -> None:
        """--format json prints package dictionaries."""
        manager.list_all_installed.return_value = [FIREFOX]

        result = runner.invoke(app, ["list", "--format", "json"])

        data = json.loads(result.output)
        assert data[0]["id"] == "apt:firefox"
        assert data[0]["status"] == "installed"

    def test_source_narrows(self, manager: MagicMock) -> None:
        """--source enables only that source."""
        manager.list_all_installed.return_value = []

        runner.invoke(app, ["list", "--source", "flatpak"])

        manager.set_enabled_sources.assert_called_once_with([PackageSource.FLATPAK])

    def test_unavailable_source(self, manager: MagicMock) -> None:
        """Selecting a source that is not installed exits with an error."""
        result = runner.invoke(app, ["list", "--source", "snap"])

        assert result.exit_code == 1
        assert "Snap is not available on this system." in result.output

    def test_no_sources(self, manager: MagicMock) -> None:
        """A system without package managers exits with an error."""
        manager.enabled_sources.return_value = []

        result = runner.invoke(app, ["list"])

        assert result.exit_code == 1
        assert "No package managers are available" in result.output


class TestUpdates:
    """Tests for polypkg updates command."""

    def test_up_to_date(self, manager: MagicMock) -> None:
        """An empty result prints a success message."""
        manager.check_all_updates.return_value = []

        result = runner.invoke(app, ["updates"])

        assert result.exit_code == 0
        assert "All packages are up to date." in result.output

    def test_updates_shown(self, manager: MagicMock) -> None:
        """Pending updates are listed with a count."""
        manager.check_all_updates.return_value = [VIM_UPDATE]

        result = runner.invoke(app, ["updates"])

        assert "vim" in result.output
        assert "1 updates available" in result.output

    def test_json(self, manager: MagicMock) -> None:
        """--json includes the available version."""
        manager.check_all_updates.return_value = [VIM_UPDATE]

        result = runner.invoke(app, ["updates", "--json"])

        assert json.loads(result.output)[0]["available_version"] == "9.1"


class TestSearch:
    """Tests for polypkg search command."""

    def test_no_results(self, manager: MagicMock) -> None:
        """An empty search says so."""
        manager.search.return_value = []

        result = runner.invoke(app, ["search", "nothing"])

        assert result.exit_code == 0
        assert "No packages found for 'nothing'." in result.output
        manager.search.assert_awaited_once_with("nothing")

    def test_results(self, manager: MagicMock) -> None:
        """Results are shown in a table."""
        manager.search.return_value = [FIREFOX]

        result = runner.invoke(app, ["search", "fire"])

        assert "firefox" in result.output


class TestPackageActions:
    """Tests for polypkg install, remove and update commands."""

    def test_install(self, manager: MagicMock) -> None:
        """install routes the package to the manager."""
        result = runner.invoke(app, ["install", "vim", "--source", "apt"])

        assert result.exit_code == 0
        assert "Installed vim (APT)" in result.output
        package = manager.install.await_args.args[0]
        assert (package.name, package.source) == ("vim", PackageSource.APT)

    def test_source_required(self, manager: MagicMock) -> None:
        """--source all is rejected."""
        result = runner.invoke(app, ["install", "vim", "--source", "all"])

        assert result.exit_code == 1
        assert "A specific --source is required." in result.output
        manager.install.assert_not_awaited()

    def test_remove_confirmed(self, manager: MagicMock) -> None:
        """remove asks for confirmation."""
        result = runner.invoke(app, ["remove", "vim", "--source", "apt"], input="y\n")

        assert result.exit_code == 0
        assert "Removed vim (APT)" in result.output

    def test_remove_declined(self, manager: MagicMock) -> None:
        """Declining the prompt does nothing."""
        result = runner.invoke(app, ["remove", "vim", "--source", "apt"], input="n\n")

        assert result.exit_code == 0
        manager.remove.assert_not_awaited()

    def test_update(self, manager: MagicMock) -> None:
        """update runs without a prompt."""
        result = runner.invoke(app, ["update", "firefox", "-s", "flatpak"])

        assert result.exit_code == 0
        assert "Updated firefox (Flatpak)" in result.output

    def test_authorization_cancelled(self, manager: MagicMock) -> None:
        """A dismissed authorization dialog is a warning, not a crash."""
        manager.install.side_effect = AuthorizationCancelled("Authorization was cancelled")

        result = runner.invoke(app, ["install", "vim", "--source", "apt"])

        assert result.exit_code == 1
        assert "Authorization was canceled." in result.output

    def test_failure_shows_suggestion(self, manager: MagicMock) -> None:
        """Command failures print the error and the manual command."""
        manager.remove.side_effect = CommandUnsuccessful(
            "Failed to remove APT package vim",
            suggestion="sudo apt-get remove vim",
        )

        result = runner.invoke(app, ["remove", "vim", "--source", "apt", "--yes"])

        assert result.exit_code == 1
        assert "Failed to remove APT package vim" in result.output
        assert "sudo apt-get remove vim" in result.output


class TestRepos:
    """Tests for polypkg repos commands."""

    def test_list_all(self, manager: MagicMock) -> None:
        """Repositories of every source are listed."""
        manager.list_all_repositories.return_value = [
            Repository(
                name="flathub",
                url="https://dl.flathub.org/repo/",
                enabled=True,
                source=PackageSource.FLATPAK,
            )
        ]

        result = runner.invoke(app, ["repos", "list"])

        assert result.exit_code == 0
        assert "flathub" in result.output

    def test_list_empty(self, manager: MagicMock) -> None:
        """No repositories prints a message."""
        manager.list_repositories.return_value = []

        result = runner.invoke(app, ["repos", "list", "--source", "apt"])

        assert "No repositories found." in result.output
        manager.list_repositories.assert_awaited_once_with(PackageSource.APT)

    def test_add(self, manager: MagicMock) -> None:
        """add passes URL and name through."""
        result = runner.invoke(
            app,
            ["repos", "add", "https://flathub.org/repo", "-s", "flatpak", "-n", "flathub"],
        )

        assert result.exit_code == 0
        manager.add_repository.assert_awaited_once_with(
            PackageSource.FLATPAK, "https://flathub.org/repo", "flathub"
        )

    def test_remove(self, manager: MagicMock) -> None:
        """remove names the repository."""
        result = runner.invoke(app, ["repos", "remove", "ppa:git-core/ppa", "-s", "apt"])

        assert result.exit_code == 0
        assert "Removed repository ppa:git-core/ppa from APT" in result.output


class TestRefresh:
    """Tests for polypkg refresh command."""

    def test_streams_output(self, manager: MagicMock) -> None:
        """Live lines are printed as they arrive."""
        manager.new_channel.return_value = LineChannel(8)

        async def refresh(source: PackageSource, channel: LineChannel) -> StreamResult:
            await channel.send(StreamLine.stdout("Hit:1 http://archive.ubuntu.com noble"))
            await channel.send(StreamLine.stderr("W: some warning"))
            channel.finish()
            return StreamResult(exit_code=0, success=True)

        manager.refresh.side_effect = refresh

        result = runner.invoke(app, ["refresh", "--source", "apt"])

        assert result.exit_code == 0
        assert "Hit:1 http://archive.ubuntu.com noble" in result.output
        assert "W: some warning" in result.output
        assert "APT metadata refreshed" in result.output

    def test_failure(self, manager: MagicMock) -> None:
        """A failed refresh exits non-zero with the exit code."""
        manager.new_channel.return_value = LineChannel(8)

        async def refresh(source: PackageSource, channel: LineChannel) -> StreamResult:
            channel.finish()
            return StreamResult(exit_code=100, success=False)

        manager.refresh.side_effect = refresh

        result = runner.invoke(app, ["refresh", "--source", "apt"])

        assert result.exit_code == 1
        assert "exit code 100" in result.output
