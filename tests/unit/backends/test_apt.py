"""Unit tests for APT backend.

Tests for AptBackend class with mocked subprocess calls.
"""

from unittest.mock import MagicMock, patch

import pytest
from polypkg.backends.apt import AptBackend
from polypkg.core.errors import CommandUnsuccessful
from polypkg.models.package import PackageSource, PackageStatus
from polypkg.utils.shell import CommandResult


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


class TestAptBackend:
    """Tests for AptBackend class."""

    def test_source_is_apt(self) -> None:
        """Backend reports APT as source."""
        backend = AptBackend()
        assert backend.source == PackageSource.APT
        assert backend.requires_elevation

    def test_is_available_when_apt_exists(self) -> None:
        """is_available returns True when both tools exist."""
        with patch("polypkg.backends.apt.command_exists", return_value=True):
            assert AptBackend.is_available() is True

    def test_is_available_when_apt_missing(self) -> None:
        """is_available returns False when apt doesn't exist."""
        with patch("polypkg.backends.apt.command_exists", return_value=False):
            assert AptBackend.is_available() is False

    def test_refresh_command(self) -> None:
        """Metadata refresh runs apt-get update."""
        assert AptBackend().refresh_command() == ["apt-get", "update"]


class TestAptListing:
    """Tests for installed package listing and update checks."""

    @patch("polypkg.backends.base.run_command")
    async def test_list_installed(self, mock_run: MagicMock, mock_dpkg_output: str) -> None:
        """list_installed parses dpkg-query output."""
        mock_run.return_value = _ok(mock_dpkg_output)

        packages = await AptBackend().list_installed()

        assert len(packages) == 5
        firefox = packages[0]
        assert firefox.name == "firefox"
        assert firefox.version == "128.0"
        assert firefox.size == 204800 * 1024
        assert firefox.description == "Mozilla Firefox web browser"
        assert firefox.status == PackageStatus.INSTALLED

    @patch("polypkg.backends.base.run_command")
    async def test_list_installed_malformed(
        self, mock_run: MagicMock, mock_malformed_output: str
    ) -> None:
        """Malformed lines are skipped."""
        mock_run.return_value = _ok(mock_malformed_output)
        assert await AptBackend().list_installed() == []

    @patch("polypkg.backends.base.run_command")
    async def test_list_installed_failure(self, mock_run: MagicMock) -> None:
        """A failing dpkg-query raises CommandUnsuccessful."""
        mock_run.return_value = CommandResult(stdout="", stderr="dpkg broke", returncode=2)
        with pytest.raises(CommandUnsuccessful, match="dpkg broke"):
            await AptBackend().list_installed()

    @patch("polypkg.backends.base.run_command")
    async def test_check_updates(
        self, mock_run: MagicMock, mock_apt_upgradable_output: str
    ) -> None:
        """check_updates parses apt list --upgradable."""
        mock_run.return_value = _ok(mock_apt_upgradable_output)

        updates = await AptBackend().check_updates()

        assert [u.name for u in updates] == ["firefox", "curl"]
        assert updates[0].version == "128.0+build2-0ubuntu1"
        assert updates[0].available_version == "129.0+build1-0ubuntu1"
        assert all(u.status == PackageStatus.UPDATE_AVAILABLE for u in updates)
        assert mock_run.call_args.kwargs["env"]["LC_ALL"] == "C.UTF-8"

    @patch("polypkg.backends.base.run_command")
    async def test_check_updates_empty(self, mock_run: MagicMock) -> None:
        """Only the listing header means no updates."""
        mock_run.return_value = _ok("Listing... Done\n")
        assert await AptBackend().check_updates() == []


class TestAptMutations:
    """Tests for privileged APT operations."""

    @patch("polypkg.backends.base.run_elevated")
    async def test_install(self, mock_elevated: MagicMock) -> None:
        """install runs apt through the launcher with a sudo suggestion."""
        mock_elevated.return_value = _ok()

        await AptBackend(elevation="doas").install("vim")

        args = mock_elevated.call_args
        assert args.args == ("apt", ["install", "-y", "vim"])
        assert args.kwargs["suggest"] == "sudo apt install -y vim"
        assert args.kwargs["elevation"] == "doas"
        assert args.kwargs["context"] == "Failed to install APT package vim"

    @patch("polypkg.backends.base.run_elevated")
    async def test_update_only_upgrades(self, mock_elevated: MagicMock) -> None:
        """update never installs a missing package."""
        mock_elevated.return_value = _ok()
        await AptBackend().update("curl")
        assert mock_elevated.call_args.args[1] == ["install", "--only-upgrade", "-y", "curl"]

    @patch("polypkg.backends.base.run_elevated")
    async def test_downgrade_to(self, mock_elevated: MagicMock) -> None:
        """downgrade_to pins the requested version."""
        mock_elevated.return_value = _ok()
        await AptBackend().downgrade_to("vim", "2:8.2")
        assert mock_elevated.call_args.args == (
            "apt-get",
            ["install", "-y", "--allow-downgrades", "vim=2:8.2"],
        )

    @patch("polypkg.backends.base.run_elevated")
    async def test_failure_propagates(self, mock_elevated: MagicMock) -> None:
        """Launcher errors propagate with their suggestion."""
        mock_elevated.side_effect = CommandUnsuccessful("Failed", suggestion="sudo apt remove -y x")
        with pytest.raises(CommandUnsuccessful) as exc_info:
            await AptBackend().remove("x")
        assert exc_info.value.suggestion == "sudo apt remove -y x"


class TestAptQueries:
    """Tests for search and optional capabilities."""

    @patch("polypkg.backends.base.run_command")
    async def test_search(self, mock_run: MagicMock) -> None:
        """search parses 'name - description' lines."""
        mock_run.return_value = _ok(
            "vim - Vi IMproved - enhanced vi editor\nbroken line\nvim-gtk3 - GTK3 GUI\n"
        )

        results = await AptBackend().search("vim")

        assert [p.name for p in results] == ["vim", "vim-gtk3"]
        assert results[0].description == "Vi IMproved - enhanced vi editor"
        assert results[0].status == PackageStatus.NOT_INSTALLED
        assert mock_run.call_args.args[0] == ["apt-cache", "search", "--", "vim"]

    @patch("polypkg.backends.base.run_command")
    async def test_search_limit(self, mock_run: MagicMock) -> None:
        """search returns at most 50 results."""
        mock_run.return_value = _ok("\n".join(f"pkg{i} - d" for i in range(80)))
        assert len(await AptBackend().search("pkg")) == 50

    @patch("polypkg.backends.base.run_command")
    async def test_available_downgrade_versions(self, mock_run: MagicMock) -> None:
        """Madison versions exclude the installed one."""
        mock_run.side_effect = [
            _ok("2:9.0-1"),
            _ok(
                "vim | 2:9.0-1 | http://archive jammy-updates/main amd64 Packages\n"
                "vim | 2:8.2-3 | http://archive jammy/main amd64 Packages\n"
                "vim | 2:8.2-3 | http://archive jammy/main Sources\n"
            ),
        ]

        assert await AptBackend().available_downgrade_versions("vim") == ["2:8.2-3"]

    @patch("polypkg.backends.base.run_command")
    async def test_changelog_missing(self, mock_run: MagicMock) -> None:
        """A failing changelog fetch yields None."""
        mock_run.return_value = CommandResult(stdout="", stderr="E: failed", returncode=100)
        assert await AptBackend().get_changelog("vim") is None

    @patch("polypkg.backends.base.run_command")
    async def test_reverse_dependencies(self, mock_run: MagicMock) -> None:
        """rdepends output is parsed after the header."""
        mock_run.return_value = _ok(
            "libc6\nReverse Depends:\n  bash\n |coreutils\n  bash\n  libc6\n"
        )
        assert await AptBackend().get_reverse_dependencies("libc6") == ["bash", "coreutils"]

    @patch("polypkg.backends.base.run_command")
    async def test_orphaned_packages(self, mock_run: MagicMock) -> None:
        """Remv lines of the autoremove dry run are orphans."""
        mock_run.return_value = _ok(
            "Reading package lists...\nRemv libfoo1 [1.2-3]\nRemv libbar2\n"
        )

        orphans = await AptBackend().get_orphaned_packages()

        assert [(p.name, p.version) for p in orphans] == [("libfoo1", "1.2-3"), ("libbar2", "")]

    @patch("polypkg.backends.base.run_command")
    async def test_package_commands(self, mock_run: MagicMock) -> None:
        """Only files in bin directories are commands."""
        mock_run.return_value = _ok(
            "/.\n/usr/bin/vim.basic\n/usr/share/doc/vim\n/usr/sbin/vimd\n"
        )

        commands = await AptBackend().get_package_commands("vim")

        assert [name for name, _ in commands] == ["vim.basic", "vimd"]
