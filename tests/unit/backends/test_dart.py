"""Unit tests for Dart pub global backend."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from polypkg.backends.dart import (
    DartBackend,
    fetch_latest_version,
    is_newer_version,
    version_key,
)
from polypkg.core.errors import InvalidPackageName
from polypkg.models.package import PackageSource
from polypkg.utils.shell import CommandResult

GLOBAL_LIST = "Activated packages:\nflutterfire_cli 0.2.7\nmelos 3.4.0\nlocal_tool\n"


class TestVersionComparison:
    """Tests for pub version helpers."""

    def test_version_key(self) -> None:
        """Numeric components are extracted."""
        assert version_key("1.2.3-dev.4+build") == (1, 2, 3, 4)

    @pytest.mark.parametrize(
        ("candidate", "current", "expected"),
        [
            ("0.3.0", "0.2.7", True),
            ("1.0", "1.0.0", False),
            ("1.0.1", "1.0", True),
            ("3.3.0", "3.4.0", False),
        ],
    )
    def test_is_newer_version(self, candidate: str, current: str, expected: bool) -> None:
        """Shorter versions are padded with zeros."""
        assert is_newer_version(candidate, current) is expected


class TestFetchLatestVersion:
    """Tests for the pub.dev lookup."""

    async def test_reads_latest_version(self) -> None:
        """The latest.version field is returned."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/packages/melos"
            return httpx.Response(200, json={"name": "melos", "latest": {"version": "6.1.0"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            assert await fetch_latest_version(client, "melos") == "6.1.0"

    async def test_unknown_package(self) -> None:
        """A 404 yields None."""
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        async with httpx.AsyncClient(transport=transport) as client:
            assert await fetch_latest_version(client, "nope") is None


@patch("polypkg.backends.dart.command_exists", return_value=True)
class TestDartBackend:
    """Tests for DartBackend class."""

    def test_source(self, _exists: MagicMock) -> None:
        """Backend reports dart as source."""
        assert DartBackend().source == PackageSource.DART
        assert DartBackend.executable() == "dart"

    @patch("polypkg.backends.base.run_command")
    async def test_list_installed(self, mock_run: MagicMock, _exists: MagicMock) -> None:
        """Activated packages are listed; the header is skipped."""
        mock_run.return_value = CommandResult(GLOBAL_LIST, "", 0)

        packages = await DartBackend().list_installed()

        assert [(p.name, p.version) for p in packages] == [
            ("flutterfire_cli", "0.2.7"),
            ("melos", "3.4.0"),
            ("local_tool", ""),
        ]
        assert mock_run.call_args.args[0] == ["dart", "pub", "global", "list"]

    @patch("polypkg.backends.dart.fetch_latest_version", new_callable=AsyncMock)
    @patch("polypkg.backends.base.run_command")
    async def test_check_updates(
        self, mock_run: MagicMock, mock_fetch: AsyncMock, _exists: MagicMock
    ) -> None:
        """Newer pub.dev versions are updates; lookup failures are skipped."""
        mock_run.return_value = CommandResult(GLOBAL_LIST, "", 0)
        latest = {"flutterfire_cli": "1.0.0", "melos": httpx.ConnectError("offline")}

        async def fetch(client: httpx.AsyncClient, name: str) -> str | None:
            value = latest[name]
            if isinstance(value, Exception):
                raise value
            return value

        mock_fetch.side_effect = fetch

        updates = await DartBackend().check_updates()

        assert [(u.name, u.version, u.available_version) for u in updates] == [
            ("flutterfire_cli", "0.2.7", "1.0.0")
        ]
        assert mock_fetch.call_count == 2

    @patch("polypkg.backends.base.run_command")
    async def test_downgrade_requires_version(
        self, mock_run: MagicMock, _exists: MagicMock
    ) -> None:
        """downgrade_to refuses an empty version."""
        with pytest.raises(InvalidPackageName, match="a version is required"):
            await DartBackend().downgrade_to("melos", " ")
        mock_run.assert_not_called()

    @patch("polypkg.backends.base.run_command")
    async def test_downgrade_to(self, mock_run: MagicMock, _exists: MagicMock) -> None:
        """downgrade_to activates the given version."""
        mock_run.return_value = CommandResult("", "", 0)
        await DartBackend().downgrade_to("melos", "3.0.0")
        assert mock_run.call_args.args[0] == [
            "dart",
            "pub",
            "global",
            "activate",
            "melos",
            "3.0.0",
        ]

    @patch("polypkg.backends.base.run_command")
    async def test_search_unsupported_sdk(self, mock_run: MagicMock, _exists: MagicMock) -> None:
        """An SDK without pub search yields no results."""
        mock_run.return_value = CommandResult("", 'Could not find a command named "search".', 64)
        assert await DartBackend().search("melos") == []
