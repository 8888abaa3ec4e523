"""Unit tests for the sources CLI command."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from polypkg.cli.main import app
from polypkg.core.providers import ProviderStatus
from polypkg.models.package import PackageSource
from typer.testing import CliRunner

runner = CliRunner()

PROVIDERS = [
    ProviderStatus(
        source=PackageSource.APT,
        display_name="APT",
        available=True,
        list_commands=("dpkg-query", "apt"),
        found_paths=(Path("/usr/bin/dpkg-query"), Path("/usr/bin/apt")),
        version="apt 2.7.14 (amd64)",
    ),
    ProviderStatus(
        source=PackageSource.FLATPAK,
        display_name="Flatpak",
        available=True,
        found_paths=(Path("/usr/bin/flatpak"),),
        version="Flatpak 1.14.6",
    ),
    ProviderStatus(
        source=PackageSource.SNAP,
        display_name="Snap",
        available=False,
        reason="snap not found in PATH",
    ),
]


@pytest.fixture
def providers():
    with patch(
        "polypkg.cli.commands.sources.detect_providers",
        new_callable=AsyncMock,
        return_value=PROVIDERS,
    ) as mock_detect:
        yield mock_detect


class TestSources:
    """Tests for polypkg sources command."""

    def test_table(self, config_home: Path, providers: AsyncMock) -> None:
        """Every source is listed with its version."""
        result = runner.invoke(app, ["sources"])

        assert result.exit_code == 0
        assert "1.14.6" in result.output
        assert "found" in result.output
        assert "Disabled in config" not in result.output

    def test_disabled_note(self, config_home: Path, providers: AsyncMock) -> None:
        """Available sources turned off in the config are called out."""
        path = config_home / "polypkg" / "config.toml"
        path.parent.mkdir(parents=True)
        path.write_text('enabled_sources = ["apt"]\n')

        result = runner.invoke(app, ["sources"])

        assert "Disabled in config: Flatpak" in result.output

    def test_json(self, config_home: Path, providers: AsyncMock) -> None:
        """--json reports availability and enablement."""
        result = runner.invoke(app, ["sources", "--json"])

        data = json.loads(result.output)
        assert [entry["source"] for entry in data] == ["apt", "flatpak", "snap"]
        assert data[0]["found_paths"] == ["/usr/bin/dpkg-query", "/usr/bin/apt"]
        assert data[2]["available"] is False
        assert data[2]["enabled"] is True
