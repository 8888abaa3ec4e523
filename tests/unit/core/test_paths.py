"""Unit tests for XDG path management."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from polypkg.core.paths import (
    APP_NAME,
    ensure_config_dir,
    get_config_dir,
    get_config_path,
)


class TestGetConfigDir:
    """Tests for get_config_dir function."""

    def test_default_path(self) -> None:
        """Config dir defaults to ~/.config/polypkg."""
        env = {k: v for k, v in os.environ.items() if k != "XDG_CONFIG_HOME"}
        with patch.dict(os.environ, env, clear=True):
            assert get_config_dir() == Path.home() / ".config" / APP_NAME

    def test_respects_xdg_config_home(self, tmp_path: Path) -> None:
        """Config dir respects XDG_CONFIG_HOME."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            assert get_config_dir() == tmp_path / APP_NAME

    def test_empty_xdg_value_falls_back(self) -> None:
        """An empty XDG_CONFIG_HOME is ignored."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": ""}):
            assert get_config_dir() == Path.home() / ".config" / APP_NAME

    def test_config_path(self, config_home: Path) -> None:
        """Config file lives in the config dir."""
        assert get_config_path() == config_home / APP_NAME / "config.toml"


class TestEnsureConfigDir:
    """Tests for ensure_config_dir function."""

    def test_creates_directory(self, config_home: Path) -> None:
        """ensure_config_dir creates missing directories."""
        path = ensure_config_dir()
        assert path.is_dir()
        assert path == config_home / APP_NAME

    def test_idempotent(self, config_home: Path) -> None:
        """ensure_config_dir succeeds when the directory exists."""
        ensure_config_dir()
        assert ensure_config_dir().is_dir()

    def test_permission_error(self, config_home: Path) -> None:
        """Permission failures become RuntimeError."""
        with (
            patch.object(Path, "mkdir", side_effect=PermissionError("denied")),
            pytest.raises(RuntimeError, match="Permission denied"),
        ):
            ensure_config_dir()
