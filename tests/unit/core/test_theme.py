"""Unit tests for theme module.

Tests for theme loading, validation, and Rich theme generation.
"""

# pyright: reportPrivateUsage=false

from pathlib import Path

import pytest
from polypkg.core.theme import (
    ThemeColors,
    _load_toml_colors,
    get_rich_theme,
    get_user_theme_path,
    load_theme,
)
from rich.theme import Theme


class TestThemeColors:
    """Tests for ThemeColors Pydantic model."""

    def test_default_values(self) -> None:
        """ThemeColors has sensible defaults."""
        colors = ThemeColors()
        assert colors.text == "#ffffff"
        assert colors.header == "#69B9A1"
        assert colors.error == "#f53263"

    def test_short_hex_accepted(self) -> None:
        """ThemeColors accepts #RGB codes."""
        assert ThemeColors(muted="#abc").muted == "#abc"

    def test_invalid_hex_no_hash(self) -> None:
        """ThemeColors rejects colors without # prefix."""
        with pytest.raises(ValueError, match="must start with '#'"):
            ThemeColors(text="ffffff")

    def test_invalid_hex_wrong_length(self) -> None:
        """ThemeColors rejects colors with wrong length."""
        with pytest.raises(ValueError, match="must be #RGB or #RRGGBB"):
            ThemeColors(text="#ff")

    def test_invalid_hex_chars(self) -> None:
        """ThemeColors rejects invalid hex characters."""
        with pytest.raises(ValueError, match="invalid hex color"):
            ThemeColors(text="#gggggg")


class TestLoadTheme:
    """Tests for theme file loading."""

    def test_user_theme_path(self, config_home: Path) -> None:
        """User theme lives in the config directory."""
        assert get_user_theme_path() == config_home / "polypkg" / "theme.toml"

    def test_loads_valid_toml(self, tmp_path: Path) -> None:
        """Loads string colors from the colors table."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\ntext = "#000000"\nborder = 3\n')

        assert _load_toml_colors(theme_file) == {"text": "#000000"}

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file yields None."""
        assert _load_toml_colors(tmp_path / "none.toml") is None

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Invalid TOML yields None."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text("[colors")
        assert _load_toml_colors(theme_file) is None

    def test_user_overrides_defaults(self, config_home: Path) -> None:
        """User colors override defaults; the rest keep their defaults."""
        theme_dir = config_home / "polypkg"
        theme_dir.mkdir()
        (theme_dir / "theme.toml").write_text('[colors]\nheader = "#123456"\n')

        colors = load_theme()

        assert colors.header == "#123456"
        assert colors.text == ThemeColors().text

    def test_invalid_user_theme_falls_back(self, config_home: Path) -> None:
        """An invalid user theme falls back to defaults."""
        theme_dir = config_home / "polypkg"
        theme_dir.mkdir()
        (theme_dir / "theme.toml").write_text('[colors]\nheader = "red"\n')

        assert load_theme() == ThemeColors()


class TestGetRichTheme:
    """Tests for Rich theme conversion."""

    def test_contains_styles(self) -> None:
        """Rich theme defines every style the CLI uses."""
        theme = get_rich_theme(ThemeColors())
        assert isinstance(theme, Theme)
        for name in ("header", "installed", "update_available", "bold_header", "dim"):
            assert name in theme.styles
