"""Unit tests for size parsing and formatting."""

import pytest
from polypkg.utils.sizes import format_size, parse_human_size


class TestParseHumanSize:
    """Tests for parse_human_size function."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("0 bytes", 0),
            ("512 B", 512),
            ("100 kB", 100 * 1024),
            ("500 MB", 500 * 1024**2),
            ("1.2 GB", int(1.2 * 1024**3)),
            ("12.3 MiB", int(12.3 * 1024**2)),
            ("2\xa0GiB", 2 * 1024**3),
        ],
    )
    def test_parses(self, text: str, expected: int) -> None:
        """Tool-reported sizes are converted to bytes."""
        assert parse_human_size(text) == expected

    @pytest.mark.parametrize("text", ["", "big", "12 parsecs", "1.2.3 MB"])
    def test_unparseable(self, text: str) -> None:
        """Unparseable sizes yield None."""
        assert parse_human_size(text) is None


class TestFormatSize:
    """Tests for format_size function."""

    @pytest.mark.parametrize(
        ("size", "expected"),
        [
            (None, "unknown"),
            (0, "0 B"),
            (1023, "1023 B"),
            (1536, "1.5 KiB"),
            (5 * 1024**2, "5.0 MiB"),
            (3 * 1024**3, "3.0 GiB"),
            (2 * 1024**4, "2.0 TiB"),
        ],
    )
    def test_formats(self, size: int | None, expected: str) -> None:
        """Byte counts are rendered with binary units."""
        assert format_size(size) == expected
