"""Human-readable size parsing and formatting."""

import re

# Sizes like "1.2 GB", "500 MB", "100 kB", "12.3 MiB", "0 bytes"
_SIZE_PATTERN = re.compile(r"^\s*([\d.]+)\s*([a-z]+)\s*$", re.IGNORECASE)

# Size multipliers for converting to bytes (binary, as the tools report)
_SIZE_MULTIPLIERS: dict[str, int] = {
    "b": 1,
    "bytes": 1,
    "kb": 1024,
    "kib": 1024,
    "mb": 1024**2,
    "mib": 1024**2,
    "gb": 1024**3,
    "gib": 1024**3,
    "tb": 1024**4,
    "tib": 1024**4,
}


def parse_human_size(size_str: str) -> int | None:
    """Parse a human-readable size string to bytes.

    Args:
        size_str: Size string like "1.2 GB", "500 MB", "100 KiB".

    Returns:
        Size in bytes, or None if parsing fails.
    """
    if not size_str:
        return None

    # Some tools put a non-breaking space between number and unit
    match = _SIZE_PATTERN.match(size_str.replace("\xa0", " "))
    if not match:
        return None

    multiplier = _SIZE_MULTIPLIERS.get(match.group(2).lower())
    if multiplier is None:
        return None

    try:
        return int(float(match.group(1)) * multiplier)
    except (ValueError, OverflowError):
        return None


def format_size(size_bytes: int | None) -> str:
    """Format a byte count with binary units.

    Args:
        size_bytes: Size in bytes, or None if unknown.

    Returns:
        String like "1.5 MiB", or "unknown".
    """
    if size_bytes is None:
        return "unknown"

    if size_bytes < 1024:
        return f"{size_bytes} B"

    size = float(size_bytes)
    for unit in ("KiB", "MiB", "GiB"):
        size /= 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} TiB"
