"""APT sources.list parsing.

Parses one-line-style APT source files into Repository records. The
block-structured deb822 format (``*.sources``) is skipped, not parsed.
"""

import logging
from pathlib import Path

from polypkg.models.package import PackageSource
from polypkg.models.repository import Repository

logger = logging.getLogger(__name__)

APT_ETC_DIR = Path("/etc/apt")

_DIRECTIVES = frozenset({"deb", "deb-src"})

# Option block entries that disable a line
_DISABLED_OPTIONS = frozenset({"enabled=no", "enabled=false"})


def _parse_source_line(line: str, filename: str) -> Repository | None:
    """Parse one sources.list line.

    Args:
        line: Stripped, non-comment line.
        filename: File the line came from, used as the description.

    Returns:
        Repository if the line is a deb/deb-src directive, None otherwise.
    """
    directive, _, rest = line.partition(" ")
    if directive.endswith(":"):
        # deb822 field ("Types: deb"), not a one-line entry
        return None
    if directive not in _DIRECTIVES:
        logger.debug("Skipping unknown sources.list directive: %r", line[:100])
        return None

    rest = rest.strip()
    enabled = True
    if rest.startswith("["):
        end = rest.find("]")
        if end == -1:
            logger.debug("Skipping sources.list line with unclosed options: %r", line[:100])
            return None
        options = rest[1:end].split()
        enabled = not any(option.lower() in _DISABLED_OPTIONS for option in options)
        rest = rest[end + 1 :]

    tokens = rest.split()
    if len(tokens) < 2:
        logger.debug("Skipping sources.list line without URI and suite: %r", line[:100])
        return None

    uri, suite, *components = tokens
    name = " ".join([directive, uri, suite, *components])
    return Repository(
        name=name,
        source=PackageSource.APT,
        enabled=enabled,
        url=uri,
        description=filename,
    )


def parse_sources_list(content: str, filename: str) -> list[Repository]:
    """Parse the contents of a sources.list file.

    Args:
        content: File contents.
        filename: Originating file name.

    Returns:
        One Repository per directive line. Comments and blank lines
        produce none.
    """
    repositories: list[Repository] = []
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        repo = _parse_source_line(line, filename)
        if repo is not None:
            repositories.append(repo)
    return repositories


def load_sources(etc_dir: Path = APT_ETC_DIR) -> list[Repository]:
    """Read sources.list and every sources.list.d/*.list file.

    Unreadable files are logged and skipped.
    """
    files = [etc_dir / "sources.list"]
    parts_dir = etc_dir / "sources.list.d"
    if parts_dir.is_dir():
        files.extend(sorted(parts_dir.glob("*.list")))

    repositories: list[Repository] = []
    for path in files:
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            continue
        repositories.extend(parse_sources_list(content, path.name))
    return repositories
