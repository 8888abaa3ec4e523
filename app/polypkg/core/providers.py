"""Package provider detection.

Reports, for every package source, which tools the source needs, which
of them were found on the PATH and the tool version, so users can see
why a source is missing from the aggregator.
"""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple

from polypkg.backends import backend_class
from polypkg.core.errors import PackageError
from polypkg.models.package import PackageSource
from polypkg.utils.shell import run_command

logger = logging.getLogger(__name__)

# Seconds to wait for a tool's version command
VERSION_TIMEOUT = 5.0


class _Probe(NamedTuple):
    list_commands: tuple[str, ...]
    privileged_commands: tuple[str, ...] = ()
    version_command: tuple[str, ...] | None = None


_PROBES: dict[PackageSource, _Probe] = {
    PackageSource.APT: _Probe(("apt", "dpkg-query"), ("pkexec",), ("apt", "--version")),
    PackageSource.DNF: _Probe(("dnf",), ("pkexec",), ("dnf", "--version")),
    PackageSource.PACMAN: _Probe(("pacman",), ("pkexec",), ("pacman", "-V")),
    PackageSource.ZYPPER: _Probe(("zypper", "rpm"), ("pkexec",), ("zypper", "--version")),
    PackageSource.FLATPAK: _Probe(("flatpak",), (), ("flatpak", "--version")),
    PackageSource.SNAP: _Probe(("snap",), ("pkexec",), ("snap", "version")),
    PackageSource.NPM: _Probe(("npm",), (), ("npm", "--version")),
    PackageSource.PIP: _Probe(("pip3", "pip"), (), ("python3", "--version")),
    PackageSource.PIPX: _Probe(("pipx",), (), ("pipx", "--version")),
    PackageSource.CARGO: _Probe(("cargo",), (), ("cargo", "--version")),
    PackageSource.BREW: _Probe(("brew",), (), ("brew", "--version")),
    PackageSource.AUR: _Probe(("paru", "yay"), ("pkexec",)),
    PackageSource.CONDA: _Probe(("conda",), (), ("conda", "--version")),
    PackageSource.MAMBA: _Probe(("mamba",), (), ("mamba", "--version")),
    PackageSource.DART: _Probe(("dart", "flutter"), (), ("dart", "--version")),
    PackageSource.DEB: _Probe(("dpkg",), ("pkexec",), ("dpkg", "--version")),
    PackageSource.APPIMAGE: _Probe(()),
}


@dataclass(frozen=True, slots=True)
class ProviderStatus:
    """Detection result for one package source.

    Attributes:
        source: The package source.
        display_name: Human-readable source name.
        available: Whether the source's backend can be used.
        list_commands: Tools the source reads packages with.
        privileged_commands: Tools privileged operations go through.
        found_paths: Resolved paths of every tool that was found.
        version: First line of the tool's version output, if any.
        reason: Why the source is unavailable (None when available).
    """

    source: PackageSource
    display_name: str
    available: bool
    list_commands: tuple[str, ...] = ()
    privileged_commands: tuple[str, ...] = ()
    found_paths: tuple[Path, ...] = ()
    version: str | None = None
    reason: str | None = None


def _which_all(commands: tuple[str, ...]) -> list[Path]:
    return [Path(found) for cmd in commands if (found := shutil.which(cmd))]


async def _tool_version(argv: tuple[str, ...] | None) -> str | None:
    """Return the first non-empty line of a version command, or None."""
    if argv is None or shutil.which(argv[0]) is None:
        return None
    try:
        result = await run_command(list(argv), timeout=VERSION_TIMEOUT)
    except PackageError as e:
        logger.debug("Version probe %s failed: %s", argv[0], e)
        return None
    if not result.success:
        return None
    text = result.stdout.strip() or result.stderr.strip()
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return None


async def detect_provider(source: PackageSource) -> ProviderStatus:
    """Probe a single package source.

    Args:
        source: Source to probe.

    Returns:
        ProviderStatus for the source.
    """
    probe = _PROBES[source]
    available = backend_class(source).is_available()
    found = sorted(set(_which_all(probe.list_commands) + _which_all(probe.privileged_commands)))

    reason = None
    if not available:
        missing = [cmd for cmd in probe.list_commands if shutil.which(cmd) is None]
        reason = f"Missing: {', '.join(missing)}" if missing else "Not available on this system"

    return ProviderStatus(
        source=source,
        display_name=source.display_name,
        available=available,
        list_commands=probe.list_commands,
        privileged_commands=probe.privileged_commands,
        found_paths=tuple(found),
        version=await _tool_version(probe.version_command),
        reason=reason,
    )


async def detect_providers() -> list[ProviderStatus]:
    """Probe every package source concurrently.

    Returns:
        One status per source; available sources first, then by name.
    """
    statuses = await asyncio.gather(*(detect_provider(source) for source in PackageSource))
    return sorted(statuses, key=lambda s: (not s.available, s.display_name.lower()))


async def detect_available_providers() -> list[ProviderStatus]:
    """Probe every package source and keep only the available ones."""
    return [status for status in await detect_providers() if status.available]
