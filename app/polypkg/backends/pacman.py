"""Pacman package backend implementation (Arch Linux and derivatives).

Installed packages are read from ``pacman -Qi`` info blocks, which carry
sizes, URLs, licenses and the reverse dependency list.
"""

import logging

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.backends.locks import PACMAN_LOCK_FILES, probe_locks
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.models.repository import LockStatus
from polypkg.utils.shell import C_LOCALE, command_exists
from polypkg.utils.sizes import parse_human_size

logger = logging.getLogger(__name__)

_CACHE_DIR = "/var/cache/pacman/pkg"

# checkupdates exits 2 when there is nothing to update
_NO_UPDATES = 2


def parse_info_blocks(output: str) -> list[dict[str, str]]:
    """Split ``pacman -Qi`` output into one field mapping per package.

    Continuation lines (indented, no key) are appended to the previous
    field's value.
    """
    blocks: list[dict[str, str]] = []
    current: dict[str, str] = {}
    last_key: str | None = None

    for line in output.splitlines():
        if not line.strip():
            if current:
                blocks.append(current)
            current, last_key = {}, None
            continue

        key, sep, value = line.partition(" : ")
        if sep and not line.startswith(" "):
            last_key = key.strip()
            current[last_key] = value.strip()
        elif last_key is not None:
            current[last_key] = f"{current[last_key]} {line.strip()}"

    if current:
        blocks.append(current)
    return blocks


def _field_list(value: str | None) -> tuple[str, ...]:
    """Split a whitespace list field, treating 'None' as empty."""
    if not value or value == "None":
        return ()
    return tuple(value.split())


class PacmanBackend(Backend):
    """Backend for pacman packages."""

    @property
    def source(self) -> PackageSource:
        """Return PACMAN as the package source."""
        return PackageSource.PACMAN

    @property
    def requires_elevation(self) -> bool:
        return True

    @classmethod
    def is_available(cls) -> bool:
        """Check if pacman is available."""
        return command_exists("pacman")

    async def list_installed(self) -> list[Package]:
        result = await self._query(["pacman", "-Qi"], env=C_LOCALE)

        packages: list[Package] = []
        for block in parse_info_blocks(result.stdout):
            package = self._package_from_block(block)
            if package is not None:
                packages.append(package)
        return packages

    def _package_from_block(self, block: dict[str, str]) -> Package | None:
        """Build a Package from one -Qi info block."""
        name = block.get("Name", "")
        if not name:
            logger.debug("Skipping pacman info block without name")
            return None

        return self._package(
            name,
            block.get("Version", ""),
            description=block.get("Description", ""),
            size=parse_human_size(block.get("Installed Size", "")),
            homepage=block.get("URL") or None,
            license=block.get("Licenses") or None,
            maintainer=block.get("Packager") or None,
            dependencies=_field_list(block.get("Depends On")),
            install_date=block.get("Install Date") or None,
        )

    async def check_updates(self) -> list[Package]:
        """List updates with checkupdates, falling back to ``pacman -Qu``.

        checkupdates works on a temporary database copy, so it sees new
        versions without a system-wide sync.
        """
        if command_exists("checkupdates"):
            result = await self._query(["checkupdates"], ok_codes=(0, _NO_UPDATES))
        else:
            # -Qu exits 1 when nothing is upgradable
            result = await self._query(["pacman", "-Qu"], env=C_LOCALE, ok_codes=(0, 1))

        packages: list[Package] = []
        for line in result.lines():
            # "name old-version -> new-version"
            parts = line.split()
            if len(parts) < 4 or parts[2] != "->":
                logger.debug("Skipping malformed update line: %r", line[:100])
                continue
            packages.append(self._update(parts[0], parts[1], parts[3]))
        return packages

    async def install(self, name: str) -> None:
        await self._mutate_elevated(
            "pacman", ["-S", "--noconfirm", "--", name], self._failure("install", name)
        )

    async def remove(self, name: str) -> None:
        await self._mutate_elevated(
            "pacman", ["-Rs", "--noconfirm", "--", name], self._failure("remove", name)
        )

    async def update(self, name: str) -> None:
        await self._mutate_elevated(
            "pacman", ["-S", "--noconfirm", "--", name], self._failure("update", name)
        )

    async def search(self, query: str) -> list[Package]:
        """Search the sync databases.

        Output alternates a 'repo/name version [installed]' line with an
        indented description line.
        """
        # -Ss exits 1 when nothing matches
        result = await self._query(["pacman", "-Ss", "--", query], env=C_LOCALE, ok_codes=(0, 1))

        packages: list[Package] = []
        lines = result.stdout.splitlines()
        for index, line in enumerate(lines):
            if not line or line.startswith(" "):
                continue
            repo_name, _, rest = line.partition(" ")
            _, slash, name = repo_name.partition("/")
            if not slash or not name:
                continue

            fields = rest.split()
            version = fields[0] if fields else ""
            installed = "[installed" in rest
            status = PackageStatus.INSTALLED if installed else PackageStatus.NOT_INSTALLED
            following = lines[index + 1] if index + 1 < len(lines) else ""
            description = following.strip() if following.startswith(" ") else ""

            packages.append(self._package(name, version, status=status, description=description))
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages

    async def check_lock_status(self) -> LockStatus:
        return await probe_locks(PACMAN_LOCK_FILES)

    async def get_reverse_dependencies(self, name: str) -> list[str]:
        """Read the 'Required By' field of the package's info block."""
        result = await self._query(["pacman", "-Qi", "--", name], env=C_LOCALE)
        for block in parse_info_blocks(result.stdout):
            return [dep for dep in _field_list(block.get("Required By")) if dep != name]
        return []

    async def get_orphaned_packages(self) -> list[Package]:
        """List dependencies no longer required by any package."""
        # -Qtdq exits 1 when there are no orphans
        result = await self._query(["pacman", "-Qtdq"], ok_codes=(0, 1))
        return [
            self._package(name.strip(), description=f"Orphaned package: {name.strip()}")
            for name in result.lines()
        ]

    async def get_cache_size(self) -> int:
        return await self._directory_size(_CACHE_DIR)

    async def cleanup_cache(self) -> int:
        """Prune the package cache, keeping one version with paccache when present."""
        before = await self.get_cache_size()
        if command_exists("paccache"):
            await self._mutate_elevated("paccache", ["-rk1"], "Failed to clean pacman cache")
        else:
            await self._mutate_elevated(
                "pacman", ["-Sc", "--noconfirm"], "Failed to clean pacman cache"
            )
        after = await self.get_cache_size()
        return max(before - after, 0)

    def refresh_command(self) -> list[str] | None:
        return ["pacman", "-Sy"]
