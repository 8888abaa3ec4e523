"""Homebrew (Linuxbrew) backend implementation."""

import logging

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.shell import command_exists

logger = logging.getLogger(__name__)


class BrewBackend(Backend):
    """Backend for Homebrew formulae and casks."""

    @property
    def source(self) -> PackageSource:
        """Return BREW as the package source."""
        return PackageSource.BREW

    @classmethod
    def is_available(cls) -> bool:
        """Check if brew is available."""
        return command_exists("brew")

    async def list_installed(self) -> list[Package]:
        """List installed formulae; with several kegs the newest version wins."""
        result = await self._query(["brew", "list", "--versions"])

        packages: list[Package] = []
        for line in result.lines():
            parts = line.split()
            if len(parts) < 2:
                logger.debug("Skipping brew line without version: %r", line[:100])
                continue
            packages.append(self._package(parts[0], parts[-1]))
        return packages

    async def check_updates(self) -> list[Package]:
        data = await self._query_json(["brew", "outdated", "--json=v2"])
        if not isinstance(data, dict):
            return []

        packages: list[Package] = []
        for item in [*(data.get("formulae") or []), *(data.get("casks") or [])]:
            if not isinstance(item, dict) or not item.get("current_version"):
                continue
            installed = item.get("installed_versions") or [""]
            packages.append(self._update(item["name"], str(installed[0]), item["current_version"]))
        return packages

    async def install(self, name: str) -> None:
        await self._mutate(["brew", "install", name], self._failure("install", name))

    async def remove(self, name: str) -> None:
        await self._mutate(["brew", "uninstall", name], self._failure("remove", name))

    async def update(self, name: str) -> None:
        await self._mutate(["brew", "upgrade", name], self._failure("update", name))

    async def search(self, query: str) -> list[Package]:
        """Search formula and cask names; brew prints one name per line."""
        result = await self._query(["brew", "search", query], ok_codes=(0, 1))

        packages: list[Package] = []
        for line in result.lines():
            # Section headers look like "==> Formulae"
            if line.startswith("==>"):
                continue
            for name in line.split():
                packages.append(self._package(name, status=PackageStatus.NOT_INSTALLED))
        return packages[:SEARCH_LIMIT]

    async def get_orphaned_packages(self) -> list[Package]:
        """List dependencies ``brew autoremove`` would uninstall."""
        result = await self._query(["brew", "autoremove", "--dry-run"])
        return [
            self._package(line.strip(), description="No longer required")
            for line in result.lines()
            if not line.startswith("==>")
        ]

    async def get_cache_size(self) -> int:
        result = await self._run(["brew", "--cache"])
        cache_dir = result.stdout.strip()
        return await self._directory_size(cache_dir) if result.success and cache_dir else 0

    async def cleanup_cache(self) -> int:
        before = await self.get_cache_size()
        await self._mutate(["brew", "cleanup", "--prune=all"], "Failed to clean Homebrew cache")
        after = await self.get_cache_size()
        return max(before - after, 0)

    def refresh_command(self) -> list[str] | None:
        return ["brew", "update"]
