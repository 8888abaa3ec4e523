"""npm global package backend implementation."""

import logging

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.core.errors import CommandUnsuccessful
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.shell import command_exists, quote_command

logger = logging.getLogger(__name__)

_PERMISSION_MARKERS = ("eacces", "permission denied", "eperm")


class NpmBackend(Backend):
    """Backend for globally installed npm packages.

    Global installs write into npm's prefix, which is root-owned on
    distribution Node.js builds. Permission failures therefore suggest
    the same command with sudo.
    """

    @property
    def source(self) -> PackageSource:
        """Return NPM as the package source."""
        return PackageSource.NPM

    @classmethod
    def is_available(cls) -> bool:
        """Check if npm is available."""
        return command_exists("npm")

    async def list_installed(self) -> list[Package]:
        data = await self._query_json(["npm", "list", "-g", "--depth=0", "--json"])
        if not isinstance(data, dict):
            return []

        packages: list[Package] = []
        for name, info in (data.get("dependencies") or {}).items():
            version = info.get("version", "") if isinstance(info, dict) else ""
            packages.append(self._package(name, version))
        return packages

    async def check_updates(self) -> list[Package]:
        """List outdated global packages.

        ``npm outdated`` exits 1 whenever something is outdated.
        """
        data = await self._query_json(["npm", "outdated", "-g", "--json"], ok_codes=(0, 1))
        if not isinstance(data, dict):
            return []

        packages: list[Package] = []
        for name, info in data.items():
            if not isinstance(info, dict) or not info.get("latest"):
                continue
            packages.append(self._update(name, info.get("current", ""), info["latest"]))
        return packages

    async def _npm_mutation(self, args: list[str], name: str, verb: str) -> None:
        """Run an npm mutation, suggesting sudo on permission errors."""
        try:
            await self._mutate(["npm", *args], self._failure(verb, name))
        except CommandUnsuccessful as e:
            lowered = e.stderr.lower()
            if not any(marker in lowered for marker in _PERMISSION_MARKERS):
                raise
            raise CommandUnsuccessful(
                e.message,
                returncode=e.returncode,
                stderr=e.stderr,
                suggestion=quote_command(["sudo", "npm", *args]),
            ) from e

    async def install(self, name: str) -> None:
        await self._npm_mutation(["install", "-g", name], name, "install")

    async def remove(self, name: str) -> None:
        await self._npm_mutation(["uninstall", "-g", name], name, "remove")

    async def update(self, name: str) -> None:
        await self._npm_mutation(["install", "-g", f"{name}@latest"], name, "update")

    async def downgrade_to(self, name: str, version: str) -> None:
        await self._npm_mutation(["install", "-g", f"{name}@{version}"], name, "downgrade")

    async def available_downgrade_versions(self, name: str) -> list[str]:
        """List published versions, newest first."""
        data = await self._query_json(["npm", "view", name, "versions", "--json"])
        if isinstance(data, str):
            return [data]
        if not isinstance(data, list):
            return []
        return [str(version) for version in reversed(data)]

    async def search(self, query: str) -> list[Package]:
        data = await self._query_json(["npm", "search", "--json", "--long", query])
        if not isinstance(data, list):
            return []

        packages: list[Package] = []
        for entry in data[:SEARCH_LIMIT]:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            links = entry.get("links") or {}
            packages.append(
                self._package(
                    entry["name"],
                    entry.get("version", ""),
                    status=PackageStatus.NOT_INSTALLED,
                    description=entry.get("description") or "",
                    homepage=links.get("homepage") or links.get("npm"),
                )
            )
        return packages

    async def get_cache_size(self) -> int:
        result = await self._run(["npm", "config", "get", "cache"])
        cache_dir = result.stdout.strip()
        return await self._directory_size(cache_dir) if result.success and cache_dir else 0

    async def cleanup_cache(self) -> int:
        before = await self.get_cache_size()
        await self._mutate(["npm", "cache", "clean", "--force"], "Failed to clean npm cache")
        return before
