"""Conda and Mamba backend implementations.

Both manage the ``base`` environment through the same JSON interface;
mamba is a drop-in reimplementation of conda's CLI.
"""

import asyncio
import logging

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.shell import command_exists

logger = logging.getLogger(__name__)

_ENV = ["-n", "base"]


class CondaBackend(Backend):
    """Backend for packages in the conda base environment."""

    executable = "conda"

    @property
    def source(self) -> PackageSource:
        """Return CONDA as the package source."""
        return PackageSource.CONDA

    @classmethod
    def is_available(cls) -> bool:
        """Check if the executable is available."""
        return command_exists(cls.executable)

    async def list_installed(self) -> list[Package]:
        data = await self._query_json([self.executable, "list", *_ENV, "--json"])
        if not isinstance(data, list):
            return []
        return [
            self._package(
                item["name"],
                str(item.get("version", "")),
                description=f"channel: {item['channel']}" if item.get("channel") else "",
            )
            for item in data
            if isinstance(item, dict) and item.get("name")
        ]

    async def check_updates(self) -> list[Package]:
        """Dry-run a full update and report the packages it would relink."""
        data, installed = await asyncio.gather(
            self._query_json([self.executable, "update", *_ENV, "--all", "--dry-run", "--json"]),
            self.list_installed(),
        )
        if not isinstance(data, dict):
            return []
        versions = {pkg.name: pkg.version for pkg in installed}

        packages: list[Package] = []
        for item in (data.get("actions") or {}).get("LINK") or []:
            if not isinstance(item, dict):
                continue
            name = item.get("name", "")
            new_version = str(item.get("version", ""))
            current = versions.get(name)
            # Only installed packages changing version are updates
            if current is not None and new_version and new_version != current:
                packages.append(self._update(name, current, new_version))
        return packages

    async def install(self, name: str) -> None:
        await self._mutate(
            [self.executable, "install", *_ENV, "-y", name], self._failure("install", name)
        )

    async def remove(self, name: str) -> None:
        await self._mutate(
            [self.executable, "remove", *_ENV, "-y", name], self._failure("remove", name)
        )

    async def update(self, name: str) -> None:
        await self._mutate(
            [self.executable, "update", *_ENV, "-y", name], self._failure("update", name)
        )

    async def downgrade_to(self, name: str, version: str) -> None:
        await self._mutate(
            [self.executable, "install", *_ENV, "-y", f"{name}={version}"],
            self._failure("downgrade", name),
        )

    async def available_downgrade_versions(self, name: str) -> list[str]:
        """List versions on the configured channels, newest first."""
        data = await self._query_json([self.executable, "search", "--json", name])
        entries = data.get(name) if isinstance(data, dict) else None
        if not isinstance(entries, list):
            return []
        versions = dict.fromkeys(
            str(entry["version"])
            for entry in entries
            if isinstance(entry, dict) and entry.get("version")
        )
        return list(reversed(versions))

    async def search(self, query: str) -> list[Package]:
        """Search channels; results group builds by package name."""
        data = await self._query_json(
            [self.executable, "search", "--json", f"*{query}*"], ok_codes=(0, 1)
        )
        if not isinstance(data, dict):
            return []

        packages: list[Package] = []
        for name, builds in data.items():
            if not isinstance(builds, list) or not builds:
                continue
            latest = builds[-1] if isinstance(builds[-1], dict) else {}
            packages.append(
                self._package(
                    name,
                    str(latest.get("version", "")),
                    status=PackageStatus.NOT_INSTALLED,
                    license=latest.get("license"),
                )
            )
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages

    async def cleanup_cache(self) -> int:
        """Remove unused package tarballs and caches."""
        data = await self._query_json([self.executable, "clean", "--all", "-y", "--json"])
        if not isinstance(data, dict):
            return 0
        freed = 0
        for section in data.values():
            if isinstance(section, dict) and isinstance(section.get("total_size"), int):
                freed += section["total_size"]
        return freed


class MambaBackend(CondaBackend):
    """Backend for packages in the mamba base environment."""

    executable = "mamba"

    @property
    def source(self) -> PackageSource:
        """Return MAMBA as the package source."""
        return PackageSource.MAMBA
