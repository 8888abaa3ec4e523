"""Dart/Flutter ``pub global`` backend implementation.

Installed packages come from ``pub global list``; update checks ask the
pub.dev API for each package's latest version.
"""

import asyncio
import logging
import re

import httpx

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.core.errors import InvalidPackageName
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.shell import command_exists

logger = logging.getLogger(__name__)

PUB_API_URL = "https://pub.dev/api/packages/{name}"
PUB_TIMEOUT = 10.0


def version_key(version: str) -> tuple[int, ...]:
    """Numeric components of a pub version; non-numeric parts are dropped."""
    return tuple(int(part) for part in re.split(r"[.\-+]", version) if part.isdigit())


def is_newer_version(candidate: str, current: str) -> bool:
    """Return True if candidate sorts strictly after current."""
    new, old = version_key(candidate), version_key(current)
    width = max(len(new), len(old))
    return new + (0,) * (width - len(new)) > old + (0,) * (width - len(old))


class DartBackend(Backend):
    """Backend for globally activated Dart packages."""

    @property
    def source(self) -> PackageSource:
        """Return DART as the package source."""
        return PackageSource.DART

    @classmethod
    def is_available(cls) -> bool:
        """Check if dart or flutter is available."""
        return command_exists("dart") or command_exists("flutter")

    @staticmethod
    def executable() -> str:
        """Prefer the standalone dart SDK over flutter's bundled one."""
        return "dart" if command_exists("dart") else "flutter"

    def _pub(self, *args: str) -> list[str]:
        return [self.executable(), "pub", *args]

    async def list_installed(self) -> list[Package]:
        result = await self._query(self._pub("global", "list"))

        packages: list[Package] = []
        for line in map(str.strip, result.lines()):
            # Some SDKs print an "Activated packages:" header
            if line.endswith(":") or line.startswith("Activated"):
                continue
            parts = line.split()
            packages.append(self._package(parts[0], parts[1] if len(parts) > 1 else ""))
        return packages

    async def check_updates(self) -> list[Package]:
        """Compare activated versions with pub.dev, skipping unknown packages."""
        installed = [pkg for pkg in await self.list_installed() if pkg.version]
        if not installed:
            return []

        async with httpx.AsyncClient(timeout=PUB_TIMEOUT) as client:
            latest = await asyncio.gather(
                *(fetch_latest_version(client, pkg.name) for pkg in installed),
                return_exceptions=True,
            )

        packages: list[Package] = []
        for pkg, result in zip(installed, latest, strict=True):
            if isinstance(result, BaseException):
                logger.debug("Cannot check dart package %s for updates: %s", pkg.name, result)
                continue
            if result and is_newer_version(result, pkg.version):
                packages.append(self._update(pkg.name, pkg.version, result))
        return packages

    async def install(self, name: str) -> None:
        await self._mutate(self._pub("global", "activate", name), self._failure("install", name))

    async def remove(self, name: str) -> None:
        await self._mutate(self._pub("global", "deactivate", name), self._failure("remove", name))

    async def update(self, name: str) -> None:
        """Activating again moves to the newest version."""
        await self._mutate(self._pub("global", "activate", name), self._failure("update", name))

    async def downgrade_to(self, name: str, version: str) -> None:
        if not version.strip():
            raise InvalidPackageName(version, "a version is required")
        await self._mutate(
            self._pub("global", "activate", name, version), self._failure("downgrade", name)
        )

    async def search(self, query: str) -> list[Package]:
        """Search pub.dev; SDKs without ``pub search`` yield no results."""
        result = await self._run(self._pub("search", query))
        if not result.success:
            logger.debug("pub search unavailable: %s", result.error_text("no output"))
            return []

        packages: list[Package] = []
        for line in map(str.strip, result.lines()):
            if line.startswith(("Showing", "Package")):
                continue
            name, _, description = line.partition(" ")
            packages.append(
                self._package(
                    name, status=PackageStatus.NOT_INSTALLED, description=description.strip()
                )
            )
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages


async def fetch_latest_version(client: httpx.AsyncClient, name: str) -> str | None:
    """Return the latest published version of a package on pub.dev."""
    response = await client.get(PUB_API_URL.format(name=name))
    if response.status_code != httpx.codes.OK:
        return None
    latest = response.json().get("latest") or {}
    version = latest.get("version")
    return version if isinstance(version, str) else None
