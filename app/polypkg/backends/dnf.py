"""DNF package backend implementation (Fedora, RHEL and derivatives)."""

import asyncio
import logging

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.backends.locks import DNF_LOCK_FILES, probe_locks
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.models.repository import LockStatus, Repository
from polypkg.utils.shell import C_LOCALE, command_exists

logger = logging.getLogger(__name__)

# dnf check-update exits 100 when updates are available
_UPDATES_PENDING = 100

_CACHE_DIR = "/var/cache/dnf"


class DnfBackend(Backend):
    """Backend for DNF/RPM packages."""

    _QUERY_FORMAT = "%{NAME}|%{VERSION}|%{SUMMARY}\\n"

    @property
    def source(self) -> PackageSource:
        """Return DNF as the package source."""
        return PackageSource.DNF

    @property
    def requires_elevation(self) -> bool:
        return True

    @classmethod
    def is_available(cls) -> bool:
        """Check if dnf is available."""
        return command_exists("dnf")

    async def list_installed(self) -> list[Package]:
        result = await self._query(
            ["dnf", "repoquery", "--installed", "--queryformat", self._QUERY_FORMAT],
            env=C_LOCALE,
        )
        return self._parse_query_output(result.stdout)

    def _parse_query_output(self, output: str) -> list[Package]:
        """Parse 'name|version|summary' lines."""
        packages: list[Package] = []
        for line in output.splitlines():
            parts = line.split("|", 2)
            if len(parts) < 3 or not parts[0].strip():
                if line.strip():
                    logger.debug("Skipping malformed repoquery line: %r", line[:100])
                continue
            packages.append(
                self._package(parts[0].strip(), parts[1].strip(), description=parts[2].strip())
            )
        return packages

    async def check_updates(self) -> list[Package]:
        """List pending updates, filling in installed versions.

        Raises:
            CommandUnsuccessful: If dnf check-update reports an error.
        """
        result, installed = await asyncio.gather(
            self._query(
                ["dnf", "check-update", "--quiet"],
                env=C_LOCALE,
                ok_codes=(0, _UPDATES_PENDING),
            ),
            self.list_installed(),
        )
        versions = {pkg.name: pkg.version for pkg in installed}

        packages: list[Package] = []
        for line in result.lines():
            parts = line.split()
            # "name.arch  version  repo"; section headers end with ':'
            if len(parts) < 3 or parts[0].endswith(":"):
                continue
            name = parts[0].rsplit(".", 1)[0]
            packages.append(self._update(name, versions.get(name, ""), parts[1]))
        return packages

    async def install(self, name: str) -> None:
        await self._mutate_elevated("dnf", ["install", "-y", name], self._failure("install", name))

    async def remove(self, name: str) -> None:
        await self._mutate_elevated("dnf", ["remove", "-y", name], self._failure("remove", name))

    async def update(self, name: str) -> None:
        await self._mutate_elevated("dnf", ["upgrade", "-y", name], self._failure("update", name))

    async def downgrade(self, name: str) -> None:
        """Downgrade to the previous version available in the enabled repositories."""
        await self._mutate_elevated(
            "dnf", ["downgrade", "-y", name], self._failure("downgrade", name)
        )

    async def downgrade_to(self, name: str, version: str) -> None:
        await self._mutate_elevated(
            "dnf", ["downgrade", "-y", f"{name}-{version}"], self._failure("downgrade", name)
        )

    async def search(self, query: str) -> list[Package]:
        result = await self._query(["dnf", "search", "--quiet", query], env=C_LOCALE)

        packages: list[Package] = []
        for line in result.lines():
            # "name.arch : summary"; match headers start with '='
            if line.startswith(("=", " ")):
                continue
            name_arch, sep, summary = line.partition(" : ")
            if not sep:
                continue
            name = name_arch.strip().rsplit(".", 1)[0]
            packages.append(
                self._package(name, status=PackageStatus.NOT_INSTALLED, description=summary.strip())
            )
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages

    async def list_repositories(self) -> list[Repository]:
        """List configured repositories with ``dnf repolist --all``."""
        result = await self._query(["dnf", "repolist", "--all"], env=C_LOCALE)

        repositories: list[Repository] = []
        for line in result.lines():
            parts = line.split()
            if len(parts) < 2 or parts[-1] not in ("enabled", "disabled"):
                continue
            repositories.append(
                Repository(
                    name=parts[0],
                    source=PackageSource.DNF,
                    enabled=parts[-1] == "enabled",
                    description=" ".join(parts[1:-1]) or None,
                )
            )
        return repositories

    async def check_lock_status(self) -> LockStatus:
        return await probe_locks(DNF_LOCK_FILES)

    async def get_reverse_dependencies(self, name: str) -> list[str]:
        result = await self._query(
            [
                "dnf",
                "repoquery",
                "--installed",
                "--whatrequires",
                name,
                "--queryformat",
                "%{NAME}\\n",
            ],
            env=C_LOCALE,
        )
        return [dep for dep in dict.fromkeys(result.lines()) if dep != name]

    async def get_orphaned_packages(self) -> list[Package]:
        result = await self._query(
            ["dnf", "repoquery", "--unneeded", "--queryformat", self._QUERY_FORMAT],
            env=C_LOCALE,
        )
        return self._parse_query_output(result.stdout)

    async def get_cache_size(self) -> int:
        return await self._directory_size(_CACHE_DIR)

    async def cleanup_cache(self) -> int:
        before = await self.get_cache_size()
        await self._mutate_elevated("dnf", ["clean", "packages"], "Failed to clean DNF cache")
        after = await self.get_cache_size()
        return max(before - after, 0)

    def refresh_command(self) -> list[str] | None:
        return ["dnf", "makecache"]
