"""APT package backend implementation.

Lists installed packages with dpkg-query, checks updates with
``apt list --upgradable`` and mutates through the elevation launcher.
Repository management covers the one-line sources.list format.
"""

import logging
from pathlib import Path

from polypkg.backends.apt_sources import load_sources
from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.backends.locks import APT_LOCK_FILES, probe_locks
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.models.repository import LockStatus, Repository
from polypkg.utils.shell import C_LOCALE, command_exists

logger = logging.getLogger(__name__)

_ARCHIVE_CACHE = "/var/cache/apt/archives"

# Directories whose files count as commands a package provides
_BIN_DIRS = frozenset({"/bin", "/sbin", "/usr/bin", "/usr/sbin", "/usr/games", "/usr/local/bin"})


class AptBackend(Backend):
    """Backend for APT/dpkg packages (Debian, Ubuntu and derivatives)."""

    # dpkg-query format string: Package, Version, Installed-Size (KB), Summary
    _DPKG_FORMAT = "${Package}\\t${Version}\\t${Installed-Size}\\t${binary:Summary}\\n"

    @property
    def source(self) -> PackageSource:
        """Return APT as the package source."""
        return PackageSource.APT

    @property
    def requires_elevation(self) -> bool:
        return True

    @classmethod
    def is_available(cls) -> bool:
        """Check if apt and dpkg-query are available."""
        return command_exists("apt") and command_exists("dpkg-query")

    async def list_installed(self) -> list[Package]:
        """List all installed dpkg packages.

        Raises:
            CommandUnsuccessful: If dpkg-query fails.
        """
        result = await self._query(["dpkg-query", "-W", f"--showformat={self._DPKG_FORMAT}"])

        packages: list[Package] = []
        for line in result.lines():
            package = self._parse_dpkg_line(line)
            if package is not None:
                packages.append(package)
        return packages

    def _parse_dpkg_line(self, line: str) -> Package | None:
        """Parse a single line of dpkg-query output.

        Args:
            line: Tab-separated line from dpkg-query.

        Returns:
            Package if parsing succeeds, None otherwise.
        """
        parts = line.split("\t")
        if len(parts) < 2:
            logger.debug("Skipping malformed dpkg line (parts=%d): %r", len(parts), line[:100])
            return None

        name = parts[0].strip()
        version = parts[1].strip()
        if not name or not version:
            logger.debug("Skipping dpkg line with empty name/version: %r", line[:100])
            return None

        size: int | None = None
        if len(parts) >= 3 and parts[2].strip().isdigit():
            # dpkg-query reports size in KB
            size = int(parts[2].strip()) * 1024

        description = parts[3].strip() if len(parts) >= 4 else ""
        return self._package(name, version, description=description, size=size)

    async def check_updates(self) -> list[Package]:
        """List upgradable packages.

        Raises:
            CommandUnsuccessful: If apt fails.
        """
        result = await self._query(["apt", "list", "--upgradable"], env=C_LOCALE)

        packages: list[Package] = []
        for line in result.lines():
            package = self._parse_upgradable_line(line)
            if package is not None:
                packages.append(package)
        return packages

    def _parse_upgradable_line(self, line: str) -> Package | None:
        """Parse 'name/suite new-version arch [upgradable from: old-version]'."""
        if "/" not in line or line.startswith(("Listing", "WARNING")):
            return None

        name = line.split("/", 1)[0].strip()
        parts = line.split()
        if not name or len(parts) < 2:
            logger.debug("Skipping malformed upgradable line: %r", line[:100])
            return None

        _, marker, old = line.partition("from: ")
        current = old.strip().rstrip("]") if marker else ""
        return self._update(name, current, parts[1])

    async def install(self, name: str) -> None:
        """Install a package with apt."""
        await self._mutate_elevated("apt", ["install", "-y", name], self._failure("install", name))

    async def remove(self, name: str) -> None:
        """Remove a package with apt."""
        await self._mutate_elevated("apt", ["remove", "-y", name], self._failure("remove", name))

    async def update(self, name: str) -> None:
        """Upgrade a single installed package."""
        await self._mutate_elevated(
            "apt", ["install", "--only-upgrade", "-y", name], self._failure("update", name)
        )

    async def downgrade_to(self, name: str, version: str) -> None:
        """Install an explicit older version of a package."""
        await self._mutate_elevated(
            "apt-get",
            ["install", "-y", "--allow-downgrades", f"{name}={version}"],
            self._failure("downgrade", name),
        )

    async def available_downgrade_versions(self, name: str) -> list[str]:
        """List versions known to apt-cache other than the installed one."""
        installed = await self._run(["dpkg-query", "-W", "--showformat=${Version}", name])
        current = installed.stdout.strip() if installed.success else ""

        result = await self._query(["apt-cache", "madison", name], env=C_LOCALE)
        versions: list[str] = []
        for line in result.lines():
            # "vim | 2:8.2.3995-1ubuntu2 | http://archive.ubuntu.com/ubuntu jammy/main amd64 ..."
            fields = [field.strip() for field in line.split("|")]
            if len(fields) < 3 or fields[0] != name:
                continue
            version = fields[1]
            if version and version != current and version not in versions:
                versions.append(version)
        return versions

    async def search(self, query: str) -> list[Package]:
        """Search package names and descriptions with apt-cache."""
        result = await self._query(["apt-cache", "search", "--", query], env=C_LOCALE)

        packages: list[Package] = []
        for line in result.lines():
            name, sep, description = line.partition(" - ")
            if not sep or not name.strip():
                continue
            packages.append(
                self._package(
                    name.strip(),
                    status=PackageStatus.NOT_INSTALLED,
                    description=description.strip(),
                )
            )
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages

    async def get_changelog(self, name: str) -> str | None:
        """Fetch the Debian changelog, None if apt-get cannot provide one."""
        result = await self._run(["apt-get", "changelog", name], env=C_LOCALE)
        if not result.success or not result.stdout.strip():
            logger.debug("No changelog for %s: %s", name, result.stderr.strip()[:100])
            return None
        return result.stdout

    async def list_repositories(self) -> list[Repository]:
        """List repositories from the one-line sources.list files."""
        return load_sources()

    async def add_repository(self, url: str, name: str | None = None) -> None:
        """Add a repository line or PPA with add-apt-repository."""
        await self._mutate_elevated(
            "add-apt-repository",
            ["-y", url],
            f"Failed to add repository {name or url}",
        )

    async def remove_repository(self, name: str) -> None:
        """Remove a repository by its full sources.list line."""
        await self._mutate_elevated(
            "add-apt-repository",
            ["-y", "--remove", name],
            f"Failed to remove repository {name}",
        )

    async def check_lock_status(self) -> LockStatus:
        return await probe_locks(APT_LOCK_FILES)

    async def get_reverse_dependencies(self, name: str) -> list[str]:
        """List installed packages that depend on ``name``."""
        result = await self._query(["apt-cache", "rdepends", "--installed", name], env=C_LOCALE)

        dependents: list[str] = []
        in_list = False
        for line in result.lines():
            if line.startswith("Reverse Depends:"):
                in_list = True
                continue
            if not in_list:
                continue
            # Alternatives are prefixed with '|'
            dependent = line.strip().lstrip("|")
            if dependent and dependent != name and dependent not in dependents:
                dependents.append(dependent)
        return dependents

    async def get_orphaned_packages(self) -> list[Package]:
        """List packages apt would autoremove."""
        result = await self._query(["apt-get", "--dry-run", "autoremove"], env=C_LOCALE)

        packages: list[Package] = []
        for line in result.lines():
            # "Remv libfoo1 [1.2-3]"
            if not line.startswith("Remv "):
                continue
            parts = line.split()
            if len(parts) < 2:
                continue
            version = parts[2].strip("[]") if len(parts) >= 3 else ""
            packages.append(
                self._package(parts[1], version, description="No longer required")
            )
        return packages

    async def get_cache_size(self) -> int:
        return await self._directory_size(_ARCHIVE_CACHE)

    async def cleanup_cache(self) -> int:
        """Clear the downloaded archive cache, returning the bytes freed."""
        before = await self.get_cache_size()
        await self._mutate_elevated("apt-get", ["clean"], "Failed to clean APT cache")
        after = await self.get_cache_size()
        return max(before - after, 0)

    async def get_package_commands(self, name: str) -> list[tuple[str, Path]]:
        """List executables a package installs into the standard bin directories."""
        result = await self._run(["dpkg", "-L", name])
        if not result.success:
            return []

        commands: list[tuple[str, Path]] = []
        for line in result.lines():
            path = Path(line.strip())
            if str(path.parent) in _BIN_DIRS:
                commands.append((path.name, path))
        return commands

    def refresh_command(self) -> list[str] | None:
        return ["apt-get", "update"]
