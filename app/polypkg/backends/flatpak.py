"""Flatpak package backend implementation.

Uses ``--columns=`` output, which flatpak prints tab-separated.
Mutations run unwrapped: flatpak asks polkit for authorization itself
when a system installation needs it.
"""

import asyncio
import logging
import shutil
from pathlib import Path

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.core.errors import ParseFailure
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.models.repository import Repository
from polypkg.utils.shell import command_exists
from polypkg.utils.sizes import parse_human_size

logger = logging.getLogger(__name__)

# Directories where flatpak exports launcher scripts
_EXPORT_DIRS: tuple[Path, ...] = (
    Path("/var/lib/flatpak/exports/bin"),
    Path.home() / ".local/share/flatpak/exports/bin",
)

# How many commits back downgrades may reach
_MAX_HISTORY = 10


class FlatpakBackend(Backend):
    """Backend for Flatpak applications."""

    @property
    def source(self) -> PackageSource:
        """Return FLATPAK as the package source."""
        return PackageSource.FLATPAK

    @classmethod
    def is_available(cls) -> bool:
        """Check if flatpak CLI is available."""
        return command_exists("flatpak")

    async def list_installed(self) -> list[Package]:
        """List installed applications (runtimes excluded)."""
        result = await self._query(
            ["flatpak", "list", "--app", "--columns=application,version,name,size"]
        )
        return self._parse_listing(result.stdout)

    async def list_runtimes(self) -> list[Package]:
        """List installed runtimes."""
        result = await self._query(
            ["flatpak", "list", "--runtime", "--columns=application,version,name,size"]
        )
        return self._parse_listing(result.stdout, label="Runtime")

    def _parse_listing(self, output: str, *, label: str | None = None) -> list[Package]:
        """Parse 'application, version, name, size' rows."""
        packages: list[Package] = []
        for line in output.splitlines():
            parts = line.split("\t")
            app_id = parts[0].strip()
            if not app_id:
                continue
            if len(parts) < 2:
                logger.debug("Skipping malformed flatpak line: %r", line[:100])
                continue

            title = parts[2].strip() if len(parts) > 2 else ""
            packages.append(
                self._package(
                    app_id,
                    parts[1].strip(),
                    description=f"{label}: {title}" if label and title else title,
                    size=parse_human_size(parts[3].strip()) if len(parts) > 3 else None,
                )
            )
        return packages

    async def check_updates(self) -> list[Package]:
        """List applications with updates in their remote."""
        result, installed = await asyncio.gather(
            self._query(
                ["flatpak", "remote-ls", "--updates", "--app", "--columns=application,version,name"]
            ),
            self.list_installed(),
        )
        versions = {pkg.name: pkg.version for pkg in installed}

        packages: list[Package] = []
        for line in result.lines():
            parts = line.split("\t")
            if len(parts) < 2 or not parts[0].strip():
                continue
            app_id = parts[0].strip()
            # Commit-only updates carry no version string
            available = parts[1].strip() or "latest"
            title = parts[2].strip() if len(parts) > 2 else ""
            current = versions.get(app_id, "")
            packages.append(self._update(app_id, current, available, description=title))
        return packages

    async def install(self, name: str) -> None:
        await self._mutate(
            ["flatpak", "install", "-y", "--noninteractive", name], self._failure("install", name)
        )

    async def remove(self, name: str) -> None:
        await self._mutate(
            ["flatpak", "uninstall", "-y", "--noninteractive", name], self._failure("remove", name)
        )

    async def update(self, name: str) -> None:
        await self._mutate(
            ["flatpak", "update", "-y", "--noninteractive", name], self._failure("update", name)
        )

    async def search(self, query: str) -> list[Package]:
        result = await self._query(
            ["flatpak", "search", "--columns=application,version,name,description", query]
        )

        packages: list[Package] = []
        for line in result.lines():
            parts = line.split("\t")
            if len(parts) < 3 or not parts[0].strip():
                # "No matches found" is a single column
                continue
            description = parts[3].strip() if len(parts) > 3 else parts[2].strip()
            packages.append(
                self._package(
                    parts[0].strip(),
                    parts[1].strip(),
                    status=PackageStatus.NOT_INSTALLED,
                    description=description,
                )
            )
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages

    # =========================================================================
    # Commit history downgrades
    # =========================================================================

    async def _info_field(self, flag: str, name: str) -> str:
        """Return one ``flatpak info`` field, raising if it is empty.

        Raises:
            CommandUnsuccessful: If the application is not installed.
            ParseFailure: If flatpak printed nothing.
        """
        result = await self._query(["flatpak", "info", flag, name])
        value = result.stdout.strip()
        if not value:
            msg = f"flatpak info {flag} returned nothing for {name}"
            raise ParseFailure(msg)
        return value

    async def available_downgrade_versions(self, name: str) -> list[str]:
        """List previous commits of the application's ref, newest first."""
        origin = await self._info_field("--show-origin", name)
        ref = await self._info_field("--show-ref", name)
        result = await self._query(["flatpak", "remote-info", "--log", origin, ref])

        commits: list[str] = []
        for line in result.lines():
            label, sep, value = line.strip().partition(":")
            if sep and label == "Commit" and value.strip():
                commits.append(value.strip()[:12])
        # The first commit is the installed one
        return commits[1 : _MAX_HISTORY + 1]

    async def downgrade_to(self, name: str, version: str) -> None:
        """Check out an earlier commit of the application."""
        await self._mutate(
            ["flatpak", "update", "-y", "--noninteractive", f"--commit={version}", name],
            self._failure("downgrade", name),
        )

    async def downgrade(self, name: str) -> None:
        """Revert to the commit before the installed one."""
        versions = await self.available_downgrade_versions(name)
        if not versions:
            msg = f"No previous commit available for {name}"
            raise ParseFailure(msg)
        await self.downgrade_to(name, versions[0])

    # =========================================================================
    # Remotes
    # =========================================================================

    async def list_repositories(self) -> list[Repository]:
        result = await self._query(["flatpak", "remotes", "--columns=name,url,options"])

        repositories: list[Repository] = []
        for line in result.lines():
            parts = line.split("\t")
            name = parts[0].strip()
            if not name:
                continue
            url = parts[1].strip() if len(parts) > 1 else ""
            options = parts[2] if len(parts) > 2 else ""
            repositories.append(
                Repository(
                    name=name,
                    source=PackageSource.FLATPAK,
                    enabled="disabled" not in options,
                    url=url or None,
                    description=options.strip() or None,
                )
            )
        return repositories

    async def add_repository(self, url: str, name: str | None = None) -> None:
        """Add a remote; the name defaults to the .flatpakrepo file stem."""
        remote = name or Path(url.rstrip("/")).stem
        await self._mutate(
            ["flatpak", "remote-add", "--if-not-exists", remote, url],
            f"Failed to add Flatpak remote {remote}",
        )

    async def remove_repository(self, name: str) -> None:
        await self._mutate(
            ["flatpak", "remote-delete", "--force", name],
            f"Failed to remove Flatpak remote {name}",
        )

    # =========================================================================
    # Insights
    # =========================================================================

    async def get_orphaned_packages(self) -> list[Package]:
        """List runtimes no installed application uses."""
        result = await self._query(
            ["flatpak", "list", "--unused", "--columns=application,version,name,size"]
        )
        return [
            self._package(
                pkg.name,
                pkg.version,
                description=f"{pkg.description or 'Unused'} (unused runtime)",
                size=pkg.size,
            )
            for pkg in self._parse_listing(result.stdout)
        ]

    async def get_cache_size(self) -> int:
        """Return the total size of unused runtimes."""
        orphans = await self.get_orphaned_packages()
        return sum(pkg.size or 0 for pkg in orphans)

    async def cleanup_cache(self) -> int:
        """Uninstall unused runtimes, returning the bytes they occupied."""
        before = await self.get_cache_size()
        await self._mutate(
            ["flatpak", "uninstall", "-y", "--noninteractive", "--unused"],
            "Failed to remove unused Flatpak runtimes",
        )
        return before

    async def get_reverse_dependencies(self, name: str) -> list[str]:
        """List applications running on the runtime ``name``."""
        result = await self._query(["flatpak", "list", "--app", "--columns=application,runtime"])

        dependents: list[str] = []
        for line in result.lines():
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            app_id, runtime = parts[0].strip(), parts[1].strip()
            # runtime refs look like 'org.gnome.Platform/x86_64/46'
            if runtime.split("/", 1)[0] == name and app_id != name:
                dependents.append(app_id)
        return dependents

    async def get_package_commands(self, name: str) -> list[tuple[str, Path]]:
        """List exported launchers plus the generic 'flatpak run' entry."""
        commands: list[tuple[str, Path]] = []
        flatpak = shutil.which("flatpak")
        if flatpak:
            commands.append((f"flatpak run {name}", Path(flatpak)))

        for export_dir in _EXPORT_DIRS:
            launcher = export_dir / name
            if launcher.exists() and all(cmd != name for cmd, _ in commands):
                commands.append((name, launcher))
        return commands

    def refresh_command(self) -> list[str] | None:
        return ["flatpak", "update", "--appstream", "-y", "--noninteractive"]
