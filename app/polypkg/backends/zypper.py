"""Zypper package backend implementation (openSUSE, SLE).

Zypper prints pipe-separated tables; every table is parsed by header
name rather than column position, so column order changes between
versions do not break parsing.
"""

import logging
import re

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.backends.locks import ZYPPER_LOCK_FILES, probe_locks
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.models.repository import LockStatus, Repository
from polypkg.utils.shell import C_LOCALE, command_exists

logger = logging.getLogger(__name__)

_ZYPPER = ["zypper", "--non-interactive"]

_RPM_FORMAT = "%{NAME}\\t%{VERSION}-%{RELEASE}\\t%{SIZE}\\t%{SUMMARY}\\n"


def parse_table(output: str) -> list[dict[str, str]]:
    """Parse a zypper pipe table into rows keyed by header.

    The first line with a '|' is taken as the header; separator lines
    and rows with a different cell count are skipped.
    """
    headers: list[str] | None = None
    rows: list[dict[str, str]] = []

    for line in output.splitlines():
        if "|" not in line:
            continue
        cells = [cell.strip() for cell in line.split("|")]
        if headers is None:
            headers = cells
            continue
        if len(cells) != len(headers):
            logger.debug("Skipping zypper row with %d cells: %r", len(cells), line[:100])
            continue
        rows.append(dict(zip(headers, cells, strict=True)))
    return rows


class ZypperBackend(Backend):
    """Backend for zypper/RPM packages."""

    @property
    def source(self) -> PackageSource:
        """Return ZYPPER as the package source."""
        return PackageSource.ZYPPER

    @property
    def requires_elevation(self) -> bool:
        return True

    @classmethod
    def is_available(cls) -> bool:
        """Check if zypper and rpm are available."""
        return command_exists("zypper") and command_exists("rpm")

    async def list_installed(self) -> list[Package]:
        """List installed RPMs, which is stable across zypper versions."""
        result = await self._query(["rpm", "-qa", "--qf", _RPM_FORMAT])

        packages: list[Package] = []
        for line in result.lines():
            parts = line.split("\t")
            name = parts[0].strip()
            if not name:
                continue
            version = parts[1].strip() if len(parts) > 1 else ""
            size = int(parts[2]) if len(parts) > 2 and parts[2].strip().isdigit() else None
            description = parts[3].strip() if len(parts) > 3 else ""
            packages.append(self._package(name, version, size=size, description=description))
        return packages

    async def check_updates(self) -> list[Package]:
        result = await self._query([*_ZYPPER, "--quiet", "list-updates"], env=C_LOCALE)

        packages: list[Package] = []
        for row in parse_table(result.stdout):
            name = row.get("Name", "")
            available = row.get("Available Version", "")
            if not name or not available:
                continue
            packages.append(self._update(name, row.get("Current Version", ""), available))
        return packages

    async def install(self, name: str) -> None:
        await self._mutate_elevated(
            "zypper",
            ["--non-interactive", "install", "-y", "--", name],
            self._failure("install", name),
        )

    async def remove(self, name: str) -> None:
        await self._mutate_elevated(
            "zypper",
            ["--non-interactive", "remove", "-y", "--", name],
            self._failure("remove", name),
        )

    async def update(self, name: str) -> None:
        await self._mutate_elevated(
            "zypper",
            ["--non-interactive", "update", "-y", "--", name],
            self._failure("update", name),
        )

    async def downgrade_to(self, name: str, version: str) -> None:
        await self._mutate_elevated(
            "zypper",
            ["--non-interactive", "install", "--oldpackage", "-y", "--", f"{name}={version}"],
            self._failure("downgrade", name),
        )

    async def search(self, query: str) -> list[Package]:
        # Exit code 104 means no matches
        result = await self._query(
            [*_ZYPPER, "--quiet", "search", "-s", "--", query], env=C_LOCALE, ok_codes=(0, 104)
        )

        packages: list[Package] = []
        for row in parse_table(result.stdout):
            name = row.get("Name", "")
            if not name or row.get("Type", "package") != "package":
                continue
            installed = row.get("S", "").startswith("i")
            status = PackageStatus.INSTALLED if installed else PackageStatus.NOT_INSTALLED
            packages.append(
                self._package(
                    name,
                    row.get("Version", ""),
                    status=status,
                    description=row.get("Repository", ""),
                )
            )
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages

    async def list_repositories(self) -> list[Repository]:
        result = await self._query([*_ZYPPER, "list-repos", "--uri"], env=C_LOCALE)
        return [
            Repository(
                name=row["Alias"],
                source=PackageSource.ZYPPER,
                enabled=row.get("Enabled", "").lower() == "yes",
                url=row.get("URI") or None,
                description=row.get("Name") or None,
            )
            for row in parse_table(result.stdout)
            if row.get("Alias")
        ]

    async def add_repository(self, url: str, name: str | None = None) -> None:
        """Add a repository; the alias defaults to a slug of the URL."""
        alias = name or re.sub(r"[^A-Za-z0-9._-]+", "-", url.split("://", 1)[-1]).strip("-")
        await self._mutate_elevated(
            "zypper",
            ["--non-interactive", "addrepo", "--refresh", url, alias],
            f"Failed to add repository {alias}",
        )

    async def remove_repository(self, name: str) -> None:
        await self._mutate_elevated(
            "zypper",
            ["--non-interactive", "removerepo", name],
            f"Failed to remove repository {name}",
        )

    async def check_lock_status(self) -> LockStatus:
        return await probe_locks(ZYPPER_LOCK_FILES)

    async def get_orphaned_packages(self) -> list[Package]:
        result = await self._query([*_ZYPPER, "--quiet", "packages", "--unneeded"], env=C_LOCALE)
        return [
            self._package(row["Name"], row.get("Version", ""), description="No longer required")
            for row in parse_table(result.stdout)
            if row.get("Name")
        ]

    def refresh_command(self) -> list[str] | None:
        return [*_ZYPPER, "refresh"]
