"""AUR backend implementation through an AUR helper (paru or yay).

Helpers accept pacman's flags, so parsing follows the pacman backend's
'name old -> new' and 'repo/name version' formats.
"""

import logging

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.shell import command_exists

logger = logging.getLogger(__name__)


class AurBackend(Backend):
    """Backend for foreign (AUR) packages on Arch Linux."""

    @property
    def source(self) -> PackageSource:
        """Return AUR as the package source."""
        return PackageSource.AUR

    @classmethod
    def is_available(cls) -> bool:
        """Check if an AUR helper is available."""
        return command_exists("paru") or command_exists("yay")

    @staticmethod
    def helper() -> str:
        """Prefer paru over yay."""
        return "paru" if command_exists("paru") else "yay"

    async def list_installed(self) -> list[Package]:
        """List foreign packages (those not found in the sync databases)."""
        # -Qm exits 1 when there are no foreign packages
        result = await self._query([self.helper(), "-Qm"], ok_codes=(0, 1))

        packages: list[Package] = []
        for line in result.lines():
            parts = line.split()
            if len(parts) < 2:
                continue
            packages.append(self._package(parts[0], parts[1]))
        return packages

    async def check_updates(self) -> list[Package]:
        # -Qua exits 1 when nothing is upgradable
        result = await self._query([self.helper(), "-Qua"], ok_codes=(0, 1))

        packages: list[Package] = []
        for line in result.lines():
            parts = line.split()
            if len(parts) < 4 or parts[2] != "->":
                continue
            packages.append(self._update(parts[0], parts[1], parts[3]))
        return packages

    async def install(self, name: str) -> None:
        await self._mutate(
            [self.helper(), "-S", "--noconfirm", "--needed", name], self._failure("install", name)
        )

    async def remove(self, name: str) -> None:
        """Remove with pacman itself; helpers only add build support."""
        await self._mutate_elevated(
            "pacman", ["-R", "--noconfirm", "--", name], self._failure("remove", name)
        )

    async def update(self, name: str) -> None:
        await self._mutate(
            [self.helper(), "-S", "--noconfirm", name], self._failure("update", name)
        )

    async def search(self, query: str) -> list[Package]:
        """Search the AUR only."""
        result = await self._query([self.helper(), "-Ss", "--aur", query], ok_codes=(0, 1))

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
            following = lines[index + 1] if index + 1 < len(lines) else ""
            packages.append(
                self._package(
                    name,
                    fields[0] if fields else "",
                    status=PackageStatus.NOT_INSTALLED,
                    description=following.strip() if following.startswith(" ") else "",
                )
            )
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages
