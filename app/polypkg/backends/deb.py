"""Local .deb archive backend implementation.

Lists ``.deb`` files found in common download locations so they can be
installed with dpkg. Archives are not a catalog: there are no updates
and no search.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from polypkg.backends.base import Backend
from polypkg.core.errors import PackageError, UnsupportedOperation
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.shell import command_exists, quote_command

logger = logging.getLogger(__name__)

_SHOW_FORMAT = "--showformat=${Package}\\n${Version}\\n${Description}"


def default_archive_dirs() -> list[Path]:
    """Directories scanned for downloaded archives."""
    home = Path.home()
    return [home / "Downloads", home / "Desktop", Path("/tmp")]


class DebBackend(Backend):
    """Backend for ``.deb`` archives lying in download directories."""

    def __init__(self, *, directories: Sequence[Path] | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._directories = list(directories) if directories is not None else None

    @property
    def source(self) -> PackageSource:
        """Return DEB as the package source."""
        return PackageSource.DEB

    @property
    def requires_elevation(self) -> bool:
        return True

    @classmethod
    def is_available(cls) -> bool:
        """Check if dpkg is available."""
        return command_exists("dpkg")

    @property
    def directories(self) -> list[Path]:
        return self._directories if self._directories is not None else default_archive_dirs()

    def _archives(self) -> list[Path]:
        archives: list[Path] = []
        for directory in self.directories:
            if not directory.is_dir():
                continue
            archives.extend(sorted(p for p in directory.glob("*.deb") if p.is_file()))
        return archives

    async def _archive_info(self, path: Path) -> tuple[str, str, str] | None:
        """Return (name, version, description) from the archive's control file."""
        result = await self._run(["dpkg-deb", "--show", _SHOW_FORMAT, str(path)])
        if not result.success:
            logger.debug("Skipping unreadable archive %s: %s", path, result.stderr.strip())
            return None
        lines = result.stdout.splitlines()
        if len(lines) < 2:
            return None
        return lines[0], lines[1], lines[2] if len(lines) > 2 else ""

    async def list_installed(self) -> list[Package]:
        """List archives available for installation (status NOT_INSTALLED)."""
        packages: list[Package] = []
        for path in self._archives():
            info = await self._archive_info(path)
            if info is None:
                continue
            name, version, description = info
            packages.append(
                self._package(
                    name,
                    version,
                    status=PackageStatus.NOT_INSTALLED,
                    description=description,
                    size=path.stat().st_size,
                )
            )
        return packages

    async def check_updates(self) -> list[Package]:
        return []

    async def _find_archive(self, name: str) -> Path | None:
        for path in self._archives():
            info = await self._archive_info(path)
            if info is not None and info[0] == name:
                return path
        return None

    async def install(self, name: str) -> None:
        """Install the archive providing ``name``, then repair dependencies."""
        path = await self._find_archive(name)
        if path is None:
            raise PackageError(f".deb file for {name!r} not found in download directories")

        await self._mutate_elevated(
            "dpkg",
            ["-i", str(path)],
            self._failure("install", name),
            suggest=quote_command(["sudo", "dpkg", "-i", str(path)]),
        )
        try:
            await self._mutate_elevated(
                "apt-get", ["install", "-f", "-y"], "Failed to fix dependencies"
            )
        except PackageError as e:
            logger.warning("Dependency repair after installing %s failed: %s", name, e)

    async def remove(self, name: str) -> None:
        await self._mutate_elevated("dpkg", ["-r", "--", name], self._failure("remove", name))

    async def update(self, name: str) -> None:
        raise UnsupportedOperation("Updating local archives", self.source)

    async def search(self, query: str) -> list[Package]:
        return []
