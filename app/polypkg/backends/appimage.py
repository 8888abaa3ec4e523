"""AppImage backend implementation.

AppImages are self-contained executables without a package manager.
They are discovered by scanning application directories; removal
deletes the file.
"""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from polypkg.backends.base import Backend
from polypkg.core.errors import PackageError, UnsupportedOperation
from polypkg.models.package import Package, PackageSource

logger = logging.getLogger(__name__)

# ELF header padding holds "AI" followed by the AppImage type byte
_MAGIC_OFFSET = 8
_MAGIC = b"AI"


def default_appimage_dirs() -> list[Path]:
    """Directories where AppImages are usually kept."""
    home = Path.home()
    return [
        home / "Applications",
        home / "apps",
        home / ".local/bin",
        home / "AppImages",
        Path("/opt"),
    ]


def is_appimage(path: Path) -> bool:
    """Check the file extension, or the magic bytes of an executable file."""
    if path.name.lower().endswith(".appimage"):
        return True
    try:
        if not path.is_file() or not path.stat().st_mode & 0o111:
            return False
        with path.open("rb") as f:
            f.seek(_MAGIC_OFFSET)
            return f.read(len(_MAGIC)) == _MAGIC
    except OSError:
        return False


def display_name(path: Path) -> str:
    """Turn 'my-cool_app.AppImage' into 'My cool app'."""
    name = path.stem.replace("-", " ").replace("_", " ")
    return name[:1].upper() + name[1:] if name else "Unknown"


class AppImageBackend(Backend):
    """Backend for AppImage files in well-known directories."""

    def __init__(self, *, directories: Sequence[Path] | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self._directories = list(directories) if directories is not None else None

    @property
    def source(self) -> PackageSource:
        """Return APPIMAGE as the package source."""
        return PackageSource.APPIMAGE

    @classmethod
    def is_available(cls) -> bool:
        """AppImages need no tooling, so the source is always available."""
        return True

    @property
    def directories(self) -> list[Path]:
        return self._directories if self._directories is not None else default_appimage_dirs()

    def _scan(self) -> list[Path]:
        found: list[Path] = []
        for directory in self.directories:
            if not directory.is_dir():
                continue
            try:
                entries = sorted(directory.iterdir())
            except OSError as e:
                logger.debug("Cannot scan %s: %s", directory, e)
                continue
            found.extend(path for path in entries if is_appimage(path))
        return found

    async def list_installed(self) -> list[Package]:
        paths = await asyncio.to_thread(self._scan)
        return [
            self._package(
                display_name(path),
                "local",
                description=f"AppImage at {path}",
                size=path.stat().st_size,
            )
            for path in paths
        ]

    async def check_updates(self) -> list[Package]:
        return []

    async def install(self, name: str) -> None:
        raise UnsupportedOperation(
            "Installation (download the .AppImage file into ~/Applications)", self.source
        )

    async def remove(self, name: str) -> None:
        """Delete the first AppImage whose display name contains ``name``."""
        needle = name.lower()
        for path in await asyncio.to_thread(self._scan):
            if needle in display_name(path).lower():
                logger.info("Removing AppImage %s", path)
                try:
                    path.unlink()
                except OSError as e:
                    raise PackageError(f"Failed to remove {path}: {e}") from e
                return
        raise PackageError(f"AppImage {name!r} not found")

    async def update(self, name: str) -> None:
        raise UnsupportedOperation("Automatic updates", self.source)

    async def search(self, query: str) -> list[Package]:
        return []
