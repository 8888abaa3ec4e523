"""cargo install backend implementation (Rust binaries from crates.io)."""

import asyncio
import logging
import shutil
from pathlib import Path

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.shell import command_exists

logger = logging.getLogger(__name__)

_CARGO_BIN = Path.home() / ".cargo/bin"


def parse_install_list(output: str) -> dict[str, tuple[str, list[str]]]:
    """Parse ``cargo install --list``.

    Crate headers look like ``ripgrep v14.1.0:`` (with an optional source
    in parentheses); indented lines below list the installed binaries.

    Returns:
        Mapping of crate name to (version, binaries).
    """
    crates: dict[str, tuple[str, list[str]]] = {}
    current: list[str] | None = None

    for line in output.splitlines():
        if not line.strip():
            continue
        if line.startswith((" ", "\t")):
            if current is not None:
                current.append(line.strip())
            continue
        if not line.endswith(":"):
            current = None
            continue

        fields = line.rstrip(":").split()
        if len(fields) < 2:
            logger.debug("Skipping malformed cargo header: %r", line[:100])
            current = None
            continue
        current = []
        crates[fields[0]] = (fields[1].removeprefix("v"), current)
    return crates


def parse_search_line(line: str) -> tuple[str, str, str] | None:
    """Parse 'name = "version"    # description' into its three parts."""
    name, sep, rest = line.partition(" = ")
    if not sep or not name.strip() or '"' not in rest:
        return None
    version = rest.split('"')[1]
    _, _, description = rest.partition("#")
    return name.strip(), version, description.strip()


class CargoBackend(Backend):
    """Backend for binaries installed with ``cargo install``."""

    @property
    def source(self) -> PackageSource:
        """Return CARGO as the package source."""
        return PackageSource.CARGO

    @classmethod
    def is_available(cls) -> bool:
        """Check if cargo is available."""
        return command_exists("cargo")

    async def _installed(self) -> dict[str, tuple[str, list[str]]]:
        result = await self._query(["cargo", "install", "--list"])
        return parse_install_list(result.stdout)

    async def list_installed(self) -> list[Package]:
        return [
            self._package(name, version, description=", ".join(binaries))
            for name, (version, binaries) in (await self._installed()).items()
        ]

    async def check_updates(self) -> list[Package]:
        """Compare each crate with the newest version on the registry."""
        installed = await self._installed()
        names = list(installed)
        latest = await asyncio.gather(
            *(self._latest_version(name) for name in names), return_exceptions=True
        )

        packages: list[Package] = []
        for name, result in zip(names, latest, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Cannot check crate %s for updates: %s", name, result)
                continue
            current = installed[name][0]
            if result and result != current:
                packages.append(self._update(name, current, result))
        return packages

    async def _latest_version(self, name: str) -> str | None:
        result = await self._query(["cargo", "search", name, "--limit", "1"])
        for line in result.lines():
            parsed = parse_search_line(line)
            if parsed is not None and parsed[0] == name:
                return parsed[1]
        return None

    async def install(self, name: str) -> None:
        await self._mutate(["cargo", "install", name], self._failure("install", name))

    async def remove(self, name: str) -> None:
        await self._mutate(["cargo", "uninstall", name], self._failure("remove", name))

    async def update(self, name: str) -> None:
        await self._mutate(["cargo", "install", "--force", name], self._failure("update", name))

    async def downgrade_to(self, name: str, version: str) -> None:
        await self._mutate(
            ["cargo", "install", "--force", "--version", version, name],
            self._failure("downgrade", name),
        )

    async def search(self, query: str) -> list[Package]:
        result = await self._query(["cargo", "search", query, "--limit", str(SEARCH_LIMIT)])
        packages: list[Package] = []
        for line in result.lines():
            parsed = parse_search_line(line)
            if parsed is None:
                continue
            name, version, description = parsed
            packages.append(
                self._package(
                    name, version, status=PackageStatus.NOT_INSTALLED, description=description
                )
            )
        return packages

    async def get_package_commands(self, name: str) -> list[tuple[str, Path]]:
        """List the binaries a crate installed."""
        crate = (await self._installed()).get(name)
        if crate is None:
            return []
        commands: list[tuple[str, Path]] = []
        for binary in crate[1]:
            found = shutil.which(binary)
            commands.append((binary, Path(found) if found else _CARGO_BIN / binary))
        return commands
