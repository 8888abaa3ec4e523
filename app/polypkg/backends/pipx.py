"""pipx application backend implementation."""

import asyncio
import logging
from pathlib import Path
from typing import Any

from polypkg.backends.base import Backend
from polypkg.models.package import Package, PackageSource
from polypkg.utils.shell import command_exists

logger = logging.getLogger(__name__)


def _main_package(venv: Any) -> dict[str, Any]:
    """Return the metadata.main_package mapping of a pipx venv entry."""
    if not isinstance(venv, dict):
        return {}
    metadata = venv.get("metadata") or {}
    main = metadata.get("main_package") or {}
    return main if isinstance(main, dict) else {}


class PipxBackend(Backend):
    """Backend for applications installed with pipx.

    Each application lives in its own virtual environment; the venv name
    is the application name.
    """

    @property
    def source(self) -> PackageSource:
        """Return PIPX as the package source."""
        return PackageSource.PIPX

    @classmethod
    def is_available(cls) -> bool:
        """Check if pipx is available."""
        return command_exists("pipx")

    async def _venvs(self) -> dict[str, Any]:
        data = await self._query_json(["pipx", "list", "--json"])
        if not isinstance(data, dict):
            return {}
        venvs = data.get("venvs") or {}
        return venvs if isinstance(venvs, dict) else {}

    async def list_installed(self) -> list[Package]:
        return [
            self._package(name, str(_main_package(venv).get("package_version", "")))
            for name, venv in (await self._venvs()).items()
        ]

    async def check_updates(self) -> list[Package]:
        """Check every venv's main package for a newer release, concurrently."""
        venvs = await self._venvs()
        names = list(venvs)
        results = await asyncio.gather(
            *(self._outdated_in(name, venvs[name]) for name in names),
            return_exceptions=True,
        )

        packages: list[Package] = []
        for name, result in zip(names, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Cannot check pipx venv %s for updates: %s", name, result)
            elif result is not None:
                packages.append(result)
        return packages

    async def _outdated_in(self, name: str, venv: Any) -> Package | None:
        """Return an update for the venv's main package, if pip reports one."""
        main = _main_package(venv)
        package_name = str(main.get("package") or name)
        data = await self._query_json(
            ["pipx", "runpip", name, "list", "--outdated", "--format=json"]
        )
        if not isinstance(data, list):
            return None
        for entry in data:
            if not isinstance(entry, dict):
                continue
            matches = str(entry.get("name", "")).lower() == package_name.lower()
            if matches and entry.get("latest_version"):
                return self._update(name, entry.get("version", ""), entry["latest_version"])
        return None

    async def install(self, name: str) -> None:
        await self._mutate(["pipx", "install", name], self._failure("install", name))

    async def remove(self, name: str) -> None:
        await self._mutate(["pipx", "uninstall", name], self._failure("remove", name))

    async def update(self, name: str) -> None:
        await self._mutate(["pipx", "upgrade", name], self._failure("update", name))

    async def downgrade_to(self, name: str, version: str) -> None:
        await self._mutate(
            ["pipx", "install", "--force", f"{name}=={version}"], self._failure("downgrade", name)
        )

    async def search(self, query: str) -> list[Package]:
        """pipx has no catalog of its own."""
        return []

    async def get_package_commands(self, name: str) -> list[tuple[str, Path]]:
        """List the application's exposed entry points."""
        venvs = await self._venvs()
        main = _main_package(venvs.get(name))
        commands: list[tuple[str, Path]] = []
        for app_path in main.get("app_paths") or []:
            # pipx serializes paths as {"__type__": "Path", "__Path__": "..."}
            raw = app_path.get("__Path__") if isinstance(app_path, dict) else app_path
            if raw:
                path = Path(str(raw))
                commands.append((path.name, path))
        return commands
