"""Snap package backend implementation.

snapd refuses to remove or refresh a snap whose applications are
running. Such failures are rewritten with a remediation that either
uses ``snap remove --terminate`` (when the installed snapd supports it)
or kills the reported processes first.
"""

import asyncio
import logging
import re
from pathlib import Path

from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.core.errors import CommandUnsuccessful, PackageError
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.lazy import AsyncOnce
from polypkg.utils.shell import C_LOCALE, command_exists, quote_command, run_command

logger = logging.getLogger(__name__)

_SNAP_BIN = Path("/snap/bin")

# Base snaps and snapd itself are system components, not applications
_SYSTEM_SNAPS = ("bare", "snapd")
_SYSTEM_PREFIXES = ("core", "gnome-", "gtk-", "mesa-")

# Standalone integers: PIDs, not parts of dotted versions or names
_PID_TOKEN = re.compile(r"(?<![\w.-])\d+(?!\.?\d|\w)")


def is_running_apps_error(text: str) -> bool:
    """Check if a snapd error is caused by running applications."""
    return "running apps" in text.lower()


def extract_pids(text: str) -> list[str]:
    """Return the distinct numeric process-ID tokens in ``text``, in order."""
    return list(dict.fromkeys(_PID_TOKEN.findall(text)))


async def _probe_terminate_flag() -> bool:
    """Check whether ``snap remove`` accepts --terminate."""
    try:
        result = await run_command(["snap", "remove", "--help"], env=C_LOCALE)
    except PackageError:
        logger.debug("snap --terminate probe failed", exc_info=True)
        return False
    supported = "--terminate" in result.stdout
    logger.debug("snap remove --terminate supported: %s", supported)
    return supported


# Computed at most once per process
terminate_supported: AsyncOnce[bool] = AsyncOnce(_probe_terminate_flag)


def _is_system_snap(name: str) -> bool:
    return name in _SYSTEM_SNAPS or name.startswith(_SYSTEM_PREFIXES)


class SnapBackend(Backend):
    """Backend for Snap packages."""

    @property
    def source(self) -> PackageSource:
        """Return SNAP as the package source."""
        return PackageSource.SNAP

    @property
    def requires_elevation(self) -> bool:
        return True

    @classmethod
    def is_available(cls) -> bool:
        """Check if snap CLI is available."""
        return command_exists("snap")

    async def list_installed(self) -> list[Package]:
        """List installed application snaps."""
        result = await self._query(["snap", "list"], env=C_LOCALE)

        packages: list[Package] = []
        # Columns: Name Version Rev Tracking Publisher Notes
        for line in result.lines()[1:]:
            parts = line.split()
            if len(parts) < 2:
                logger.debug("Skipping malformed snap line: %r", line[:100])
                continue
            if _is_system_snap(parts[0]):
                continue
            packages.append(self._package(parts[0], parts[1]))
        return packages

    async def check_updates(self) -> list[Package]:
        result, installed = await asyncio.gather(
            self._query(["snap", "refresh", "--list"], env=C_LOCALE),
            self.list_installed(),
        )
        versions = {pkg.name: pkg.version for pkg in installed}

        packages: list[Package] = []
        # Columns: Name Version Rev Size Publisher Notes
        for line in result.lines():
            if line.startswith("Name") or "up to date" in line:
                continue
            parts = line.split()
            if len(parts) < 2:
                continue
            packages.append(self._update(parts[0], versions.get(parts[0], ""), parts[1]))
        return packages

    async def _snap_mutation(self, operation: str, args: list[str], name: str, verb: str) -> None:
        """Run an elevated snap command, rewriting running-apps failures."""
        try:
            await self._mutate_elevated("snap", args, self._failure(verb, name))
        except CommandUnsuccessful as e:
            pids = extract_pids(e.stderr) if is_running_apps_error(e.stderr) else []
            if not pids:
                raise
            suggestion = await self.running_apps_suggestion(operation, name, pids)
            raise CommandUnsuccessful(
                f"{e.message}\n\nClose the running application and try again.",
                returncode=e.returncode,
                stderr=e.stderr,
                suggestion=suggestion,
            ) from e

    async def running_apps_suggestion(self, operation: str, name: str, pids: list[str]) -> str:
        """Build the manual command for an operation blocked by running apps.

        Args:
            operation: snap subcommand that failed ('remove' or 'refresh').
            name: Snap name.
            pids: Processes reported as running.
        """
        if operation == "remove" and await terminate_supported.get():
            return quote_command(["sudo", "snap", "remove", "--terminate", name])
        kill = quote_command(["sudo", "kill", *pids])
        return f"{kill} && {quote_command(['sudo', 'snap', operation, name])}"

    async def install(self, name: str) -> None:
        await self._mutate_elevated("snap", ["install", name], self._failure("install", name))

    async def remove(self, name: str) -> None:
        await self._snap_mutation("remove", ["remove", name], name, "remove")

    async def update(self, name: str) -> None:
        await self._snap_mutation("refresh", ["refresh", name], name, "update")

    async def downgrade(self, name: str) -> None:
        """Revert to the previously installed revision."""
        await self._mutate_elevated("snap", ["revert", name], self._failure("revert", name))

    async def downgrade_to(self, name: str, version: str) -> None:
        """Revert to a specific retained revision."""
        await self._mutate_elevated(
            "snap", ["revert", f"--revision={version}", name], self._failure("revert", name)
        )

    async def available_downgrade_versions(self, name: str) -> list[str]:
        """List retained (disabled) revisions of the snap."""
        result = await self._query(["snap", "list", "--all", name], env=C_LOCALE)
        revisions: list[str] = []
        for line in result.lines()[1:]:
            parts = line.split()
            if len(parts) >= 3 and parts[0] == name and "disabled" in parts[5:]:
                revisions.append(parts[2])
        return revisions

    async def search(self, query: str) -> list[Package]:
        # Exit code 1 means no matches
        result = await self._query(["snap", "find", query], env=C_LOCALE, ok_codes=(0, 1))

        packages: list[Package] = []
        # Columns: Name Version Publisher Notes Summary
        for line in result.lines()[1:]:
            parts = line.split()
            if len(parts) < 4:
                continue
            packages.append(
                self._package(
                    parts[0],
                    parts[1],
                    status=PackageStatus.NOT_INSTALLED,
                    description=" ".join(parts[4:]),
                )
            )
            if len(packages) >= SEARCH_LIMIT:
                break
        return packages

    async def get_package_commands(self, name: str) -> list[tuple[str, Path]]:
        """List the snap's application launchers in /snap/bin."""
        if not _SNAP_BIN.is_dir():
            return []
        return [
            (path.name, path)
            for path in sorted(_SNAP_BIN.iterdir())
            if path.name == name or path.name.startswith(f"{name}.")
        ]
