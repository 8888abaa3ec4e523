"""Abstract base class for package source backends.

This module defines the Backend interface that every package source
implements. Core operations (listing, updates, install/remove/update,
search) are abstract; every optional capability has a total default
that fails predictably, so callers never need per-source special cases.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from polypkg.core.errors import CommandUnsuccessful, UnsupportedOperation
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.models.repository import LockStatus, Repository
from polypkg.utils.shell import (
    DEFAULT_ELEVATION,
    CommandResult,
    quote_command,
    run_command,
    run_elevated,
)

logger = logging.getLogger(__name__)

# Upper bound on search results returned by a single backend
SEARCH_LIMIT = 50


class Backend(ABC):
    """Abstract base class for all package source backends.

    A backend knows how to invoke one package manager and translate its
    output into Package and Repository records.

    Attributes:
        elevation: Launcher used for privileged operations.
        timeout: Per-command timeout in seconds (None = unbounded).

    Example:
        >>> if AptBackend.is_available():
        ...     backend = AptBackend()
        ...     for pkg in await backend.list_installed():
        ...         print(f"{pkg.name}: {pkg.version}")
    """

    def __init__(self, *, elevation: str = DEFAULT_ELEVATION, timeout: float | None = None) -> None:
        """Initialize the backend.

        Args:
            elevation: Launcher used for privileged operations.
            timeout: Per-command timeout in seconds (None = unbounded).
        """
        self._elevation = elevation
        self._timeout = timeout

    @property
    def elevation(self) -> str:
        """Return the privilege elevation launcher."""
        return self._elevation

    @property
    def timeout(self) -> float | None:
        """Return the per-command timeout."""
        return self._timeout

    @property
    @abstractmethod
    def source(self) -> PackageSource:
        """Return the package source this backend handles."""

    @property
    def requires_elevation(self) -> bool:
        """Check if mutations run through the elevation launcher."""
        return False

    @classmethod
    @abstractmethod
    def is_available(cls) -> bool:
        """Check if the package manager's executables are on the PATH.

        Returns:
            True if the backend can be used, False otherwise.
        """

    @abstractmethod
    async def list_installed(self) -> list[Package]:
        """List all installed packages from this source."""

    @abstractmethod
    async def check_updates(self) -> list[Package]:
        """List installed packages with a pending update.

        Every result has status UPDATE_AVAILABLE and available_version set.
        """

    @abstractmethod
    async def install(self, name: str) -> None:
        """Install a package by name."""

    @abstractmethod
    async def remove(self, name: str) -> None:
        """Remove a package by name."""

    @abstractmethod
    async def update(self, name: str) -> None:
        """Update a package by name."""

    @abstractmethod
    async def search(self, query: str) -> list[Package]:
        """Search the source's catalog, returning at most SEARCH_LIMIT results."""

    # =========================================================================
    # Optional capabilities
    # =========================================================================

    async def downgrade(self, name: str) -> None:
        """Revert a package to its previous version."""
        raise UnsupportedOperation("Downgrade", self.source)

    async def downgrade_to(self, name: str, version: str) -> None:
        """Install a specific older version of a package."""
        raise UnsupportedOperation("Downgrade to a specific version", self.source)

    async def available_downgrade_versions(self, name: str) -> list[str]:
        """List versions a package can be downgraded to."""
        return []

    async def get_changelog(self, name: str) -> str | None:
        """Return the package changelog, if the source provides one."""
        return None

    async def list_repositories(self) -> list[Repository]:
        """List configured repositories."""
        return []

    async def add_repository(self, url: str, name: str | None = None) -> None:
        """Add a repository."""
        raise UnsupportedOperation("Repository management", self.source)

    async def remove_repository(self, name: str) -> None:
        """Remove a repository."""
        raise UnsupportedOperation("Repository management", self.source)

    async def get_package_commands(self, name: str) -> list[tuple[str, Path]]:
        """List commands a package provides, as (command, executable path)."""
        return []

    async def check_lock_status(self) -> LockStatus:
        """Report whether another process holds the source's mutation lock."""
        return LockStatus()

    async def get_reverse_dependencies(self, name: str) -> list[str]:
        """List installed packages that depend on ``name``."""
        return []

    async def get_cache_size(self) -> int:
        """Return the size in bytes of reclaimable cached data."""
        return 0

    async def get_orphaned_packages(self) -> list[Package]:
        """List installed packages nothing depends on anymore."""
        return []

    async def cleanup_cache(self) -> int:
        """Remove cached data, returning the number of bytes freed."""
        raise UnsupportedOperation("Cache cleanup", self.source)

    def refresh_command(self) -> list[str] | None:
        """Return the argv that refreshes the source's package metadata."""
        return None

    # =========================================================================
    # Helpers for subclasses
    # =========================================================================

    def _package(
        self,
        name: str,
        version: str = "",
        *,
        status: PackageStatus = PackageStatus.INSTALLED,
        **attrs: object,
    ) -> Package:
        """Create a Package owned by this backend's source."""
        return Package(
            name=name,
            source=self.source,
            version=version,
            status=status,
            **attrs,  # type: ignore[arg-type]
        )

    def _update(self, name: str, current: str, available: str, **attrs: object) -> Package:
        """Create an UPDATE_AVAILABLE package."""
        return self._package(
            name,
            current,
            status=PackageStatus.UPDATE_AVAILABLE,
            available_version=available,
            **attrs,
        )

    def _failure(self, verb: str, name: str) -> str:
        """Describe a failed mutation, e.g. 'Failed to install APT package vim'."""
        return f"Failed to {verb} {self.source} package {name}"

    async def _directory_size(self, path: str) -> int:
        """Return the disk usage of ``path`` in bytes, 0 if it does not exist."""
        if not Path(path).exists():
            return 0
        result = await self._run(["du", "-sb", path])
        fields = result.stdout.split()
        return int(fields[0]) if fields and fields[0].isdigit() else 0

    async def _run(self, args: list[str], *, env: dict[str, str] | None = None) -> CommandResult:
        """Run a query command with this backend's timeout."""
        return await run_command(args, timeout=self._timeout, env=env)

    async def _query(
        self,
        args: list[str],
        *,
        env: dict[str, str] | None = None,
        ok_codes: tuple[int, ...] = (0,),
    ) -> CommandResult:
        """Run a query command, raising if it exits with an unexpected code.

        Raises:
            CommandUnsuccessful: If the exit code is not in ``ok_codes``.
        """
        result = await self._run(args, env=env)
        if result.returncode not in ok_codes:
            detail = result.error_text(f"exit code {result.returncode}")
            raise CommandUnsuccessful(
                f"{quote_command(args)} failed: {detail}",
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )
        return result

    async def _query_json(
        self,
        args: list[str],
        *,
        env: dict[str, str] | None = None,
        ok_codes: tuple[int, ...] = (0,),
    ) -> Any:
        """Run a query command and decode its JSON output.

        Returns:
            The decoded document, or None when the output is empty or not
            valid JSON (logged as a warning, treated as no results).
        """
        result = await self._query(args, env=env, ok_codes=ok_codes)
        text = result.stdout.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning("Unparseable JSON from %s: %s", quote_command(args), e)
            return None

    async def _mutate(self, args: list[str], context: str) -> CommandResult:
        """Run an unprivileged mutation, suggesting the same command on failure.

        Raises:
            CommandUnsuccessful: If the command exits non-zero.
        """
        logger.info("Running %s", quote_command(args))
        result = await self._run(args)
        if not result.success:
            raise CommandUnsuccessful(
                f"{context}: {result.error_text(f'exit code {result.returncode}')}",
                returncode=result.returncode,
                stderr=result.stderr.strip(),
                suggestion=quote_command(args),
            )
        return result

    async def _mutate_elevated(
        self,
        program: str,
        args: list[str],
        context: str,
        suggest: str | None = None,
    ) -> CommandResult:
        """Run a privileged mutation through the elevation launcher.

        Args:
            program: Program to run with elevated privileges.
            args: Arguments for the program.
            context: Description used as the failure message.
            suggest: Manual fallback. Defaults to ``sudo`` + the command.
        """
        logger.info("Running elevated %s", quote_command([program, *args]))
        return await run_elevated(
            program,
            args,
            context=context,
            suggest=suggest or quote_command(["sudo", program, *args]),
            elevation=self._elevation,
            timeout=self._timeout,
        )
