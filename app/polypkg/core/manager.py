"""Aggregation of package sources.

The PackageManager probes every known backend once at construction and
keeps the available ones, keyed by source. Aggregate queries fan out to
every enabled backend concurrently and tolerate individual failures;
single-package operations are routed to the backend owning the package
and propagate their errors unchanged.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from pathlib import Path
from typing import TypeVar

from polypkg.backends import BACKENDS, Backend
from polypkg.core.config import EngineConfig
from polypkg.core.errors import (
    InvalidPackageName,
    NoBackendAvailable,
    PackageError,
    SourceDisabled,
    UnsupportedOperation,
)
from polypkg.models.package import Package, PackageSource
from polypkg.models.repository import LockStatus, Repository
from polypkg.models.stream import StreamResult
from polypkg.utils.streaming import LineChannel, run_elevated_streaming, run_streaming

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Longest package name accepted before routing
MAX_NAME_LENGTH = 256


def validate_package_name(name: str) -> None:
    """Reject names that are unsafe to hand to a package manager.

    A leading dash would be read as an option by most tools.

    Raises:
        InvalidPackageName: If the name is empty, starts with '-', is too
            long or contains control characters.
    """
    if not name.strip():
        raise InvalidPackageName(name, "name is empty")
    if name.startswith("-"):
        raise InvalidPackageName(name, "name must not start with '-'")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidPackageName(name, f"name is longer than {MAX_NAME_LENGTH} characters")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in name):
        raise InvalidPackageName(name, "name contains control characters")


class PackageManager:
    """Routes package operations across every available source.

    The registry is fixed after construction; only the set of enabled
    sources can change.

    Example:
        >>> manager = PackageManager(load_config())
        >>> for pkg in await manager.list_all_installed():
        ...     print(pkg.id, pkg.version)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        backends: Iterable[type[Backend]] | None = None,
    ) -> None:
        """Probe backends and register the available ones.

        Args:
            config: Engine settings. Defaults apply when None.
            backends: Backend classes to probe. Defaults to every known backend.
        """
        self._config = config or EngineConfig()
        self._backends: dict[PackageSource, Backend] = {}

        for backend_cls in BACKENDS if backends is None else backends:
            if not backend_cls.is_available():
                logger.debug("Backend %s is not available", backend_cls.__name__)
                continue
            backend = backend_cls(
                elevation=self._config.elevation_program,
                timeout=self._config.command_timeout,
            )
            self._backends[backend.source] = backend

        self._enabled: set[PackageSource] = set(self._backends)
        if self._config.enabled_sources is not None:
            self.set_enabled_sources(self._config.enabled_sources)

        logger.debug(
            "Registered sources: %s", ", ".join(s.value for s in self._backends) or "none"
        )

    @property
    def config(self) -> EngineConfig:
        return self._config

    def available_sources(self) -> list[PackageSource]:
        """Return every source with a registered backend, in probe order."""
        return list(self._backends)

    def enabled_sources(self) -> list[PackageSource]:
        """Return the registered sources that are currently enabled."""
        return [source for source in self._backends if source in self._enabled]

    def set_enabled_sources(self, sources: Iterable[PackageSource]) -> None:
        """Restrict aggregate and routed operations to ``sources``.

        Sources without a registered backend are ignored.
        """
        wanted = set(sources)
        ignored = wanted - set(self._backends)
        if ignored:
            logger.debug("Ignoring unavailable sources: %s", ", ".join(s.value for s in ignored))
        self._enabled = wanted & set(self._backends)

    def backend(self, source: PackageSource) -> Backend:
        """Return the enabled backend for a source.

        Raises:
            NoBackendAvailable: If no backend is registered for the source.
            SourceDisabled: If the source is registered but disabled.
        """
        backend = self._backends.get(source)
        if backend is None:
            raise NoBackendAvailable(source)
        if source not in self._enabled:
            raise SourceDisabled(source)
        return backend

    def new_channel(self) -> LineChannel:
        """Create a live-output channel sized by the configuration."""
        return LineChannel(self._config.stream_buffer)

    # =========================================================================
    # Aggregate queries
    # =========================================================================

    async def _fan_out(
        self, operation: str, call: Callable[[Backend], Awaitable[list[T]]]
    ) -> list[T]:
        """Run ``call`` on every enabled backend concurrently and merge the results.

        A failing backend is logged and left out of the merged list.
        """
        backends = [self._backends[source] for source in self.enabled_sources()]
        results = await asyncio.gather(*(call(b) for b in backends), return_exceptions=True)

        merged: list[T] = []
        for backend, result in zip(backends, results, strict=True):
            if isinstance(result, Exception):
                logger.warning("Skipping %s for %s: %s", backend.source, operation, result)
                continue
            if isinstance(result, BaseException):
                raise result
            merged.extend(result)

        logger.info("%s: %d results from %d sources", operation, len(merged), len(backends))
        return merged

    async def list_all_installed(self) -> list[Package]:
        """List installed packages from every enabled source, sorted by name."""
        packages = await self._fan_out("list installed", lambda b: b.list_installed())
        return sorted(packages, key=lambda p: p.name.lower())

    async def check_all_updates(self) -> list[Package]:
        """List pending updates from every enabled source, in source order."""
        return await self._fan_out("check updates", lambda b: b.check_updates())

    async def search(self, query: str) -> list[Package]:
        """Search every enabled source, merged and sorted by name."""
        packages = await self._fan_out("search", lambda b: b.search(query))
        return sorted(packages, key=lambda p: p.name.lower())

    async def list_all_repositories(self) -> list[Repository]:
        return await self._fan_out("list repositories", lambda b: b.list_repositories())

    # =========================================================================
    # Routed package operations
    # =========================================================================

    async def _mutation(
        self, verb: str, package: Package, call: Callable[[Backend], Awaitable[T]]
    ) -> T:
        validate_package_name(package.name)
        backend = self.backend(package.source)
        logger.info("%s %s (%s)", verb, package.name, package.source)
        try:
            return await call(backend)
        except PackageError as e:
            logger.error("%s %s (%s) failed: %s", verb, package.name, package.source, e)
            raise

    async def install(self, package: Package) -> None:
        await self._mutation("Installing", package, lambda b: b.install(package.name))

    async def remove(self, package: Package) -> None:
        await self._mutation("Removing", package, lambda b: b.remove(package.name))

    async def update(self, package: Package) -> None:
        await self._mutation("Updating", package, lambda b: b.update(package.name))

    async def downgrade(self, package: Package) -> None:
        await self._mutation("Downgrading", package, lambda b: b.downgrade(package.name))

    async def downgrade_to(self, package: Package, version: str) -> None:
        await self._mutation(
            f"Downgrading to {version}", package, lambda b: b.downgrade_to(package.name, version)
        )

    async def available_downgrade_versions(self, package: Package) -> list[str]:
        validate_package_name(package.name)
        return await self.backend(package.source).available_downgrade_versions(package.name)

    async def get_changelog(self, package: Package) -> str | None:
        """Return the package changelog, or None when its source is not registered."""
        validate_package_name(package.name)
        try:
            backend = self.backend(package.source)
        except NoBackendAvailable:
            return None
        return await backend.get_changelog(package.name)

    async def get_reverse_dependencies(self, package: Package) -> list[str]:
        validate_package_name(package.name)
        return await self.backend(package.source).get_reverse_dependencies(package.name)

    async def get_package_commands(self, package: Package) -> list[tuple[str, Path]]:
        validate_package_name(package.name)
        return await self.backend(package.source).get_package_commands(package.name)

    # =========================================================================
    # Routed source operations
    # =========================================================================

    async def list_repositories(self, source: PackageSource) -> list[Repository]:
        """List a source's repositories, empty when the source is not registered."""
        try:
            backend = self.backend(source)
        except NoBackendAvailable:
            return []
        return await backend.list_repositories()

    async def add_repository(
        self, source: PackageSource, url: str, name: str | None = None
    ) -> None:
        logger.info("Adding repository %s to %s", url, source)
        await self.backend(source).add_repository(url, name)

    async def remove_repository(self, source: PackageSource, name: str) -> None:
        logger.info("Removing repository %s from %s", name, source)
        await self.backend(source).remove_repository(name)

    async def check_lock_status(self, source: PackageSource) -> LockStatus:
        return await self.backend(source).check_lock_status()

    async def get_orphaned_packages(self, source: PackageSource) -> list[Package]:
        return await self.backend(source).get_orphaned_packages()

    async def get_cache_size(self, source: PackageSource) -> int:
        return await self.backend(source).get_cache_size()

    async def cleanup_cache(self, source: PackageSource) -> int:
        """Clean a source's cache and return the bytes freed."""
        freed = await self.backend(source).cleanup_cache()
        logger.info("Freed %d bytes of %s cache", freed, source)
        return freed

    async def refresh(self, source: PackageSource, channel: LineChannel) -> StreamResult:
        """Refresh a source's package metadata, streaming output into ``channel``.

        Raises:
            UnsupportedOperation: If the source has no refresh command.
        """
        try:
            backend = self.backend(source)
            argv: Sequence[str] | None = backend.refresh_command()
            if not argv:
                raise UnsupportedOperation("Metadata refresh", source)
        except PackageError:
            # Nothing will be streamed; release the consumer
            channel.finish()
            raise

        program, args = argv[0], list(argv[1:])
        logger.info("Refreshing %s metadata", source)
        if backend.requires_elevation:
            return await run_elevated_streaming(
                program,
                args,
                channel,
                elevation=backend.elevation,
                timeout=self._config.command_timeout,
            )
        return await run_streaming(program, args, channel, timeout=self._config.command_timeout)
