"""pip package backend implementation (user site packages)."""

import logging
from pathlib import Path

from polypkg.backends.base import Backend
from polypkg.core.errors import CommandUnsuccessful
from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.utils.shell import command_exists, quote_command

logger = logging.getLogger(__name__)

# pip refuses to touch distro-managed interpreters (PEP 668)
_EXTERNALLY_MANAGED = "externally-managed-environment"


def parse_index_versions(output: str) -> list[str]:
    """Parse ``pip index versions`` output.

    Example line: ``Available versions: 2.32.3, 2.32.2, 2.31.0``
    """
    versions: list[str] = []
    for line in output.splitlines():
        _, marker, tail = line.partition("Available versions:")
        if not marker:
            continue
        versions.extend(v.strip() for v in tail.split(",") if v.strip())
    return versions


class PipBackend(Backend):
    """Backend for pip-installed Python packages."""

    @property
    def source(self) -> PackageSource:
        """Return PIP as the package source."""
        return PackageSource.PIP

    @classmethod
    def is_available(cls) -> bool:
        """Check if pip3 or pip is available."""
        return command_exists("pip3") or command_exists("pip")

    @staticmethod
    def _pip() -> str:
        """Prefer pip3 over pip."""
        return "pip3" if command_exists("pip3") else "pip"

    async def list_installed(self) -> list[Package]:
        data = await self._query_json([self._pip(), "list", "--format=json"])
        if not isinstance(data, list):
            return []
        return [
            self._package(entry["name"], entry.get("version", ""))
            for entry in data
            if isinstance(entry, dict) and entry.get("name")
        ]

    async def check_updates(self) -> list[Package]:
        data = await self._query_json([self._pip(), "list", "--outdated", "--format=json"])
        if not isinstance(data, list):
            return []
        return [
            self._update(entry["name"], entry.get("version", ""), entry["latest_version"])
            for entry in data
            if isinstance(entry, dict) and entry.get("name") and entry.get("latest_version")
        ]

    async def _pip_mutation(self, args: list[str], name: str, verb: str) -> None:
        """Run a pip mutation, pointing at pipx for externally managed interpreters."""
        try:
            await self._mutate([self._pip(), *args], self._failure(verb, name))
        except CommandUnsuccessful as e:
            if _EXTERNALLY_MANAGED not in e.stderr:
                raise
            raise CommandUnsuccessful(
                f"{e.message}\n\nThis Python installation is managed by the system.",
                returncode=e.returncode,
                stderr=e.stderr,
                suggestion=quote_command(["pipx", "install", name]),
            ) from e

    async def install(self, name: str) -> None:
        await self._pip_mutation(["install", "--user", name], name, "install")

    async def remove(self, name: str) -> None:
        await self._pip_mutation(["uninstall", "-y", name], name, "remove")

    async def update(self, name: str) -> None:
        await self._pip_mutation(["install", "--user", "--upgrade", name], name, "update")

    async def downgrade_to(self, name: str, version: str) -> None:
        await self._pip_mutation(["install", "--user", f"{name}=={version}"], name, "downgrade")

    async def available_downgrade_versions(self, name: str) -> list[str]:
        """List versions on the index, newest first."""
        result = await self._run([self._pip(), "index", "versions", name])
        if not result.success:
            logger.debug("pip index versions failed for %s: %s", name, result.stderr.strip()[:100])
            return []
        return parse_index_versions(result.stdout)

    async def search(self, query: str) -> list[Package]:
        """Look up an exact project name on the index.

        PyPI has no search API usable from pip, so a query matches at most
        the project of the same name.
        """
        result = await self._run([self._pip(), "index", "versions", query])
        if not result.success:
            return []
        versions = parse_index_versions(result.stdout)
        latest = versions[0] if versions else ""
        return [self._package(query, latest, status=PackageStatus.NOT_INSTALLED)]

    async def get_cache_size(self) -> int:
        result = await self._run([self._pip(), "cache", "dir"])
        cache_dir = result.stdout.strip()
        return await self._directory_size(cache_dir) if result.success and cache_dir else 0

    async def cleanup_cache(self) -> int:
        before = await self.get_cache_size()
        await self._mutate([self._pip(), "cache", "purge"], "Failed to purge pip cache")
        return before

    async def get_package_commands(self, name: str) -> list[tuple[str, Path]]:
        """List console scripts installed by the distribution."""
        result = await self._run([self._pip(), "show", "--files", name])
        if not result.success:
            return []

        location: Path | None = None
        commands: list[tuple[str, Path]] = []
        in_files = False
        for line in result.stdout.splitlines():
            if line.startswith("Location:"):
                location = Path(line.partition(":")[2].strip())
            elif line.startswith("Files:"):
                in_files = True
            elif in_files and line.startswith("  ") and location is not None:
                entry = line.strip()
                if "/bin/" in f"/{entry}":
                    path = (location / entry).resolve()
                    commands.append((path.name, path))
        return commands
