"""Repository and lock models.

Repositories describe the upstreams configured for a source; lock
status describes whether another process holds a source's mutation lock.
"""

from dataclasses import dataclass, field

from polypkg.models.package import PackageSource


@dataclass(frozen=True, slots=True)
class Repository:
    """A configured upstream for a package source.

    Attributes:
        name: Repository identifier, as accepted by the source's removal command
        source: Package source this repository belongs to
        enabled: Whether the repository is currently used
        url: Repository location (if applicable)
        description: Free-form description (e.g. originating file)
    """

    name: str
    source: PackageSource
    enabled: bool = True
    url: str | None = None
    description: str | None = None


@dataclass(frozen=True, slots=True)
class LockStatus:
    """Mutation lock state of a package source.

    Attributes:
        is_locked: Whether the lock is (or may be) held by another process
        lock_files: Lock files found on disk
        lock_holder: Name of the holding process, when it could be determined
        verified: False when no holder-detection facility was available, in
            which case ``is_locked`` only reflects that lock files exist
    """

    is_locked: bool = False
    lock_files: tuple[str, ...] = field(default=())
    lock_holder: str | None = None
    verified: bool = True
