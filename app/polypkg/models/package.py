"""Package models shared by every backend.

This module defines the normalized vocabulary that all package sources
are translated into: the source enumeration, the status state machine
and the package record itself.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from polypkg.utils.sizes import format_size


class PackageSource(Enum):
    """Enumeration of supported package sources."""

    APT = "apt"
    DNF = "dnf"
    PACMAN = "pacman"
    ZYPPER = "zypper"
    FLATPAK = "flatpak"
    SNAP = "snap"
    NPM = "npm"
    PIP = "pip"
    PIPX = "pipx"
    CARGO = "cargo"
    BREW = "brew"
    AUR = "aur"
    CONDA = "conda"
    MAMBA = "mamba"
    DART = "dart"
    DEB = "deb"
    APPIMAGE = "appimage"

    @property
    def display_name(self) -> str:
        """Return the human-readable name of the source."""
        return _DISPLAY_NAMES[self]

    @property
    def description(self) -> str:
        """Return a one-line description of the source."""
        return _DESCRIPTIONS[self]

    @classmethod
    def parse(cls, value: str) -> "PackageSource":
        """Parse a source from its config string, case-insensitively.

        Raises:
            ValueError: If the value names no known source.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            msg = f"Unknown package source: {value!r}"
            raise ValueError(msg) from None

    def __str__(self) -> str:
        return self.display_name


_DISPLAY_NAMES: dict[PackageSource, str] = {
    PackageSource.APT: "APT",
    PackageSource.DNF: "DNF",
    PackageSource.PACMAN: "Pacman",
    PackageSource.ZYPPER: "Zypper",
    PackageSource.FLATPAK: "Flatpak",
    PackageSource.SNAP: "Snap",
    PackageSource.NPM: "npm",
    PackageSource.PIP: "pip",
    PackageSource.PIPX: "pipx",
    PackageSource.CARGO: "cargo",
    PackageSource.BREW: "brew",
    PackageSource.AUR: "AUR",
    PackageSource.CONDA: "conda",
    PackageSource.MAMBA: "mamba",
    PackageSource.DART: "dart",
    PackageSource.DEB: "DEB",
    PackageSource.APPIMAGE: "AppImage",
}

_DESCRIPTIONS: dict[PackageSource, str] = {
    PackageSource.APT: "System packages (Debian/Ubuntu)",
    PackageSource.DNF: "System packages (Fedora/RHEL)",
    PackageSource.PACMAN: "System packages (Arch Linux)",
    PackageSource.ZYPPER: "System packages (openSUSE)",
    PackageSource.FLATPAK: "Sandboxed applications",
    PackageSource.SNAP: "Snap packages",
    PackageSource.NPM: "Node.js packages (global)",
    PackageSource.PIP: "Python packages (user)",
    PackageSource.PIPX: "Python applications (pipx)",
    PackageSource.CARGO: "Rust crates (cargo install)",
    PackageSource.BREW: "Homebrew packages",
    PackageSource.AUR: "Arch User Repository (AUR helper)",
    PackageSource.CONDA: "Conda packages (base env)",
    PackageSource.MAMBA: "Mamba packages (base env)",
    PackageSource.DART: "Dart/Flutter global tools (pub global)",
    PackageSource.DEB: "Local .deb archives",
    PackageSource.APPIMAGE: "Portable AppImage applications",
}


class PackageStatus(Enum):
    """Package lifecycle status.

    Queries only ever return NOT_INSTALLED, INSTALLED or UPDATE_AVAILABLE.
    The remaining states are transient markers that callers set around
    a running operation.
    """

    NOT_INSTALLED = "not_installed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    REMOVING = "removing"
    UPDATE_AVAILABLE = "update_available"
    UPDATING = "updating"

    @property
    def is_transient(self) -> bool:
        """Check if this status only exists while an operation runs."""
        return self in (PackageStatus.INSTALLING, PackageStatus.REMOVING, PackageStatus.UPDATING)

    def can_transition_to(self, target: "PackageStatus") -> bool:
        """Check whether moving from this status to ``target`` is allowed."""
        return target in _TRANSITIONS[self]


_TRANSITIONS: dict[PackageStatus, frozenset[PackageStatus]] = {
    PackageStatus.NOT_INSTALLED: frozenset({PackageStatus.INSTALLING}),
    PackageStatus.INSTALLING: frozenset({PackageStatus.INSTALLED, PackageStatus.NOT_INSTALLED}),
    PackageStatus.INSTALLED: frozenset({PackageStatus.REMOVING, PackageStatus.UPDATE_AVAILABLE}),
    PackageStatus.REMOVING: frozenset({PackageStatus.NOT_INSTALLED, PackageStatus.INSTALLED}),
    PackageStatus.UPDATE_AVAILABLE: frozenset({PackageStatus.UPDATING, PackageStatus.REMOVING}),
    PackageStatus.UPDATING: frozenset({PackageStatus.INSTALLED, PackageStatus.UPDATE_AVAILABLE}),
}


@dataclass(frozen=True, slots=True)
class Package:
    """A package as reported by one package source.

    Two packages are equal when they share name and source; every other
    attribute is descriptive and excluded from comparison and hashing.

    Attributes:
        name: Source-scoped package name (e.g. 'firefox', 'org.gnome.Calculator')
        source: Package manager that owns this package
        version: Installed (or found) version, empty if unknown
        status: Lifecycle status
        available_version: Newer version, only set when an update exists
        description: One-line human-readable description
        size: Size in bytes (if known)
        homepage: Project homepage URL
        license: License identifier
        maintainer: Maintainer or packager
        dependencies: Names of direct dependencies, in source order
        install_date: Installation date as reported by the source
    """

    name: str
    source: PackageSource
    version: str = field(default="", compare=False)
    status: PackageStatus = field(default=PackageStatus.INSTALLED, compare=False)
    available_version: str | None = field(default=None, compare=False)
    description: str = field(default="", compare=False)
    size: int | None = field(default=None, compare=False)
    homepage: str | None = field(default=None, compare=False)
    license: str | None = field(default=None, compare=False)
    maintainer: str | None = field(default=None, compare=False)
    dependencies: tuple[str, ...] = field(default=(), compare=False)
    install_date: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Validate package data after initialization."""
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if self.available_version is not None and self.status != PackageStatus.UPDATE_AVAILABLE:
            msg = f"Package {self.name!r} has an available version but status {self.status.value}"
            raise ValueError(msg)

    @property
    def id(self) -> str:
        """Return the stable identity string '<source>:<name>'."""
        return f"{self.source.value}:{self.name}"

    @property
    def has_update(self) -> bool:
        """Check if an update is pending for this package."""
        return self.status == PackageStatus.UPDATE_AVAILABLE

    @property
    def display_version(self) -> str:
        """Return 'current -> available' when an update exists, else the version."""
        if self.has_update and self.available_version:
            return f"{self.version or '?'} -> {self.available_version}"
        return self.version

    @property
    def size_human(self) -> str:
        """Return human-readable size string."""
        return format_size(self.size)

    def with_status(self, status: PackageStatus) -> "Package":
        """Return a copy moved to ``status`` along the lifecycle.

        Leaving UPDATE_AVAILABLE drops ``available_version``.

        Raises:
            ValueError: If the transition is not allowed.
        """
        if not self.status.can_transition_to(status):
            msg = f"Cannot move {self.name!r} from {self.status.value} to {status.value}"
            raise ValueError(msg)
        available = self.available_version if status == PackageStatus.UPDATE_AVAILABLE else None
        return replace(self, status=status, available_version=available)
