"""Package source backends.

This module exports one backend class per package source, plus the
BACKENDS registry the aggregator probes at startup.
"""

from polypkg.backends.appimage import AppImageBackend
from polypkg.backends.apt import AptBackend
from polypkg.backends.aur import AurBackend
from polypkg.backends.base import SEARCH_LIMIT, Backend
from polypkg.backends.brew import BrewBackend
from polypkg.backends.cargo import CargoBackend
from polypkg.backends.conda import CondaBackend, MambaBackend
from polypkg.backends.dart import DartBackend
from polypkg.backends.deb import DebBackend
from polypkg.backends.dnf import DnfBackend
from polypkg.backends.flatpak import FlatpakBackend
from polypkg.backends.npm import NpmBackend
from polypkg.backends.pacman import PacmanBackend
from polypkg.backends.pip import PipBackend
from polypkg.backends.pipx import PipxBackend
from polypkg.backends.snap import SnapBackend
from polypkg.backends.zypper import ZypperBackend
from polypkg.models.package import PackageSource

# Probe order; also the order of sources in aggregate listings before sorting
BACKENDS: tuple[type[Backend], ...] = (
    AptBackend,
    DnfBackend,
    PacmanBackend,
    ZypperBackend,
    FlatpakBackend,
    SnapBackend,
    NpmBackend,
    PipBackend,
    PipxBackend,
    CargoBackend,
    BrewBackend,
    AurBackend,
    CondaBackend,
    MambaBackend,
    DartBackend,
    DebBackend,
    AppImageBackend,
)


def backend_class(source: PackageSource) -> type[Backend]:
    """Return the backend class that handles a package source."""
    for backend_cls in BACKENDS:
        if backend_cls().source == source:
            return backend_cls
    msg = f"No backend class for {source!r}"
    raise KeyError(msg)


__all__ = [
    "BACKENDS",
    "SEARCH_LIMIT",
    "AppImageBackend",
    "AptBackend",
    "AurBackend",
    "Backend",
    "BrewBackend",
    "CargoBackend",
    "CondaBackend",
    "DartBackend",
    "DebBackend",
    "DnfBackend",
    "FlatpakBackend",
    "MambaBackend",
    "NpmBackend",
    "PacmanBackend",
    "PipBackend",
    "PipxBackend",
    "SnapBackend",
    "ZypperBackend",
    "backend_class",
]
