"""Data models for polypkg.

This module exports the core data structures used throughout the engine.
"""

from polypkg.models.package import Package, PackageSource, PackageStatus
from polypkg.models.repository import LockStatus, Repository
from polypkg.models.stream import StreamKind, StreamLine, StreamResult

__all__ = [
    "LockStatus",
    "Package",
    "PackageSource",
    "PackageStatus",
    "Repository",
    "StreamKind",
    "StreamLine",
    "StreamResult",
]
