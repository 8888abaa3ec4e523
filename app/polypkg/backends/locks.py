"""Mutation lock probing for system package managers.

A source is locked when another process holds one of its well-known
lock files open. The holder is looked up with ``fuser``. When that tool
is missing, or when an unprivileged caller cannot see other users'
processes, the result is reported as unverified rather than unlocked.
"""

import logging
import os
import re
from collections.abc import Sequence
from pathlib import Path

from polypkg.models.repository import LockStatus
from polypkg.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

APT_LOCK_FILES: tuple[str, ...] = (
    "/var/lib/dpkg/lock-frontend",
    "/var/lib/dpkg/lock",
    "/var/lib/apt/lists/lock",
    "/var/cache/apt/archives/lock",
)
PACMAN_LOCK_FILES: tuple[str, ...] = ("/var/lib/pacman/db.lck",)
DNF_LOCK_FILES: tuple[str, ...] = ("/var/lib/dnf/rpmdb_lock.pid",)
ZYPPER_LOCK_FILES: tuple[str, ...] = ("/run/zypp.pid",)

_PID_PATTERN = re.compile(r"\b(\d+)\b")


def _process_name(pid: str) -> str:
    """Resolve a PID to its command name, falling back to 'PID <n>'."""
    try:
        name = Path(f"/proc/{pid}/comm").read_text().strip()
    except OSError:
        return f"PID {pid}"
    return name or f"PID {pid}"


async def probe_locks(lock_files: Sequence[str]) -> LockStatus:
    """Check which lock files exist and which process holds them.

    Lock files such as dpkg's persist between runs, so a source is only
    locked when a process has one open. Without fuser the holder cannot
    be checked and any existing file counts as held. The same applies to
    non-root callers, since fuser cannot see processes of other users.

    Args:
        lock_files: Candidate lock file paths.

    Returns:
        LockStatus describing the lock state.
    """
    existing = tuple(path for path in lock_files if Path(path).exists())
    if not existing:
        return LockStatus()

    if not command_exists("fuser"):
        logger.debug("fuser not available, cannot verify holder of %s", ", ".join(existing))
        return LockStatus(is_locked=True, lock_files=existing, verified=False)

    # fuser prints PIDs on stdout and file names on stderr
    result = await run_command(["fuser", *existing])
    pids = list(dict.fromkeys(_PID_PATTERN.findall(result.stdout)))
    if not pids:
        if os.geteuid() != 0:
            logger.debug("No visible holder of %s, not running as root", ", ".join(existing))
            return LockStatus(is_locked=True, lock_files=existing, verified=False)
        return LockStatus(is_locked=False, lock_files=existing)

    holder = _process_name(pids[0])
    logger.info("Package lock held by %s (pid %s)", holder, pids[0])
    return LockStatus(is_locked=True, lock_files=existing, lock_holder=holder)
