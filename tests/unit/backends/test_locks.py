"""Unit tests for package lock probing."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from polypkg.backends.locks import probe_locks
from polypkg.utils.shell import CommandResult


class TestProbeLocks:
    """Tests for probe_locks function."""

    async def test_no_lock_files(self, tmp_path: Path) -> None:
        """Missing lock files mean unlocked."""
        status = await probe_locks([str(tmp_path / "lock")])
        assert not status.is_locked
        assert status.lock_files == ()

    @patch("polypkg.backends.locks.command_exists", return_value=False)
    async def test_unverified_without_fuser(self, _exists: MagicMock, tmp_path: Path) -> None:
        """Without fuser an existing lock file is reported as unverified."""
        lock = tmp_path / "db.lck"
        lock.touch()

        status = await probe_locks([str(lock)])

        assert status.is_locked
        assert not status.verified
        assert status.lock_files == (str(lock),)

    @patch("polypkg.backends.locks.run_command")
    @patch("polypkg.backends.locks.command_exists", return_value=True)
    async def test_held_lock(self, _exists: MagicMock, mock_run: MagicMock, tmp_path: Path) -> None:
        """A PID from fuser names the holder."""
        lock = tmp_path / "lock"
        lock.touch()
        mock_run.return_value = CommandResult(stdout=" 999999999", stderr=f"{lock}:", returncode=0)

        status = await probe_locks([str(lock)])

        assert status.is_locked
        assert status.verified
        assert status.lock_holder == "PID 999999999"

    @patch("polypkg.backends.locks.os.geteuid", return_value=0)
    @patch("polypkg.backends.locks.run_command")
    @patch("polypkg.backends.locks.command_exists", return_value=True)
    async def test_free_lock(
        self, _exists: MagicMock, mock_run: MagicMock, _euid: MagicMock, tmp_path: Path
    ) -> None:
        """As root, an existing lock file nobody holds is unlocked."""
        lock = tmp_path / "lock"
        lock.touch()
        mock_run.return_value = CommandResult(stdout="", stderr="", returncode=1)

        status = await probe_locks([str(lock)])

        assert not status.is_locked
        assert status.lock_files == (str(lock),)

    @patch("polypkg.backends.locks.os.geteuid", return_value=1000)
    @patch("polypkg.backends.locks.run_command")
    @patch("polypkg.backends.locks.command_exists", return_value=True)
    async def test_unprivileged_no_holder(
        self, _exists: MagicMock, mock_run: MagicMock, _euid: MagicMock, tmp_path: Path
    ) -> None:
        """A normal user cannot see root's holders, so the lock stays unverified."""
        lock = tmp_path / "lock-frontend"
        lock.touch()
        mock_run.return_value = CommandResult(stdout="", stderr="", returncode=1)

        status = await probe_locks([str(lock)])

        assert status.is_locked
        assert not status.verified
        assert status.lock_holder is None
