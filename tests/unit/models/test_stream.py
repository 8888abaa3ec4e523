"""Unit tests for stream and repository models."""

import pytest
from polypkg.models.package import PackageSource
from polypkg.models.repository import LockStatus, Repository
from polypkg.models.stream import StreamKind, StreamLine, StreamResult


class TestStreamLine:
    """Tests for StreamLine."""

    def test_constructors_tag_kind(self) -> None:
        """stdout/stderr constructors set the originating stream."""
        assert StreamLine.stdout("a").kind == StreamKind.STDOUT
        assert StreamLine.stderr("b").kind == StreamKind.STDERR

    def test_is_stderr(self) -> None:
        """is_stderr reports the stream."""
        assert StreamLine.stderr("warn").is_stderr
        assert not StreamLine.stdout("ok").is_stderr

    def test_equality(self) -> None:
        """Lines with the same kind and text are equal."""
        assert StreamLine.stdout("x") == StreamLine(StreamKind.STDOUT, "x")


class TestStreamResult:
    """Tests for StreamResult."""

    def test_signal_termination(self) -> None:
        """A killed process has no exit code and is not successful."""
        result = StreamResult(exit_code=None, success=False)
        assert result.exit_code is None
        assert not result.success


class TestRepositoryModels:
    """Tests for Repository and LockStatus."""

    def test_repository_defaults(self) -> None:
        """Repository is enabled by default with no url."""
        repo = Repository(name="flathub", source=PackageSource.FLATPAK)
        assert repo.enabled
        assert repo.url is None

    def test_lock_status_defaults(self) -> None:
        """Default LockStatus is unlocked and verified."""
        status = LockStatus()
        assert not status.is_locked
        assert status.lock_files == ()
        assert status.verified

    def test_repository_frozen(self) -> None:
        """Repository is immutable."""
        repo = Repository(name="main", source=PackageSource.APT)
        with pytest.raises(AttributeError):
            repo.enabled = False  # type: ignore[misc]
