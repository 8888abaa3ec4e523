"""Unit tests for the engine error taxonomy."""

import pytest
from polypkg.core.errors import (
    SUGGEST_PREFIX,
    AuthorizationCancelled,
    CommandTimeout,
    InvalidPackageName,
    NoBackendAvailable,
    PackageError,
    SourceDisabled,
    UnsupportedOperation,
    error_message,
    split_suggestion,
)
from polypkg.models.package import PackageSource


class TestPackageError:
    """Tests for PackageError and its message encoding."""

    def test_message_without_suggestion(self) -> None:
        """to_message is the plain message without a suggestion."""
        error = PackageError("boom")
        assert str(error) == "boom"
        assert error.to_message() == "boom"

    def test_message_with_suggestion(self) -> None:
        """to_message appends the marker and the command."""
        error = PackageError("Failed to install vim", suggestion="sudo apt install -y vim")
        assert error.to_message() == (
            f"Failed to install vim\n\n{SUGGEST_PREFIX} sudo apt install -y vim"
        )

    def test_subclasses_are_package_errors(self) -> None:
        """Every engine error derives from PackageError."""
        for error in (
            NoBackendAvailable(PackageSource.SNAP),
            SourceDisabled(PackageSource.SNAP),
            InvalidPackageName("-rf", "must not start with '-'"),
            CommandTimeout("apt-get", 5),
            AuthorizationCancelled("denied"),
            UnsupportedOperation("Downgrade", PackageSource.NPM),
        ):
            assert isinstance(error, PackageError)

    def test_source_specific_messages(self) -> None:
        """Routing errors name the source."""
        assert "Snap" in str(NoBackendAvailable(PackageSource.SNAP))
        assert "disabled" in str(SourceDisabled(PackageSource.SNAP))
        assert str(UnsupportedOperation("Downgrade", PackageSource.NPM)) == (
            "Downgrade is not supported for npm"
        )

    def test_timeout_message(self) -> None:
        """CommandTimeout reports the limit."""
        assert str(CommandTimeout("apt-get", 2.5)) == "apt-get did not finish within 2.5 seconds"


class TestSplitSuggestion:
    """Tests for split_suggestion."""

    def test_round_trip(self) -> None:
        """A suggestion survives encoding into plain text."""
        error = PackageError("Failed", suggestion="sudo snap remove x")
        assert split_suggestion(error.to_message()) == ("Failed", "sudo snap remove x")

    def test_no_marker(self) -> None:
        """Text without the marker is returned unchanged."""
        assert split_suggestion("  plain text ") == ("  plain text ", None)

    def test_marker_without_command(self) -> None:
        """A marker with nothing after it yields no command."""
        assert split_suggestion(f"msg\n{SUGGEST_PREFIX}   ") == ("msg", None)

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (PackageError("a", suggestion="b"), f"a\n\n{SUGGEST_PREFIX} b"),
            (ValueError("oops"), "oops"),
        ],
    )
    def test_error_message(self, error: BaseException, expected: str) -> None:
        """error_message encodes engine errors and stringifies others."""
        assert error_message(error) == expected
