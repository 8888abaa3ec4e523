"""Error taxonomy for engine operations.

Every failure raised by the engine derives from PackageError. Errors
optionally carry a structured ``suggestion``: a verbatim shell command
the user can run manually (usually with elevated privileges) to achieve
the same effect.

Presentation layers that only handle plain text receive the suggestion
encoded behind SUGGEST_PREFIX (see ``PackageError.to_message`` and
``split_suggestion``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from polypkg.models.package import PackageSource

# Marker separating the explanation from the manual fallback command
SUGGEST_PREFIX = "POLYPKG_SUGGEST:"


class PackageError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable explanation.
        suggestion: Manual command that achieves the same effect, if any.
    """

    def __init__(self, message: str, *, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion

    def __str__(self) -> str:
        return self.message

    def to_message(self) -> str:
        """Encode the error as plain text for components that expect it.

        Returns:
            The message, followed by the marker and suggested command
            when a suggestion exists.
        """
        if not self.suggestion:
            return self.message
        return f"{self.message}\n\n{SUGGEST_PREFIX} {self.suggestion}"


class NoBackendAvailable(PackageError):
    """Raised when no backend is registered for the addressed source."""

    def __init__(self, source: PackageSource) -> None:
        super().__init__(
            f"No backend available for {source}. "
            "This package source may not be installed on your system."
        )
        self.source = source


class SourceDisabled(PackageError):
    """Raised when the addressed source is registered but disabled."""

    def __init__(self, source: PackageSource) -> None:
        super().__init__(
            f"{source} source is disabled. Enable it to manage packages from this source."
        )
        self.source = source


class InvalidPackageName(PackageError):
    """Raised when a package name is unsafe to pass to a package manager."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Invalid package name {name!r}: {reason}")
        self.name = name
        self.reason = reason


class CommandSpawnFailure(PackageError):
    """Raised when a process could not be started at all."""

    def __init__(
        self,
        program: str,
        reason: str,
        *,
        context: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        message = f"{context}: {reason}" if context else f"Failed to start {program}: {reason}"
        super().__init__(message, suggestion=suggestion)
        self.program = program


class CommandUnsuccessful(PackageError):
    """Raised when a process ran and exited with a non-zero status.

    Attributes:
        returncode: Exit code of the process (None if killed by a signal).
        stderr: Captured standard error, stripped.
    """

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
        suggestion: str | None = None,
    ) -> None:
        super().__init__(message, suggestion=suggestion)
        self.returncode = returncode
        self.stderr = stderr


class CommandTimeout(PackageError):
    """Raised when a process exceeded the configured timeout and was killed."""

    def __init__(self, program: str, timeout: float) -> None:
        super().__init__(f"{program} did not finish within {timeout:g} seconds")
        self.program = program
        self.timeout = timeout


class AuthorizationCancelled(PackageError):
    """Raised when the user declined or aborted privilege elevation.

    Presentation layers may choose to suppress this rather than alarm
    the user.
    """

    def __init__(self, message: str, *, suggestion: str | None = None) -> None:
        super().__init__(message, suggestion=suggestion)


class ParseFailure(PackageError):
    """Raised when tool output does not have the expected shape."""


class UnsupportedOperation(PackageError):
    """Raised by optional capabilities a source does not implement."""

    def __init__(self, operation: str, source: PackageSource | None = None) -> None:
        where = f" for {source}" if source is not None else " for this source"
        super().__init__(f"{operation} is not supported{where}")
        self.operation = operation
        self.source = source


def split_suggestion(text: str) -> tuple[str, str | None]:
    """Split a plain-text error into its explanation and suggested command.

    Args:
        text: Error message, possibly produced by ``PackageError.to_message``.

    Returns:
        Tuple of (message, command). The command is None when the text has
        no marker or nothing follows it; the message is returned unchanged
        when no marker is present.
    """
    index = text.find(SUGGEST_PREFIX)
    if index == -1:
        return text, None

    message = text[:index].strip()
    command = text[index + len(SUGGEST_PREFIX) :].strip()
    return message, command or None


def error_message(error: BaseException) -> str:
    """Render any exception for a plain-text consumer."""
    if isinstance(error, PackageError):
        return error.to_message()
    return str(error)
