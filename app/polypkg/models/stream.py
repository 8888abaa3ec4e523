"""Live output records produced while a command runs."""

from dataclasses import dataclass
from enum import Enum


class StreamKind(Enum):
    """Which standard stream a line came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True, slots=True)
class StreamLine:
    """One completed, sanitized, non-empty output line.

    Attributes:
        kind: Originating stream
        text: Line content without terminal control sequences
    """

    kind: StreamKind
    text: str

    @classmethod
    def stdout(cls, text: str) -> "StreamLine":
        """Create a line read from standard output."""
        return cls(StreamKind.STDOUT, text)

    @classmethod
    def stderr(cls, text: str) -> "StreamLine":
        """Create a line read from standard error."""
        return cls(StreamKind.STDERR, text)

    @property
    def is_stderr(self) -> bool:
        """Check if the line came from standard error."""
        return self.kind == StreamKind.STDERR


@dataclass(frozen=True, slots=True)
class StreamResult:
    """Completion record of a streamed command.

    Attributes:
        exit_code: Process exit code, None if terminated by a signal
        success: Whether the process exited with status 0
    """

    exit_code: int | None
    success: bool
