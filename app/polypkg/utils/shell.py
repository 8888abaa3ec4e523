"""Shell execution utilities.

Provides async subprocess execution with captured output, plus the
elevation wrapper used by privileged package operations. Failures are
reported through the engine's error taxonomy so callers always get a
manual fallback command when one exists.
"""

import asyncio
import logging
import os
import shlex
import shutil
from collections.abc import Sequence
from dataclasses import dataclass

from polypkg.core.errors import (
    AuthorizationCancelled,
    CommandSpawnFailure,
    CommandTimeout,
    CommandUnsuccessful,
)

logger = logging.getLogger(__name__)

# Default privilege elevation launcher
DEFAULT_ELEVATION = "pkexec"

# Environment override forcing untranslated tool output
C_LOCALE: dict[str, str] = {"LC_ALL": "C.UTF-8", "LANG": "C.UTF-8"}

# pkexec exit status when the authentication dialog was dismissed
_PKEXEC_DISMISSED = 126

_AUTH_MARKERS = ("authentication", "authorization", "not authorized")


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0

    def lines(self) -> list[str]:
        """Return the non-blank lines of standard output."""
        return [line for line in self.stdout.splitlines() if line.strip()]

    def error_text(self, fallback: str) -> str:
        """Return stripped stderr, then stdout, then ``fallback``."""
        return self.stderr.strip() or self.stdout.strip() or fallback


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None


def quote_command(args: Sequence[str]) -> str:
    """Render an argument vector as a copy-pasteable shell command."""
    return shlex.join(args)


async def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = None,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Execute a command and capture its output.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CommandUnsuccessful on non-zero exit.
        timeout: Maximum time in seconds to wait. None waits indefinitely.
        cwd: Working directory for the command. If None, uses current directory.
        env: Additional environment variables (merged with current env).

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        CommandSpawnFailure: If the executable cannot be started.
        CommandTimeout: If the command exceeds the timeout (it is killed).
        CommandUnsuccessful: If check=True and the command fails.
    """
    full_env = {**os.environ, **env} if env else None

    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=full_env,
        )
    except FileNotFoundError as e:
        raise CommandSpawnFailure(args[0], "command not found") from e
    except PermissionError as e:
        raise CommandSpawnFailure(args[0], "permission denied") from e
    except OSError as e:
        raise CommandSpawnFailure(args[0], str(e)) from e

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        proc.kill()
        await proc.wait()
        raise CommandTimeout(args[0], timeout or 0) from None

    result = CommandResult(
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        returncode=proc.returncode if proc.returncode is not None else -1,
    )

    if check and not result.success:
        raise CommandUnsuccessful(
            f"{quote_command(args)} failed: {result.error_text(f'exit code {result.returncode}')}",
            returncode=result.returncode,
            stderr=result.stderr.strip(),
        )
    return result


async def run_elevated(
    program: str,
    args: list[str],
    *,
    context: str,
    suggest: str,
    elevation: str = DEFAULT_ELEVATION,
    timeout: float | None = None,
) -> CommandResult:
    """Run a program through the elevation launcher and capture its output.

    On failure the raised error carries ``suggest``: the exact command a
    user could run manually with elevated privileges.

    Args:
        program: Program to run with elevated privileges.
        args: Arguments for the program.
        context: Description of the intended action (e.g. "Failed to install vim").
        suggest: Manual fallback command (e.g. "sudo apt install -y vim").
        elevation: Elevation launcher to wrap the program with.
        timeout: Maximum time in seconds to wait. None waits indefinitely.

    Returns:
        CommandResult of the successful run.

    Raises:
        CommandSpawnFailure: If the elevation launcher is not installed.
        AuthorizationCancelled: If the user declined or aborted elevation.
        CommandUnsuccessful: If the program exited non-zero.
    """
    argv = [elevation, program, *args]
    logger.debug("Running elevated: %s", quote_command(argv))

    try:
        result = await run_command(argv, timeout=timeout)
    except CommandSpawnFailure as e:
        raise CommandSpawnFailure(
            elevation,
            f"{elevation} is not installed",
            context=context,
            suggestion=suggest,
        ) from e

    if result.success:
        return result

    stderr = result.stderr.strip()
    message = f"{context}: {stderr}" if stderr else f"{context} (exit code {result.returncode})"

    # pkexec does not standardize exit codes across distros, so match on stderr too
    lowered = stderr.lower()
    if result.returncode == _PKEXEC_DISMISSED or any(m in lowered for m in _AUTH_MARKERS):
        raise AuthorizationCancelled(
            f"{message}\n\nAuthorization was canceled or denied.",
            suggestion=suggest,
        )

    raise CommandUnsuccessful(
        message,
        returncode=result.returncode,
        stderr=stderr,
        suggestion=suggest,
    )
