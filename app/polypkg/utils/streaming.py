"""Live output streaming for long-running commands.

A streamed command gets one reader task per standard stream. Each
reader sanitizes every completed line, drops blank ones and forwards the
rest, tagged, into a bounded LineChannel. Completion is only reported
once the process has exited and both readers have drained their pipes.
"""

import asyncio
import logging
from collections.abc import Callable

from polypkg.core.config import DEFAULT_STREAM_BUFFER
from polypkg.core.errors import CommandSpawnFailure, CommandTimeout
from polypkg.models.stream import StreamLine, StreamResult
from polypkg.utils.ansi import strip_ansi
from polypkg.utils.shell import DEFAULT_ELEVATION, quote_command

logger = logging.getLogger(__name__)

# Per-line read limit for the child's pipes
_LINE_LIMIT = 1024 * 1024


class LineChannel:
    """Bounded delivery channel between stream readers and one consumer.

    ``send`` blocks while the channel is full, throttling how fast the
    child's output is drained. The consumer iterates with ``async for``
    (or ``recv``) until the producing command has finished, or calls
    ``close`` to stop receiving; later sends then return False.

    Example:
        >>> channel = LineChannel(64)
        >>> task = asyncio.create_task(run_streaming("apt-get", ["update"], channel))
        >>> async for line in channel:
        ...     print(line.text)
        >>> result = await task
    """

    def __init__(self, maxsize: int = DEFAULT_STREAM_BUFFER) -> None:
        if maxsize < 1:
            msg = "Channel capacity must be at least 1"
            raise ValueError(msg)
        self._queue: asyncio.Queue[StreamLine] = asyncio.Queue(maxsize)
        self._done = asyncio.Event()
        self._closing = asyncio.Event()

    @property
    def closed(self) -> bool:
        """Check if the consumer stopped receiving."""
        return self._closing.is_set()

    async def send(self, line: StreamLine) -> bool:
        """Deliver a line, waiting for capacity.

        Returns:
            False if the consumer has closed the channel, including while
            this send was waiting for capacity.
        """
        if self.closed:
            return False
        if not self._queue.full():
            self._queue.put_nowait(line)
            return True

        putter = asyncio.ensure_future(self._queue.put(line))
        closer = asyncio.ensure_future(self._closing.wait())
        try:
            await asyncio.wait({putter, closer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closer.cancel()
            if not putter.done():
                putter.cancel()
        return putter.done() and not putter.cancelled() and not self.closed

    def close(self) -> None:
        """Stop receiving and release every blocked sender."""
        self._closing.set()
        while not self._queue.empty():
            self._queue.get_nowait()

    def finish(self) -> None:
        """Mark that no further lines will be sent."""
        self._done.set()

    async def recv(self) -> StreamLine | None:
        """Receive the next line.

        Returns:
            The next line, or None once the channel is closed, or once the
            producer finished and every buffered line has been received.
        """
        while True:
            if self.closed:
                return None
            if not self._queue.empty():
                return self._queue.get_nowait()
            if self._done.is_set():
                return None

            getter = asyncio.ensure_future(self._queue.get())
            finisher = asyncio.ensure_future(self._done.wait())
            closer = asyncio.ensure_future(self._closing.wait())
            await asyncio.wait(
                {getter, finisher, closer}, return_when=asyncio.FIRST_COMPLETED
            )
            finisher.cancel()
            closer.cancel()
            if getter.done() and not self.closed:
                return getter.result()
            if getter.done():
                return None
            # An item that raced the cancellation stays queued for the next pass
            getter.cancel()

    def drain(self) -> list[StreamLine]:
        """Return every line currently buffered, without waiting."""
        lines: list[StreamLine] = []
        while not self._queue.empty():
            lines.append(self._queue.get_nowait())
        return lines

    def __aiter__(self) -> "LineChannel":
        return self

    async def __anext__(self) -> StreamLine:
        line = await self.recv()
        if line is None:
            raise StopAsyncIteration
        return line


async def _pump(
    stream: asyncio.StreamReader,
    make_line: Callable[[str], StreamLine],
    channel: LineChannel,
) -> None:
    """Forward sanitized, non-empty lines from one pipe into the channel.

    Once the consumer closes the channel the pipe is still read to EOF
    and discarded, so the child never blocks on a full pipe.
    """
    forwarding = True
    while True:
        raw = await stream.readline()
        if not raw:
            break
        if not forwarding:
            continue

        text = strip_ansi(raw.decode(errors="replace").rstrip("\r\n"))
        if not text.strip():
            continue
        if not await channel.send(make_line(text)):
            forwarding = False


async def run_streaming(
    program: str,
    args: list[str],
    channel: LineChannel,
    *,
    timeout: float | None = None,
) -> StreamResult:
    """Run a command, streaming its output line by line into ``channel``.

    Within each stream lines arrive in production order; stdout and
    stderr lines may interleave. The channel is marked finished when the
    command completes, whatever the outcome.

    Args:
        program: Program to run.
        args: Arguments for the program.
        channel: Bounded channel receiving StreamLine values.
        timeout: Maximum time in seconds to wait. None waits indefinitely.

    Returns:
        StreamResult with exit code and success flag.

    Raises:
        CommandSpawnFailure: If the program cannot be started.
        CommandTimeout: If the command exceeds the timeout (it is killed).
    """
    logger.debug("Starting streaming command: %s", quote_command([program, *args]))

    try:
        try:
            proc = await asyncio.create_subprocess_exec(
                program,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_LINE_LIMIT,
            )
        except FileNotFoundError as e:
            raise CommandSpawnFailure(program, "command not found") from e
        except OSError as e:
            raise CommandSpawnFailure(program, str(e)) from e

        assert proc.stdout is not None and proc.stderr is not None
        readers = [
            asyncio.create_task(_pump(proc.stdout, StreamLine.stdout, channel)),
            asyncio.create_task(_pump(proc.stderr, StreamLine.stderr, channel)),
        ]

        try:
            await asyncio.wait_for(proc.wait(), timeout=timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            await asyncio.gather(*readers, return_exceptions=True)
            raise CommandTimeout(program, timeout or 0) from None

        # Both pipes must reach EOF before completion is reported
        await asyncio.gather(*readers)
    finally:
        channel.finish()

    # Negative return codes mean the child was killed by a signal
    returncode = proc.returncode
    exit_code = returncode if returncode is not None and returncode >= 0 else None
    logger.debug("Streaming command %s completed (exit_code=%s)", program, exit_code)
    return StreamResult(exit_code=exit_code, success=returncode == 0)


async def run_elevated_streaming(
    program: str,
    args: list[str],
    channel: LineChannel,
    *,
    elevation: str = DEFAULT_ELEVATION,
    timeout: float | None = None,
) -> StreamResult:
    """Run a program through the elevation launcher, streaming its output.

    Args:
        program: Program to run with elevated privileges.
        args: Arguments for the program.
        channel: Bounded channel receiving StreamLine values.
        elevation: Elevation launcher to wrap the program with.
        timeout: Maximum time in seconds to wait. None waits indefinitely.

    Returns:
        StreamResult with exit code and success flag.
    """
    return await run_streaming(elevation, [program, *args], channel, timeout=timeout)
