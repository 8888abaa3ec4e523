"""Compute-once values shared for the lifetime of the process."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class AsyncOnce(Generic[T]):
    """A value computed by an async factory on first access, then cached forever.

    Concurrent first accesses share a single computation. A factory that
    raises leaves the cell empty so the next access retries.

    Example:
        >>> supports_terminate = AsyncOnce(probe_terminate_flag)
        >>> if await supports_terminate.get():
        ...     ...
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]) -> None:
        self._factory = factory
        self._value: T | None = None
        self._initialized = False
        self._lock: asyncio.Lock | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def initialized(self) -> bool:
        """Check if the value has been computed."""
        return self._initialized

    async def get(self) -> T:
        """Return the cached value, computing it on first call."""
        if self._initialized:
            return self._value  # type: ignore[return-value]

        # Created lazily so the cell can be built at import time; a lock is
        # bound to one event loop, so each new loop gets its own
        loop = asyncio.get_running_loop()
        if self._lock is None or self._loop is not loop:
            self._lock = asyncio.Lock()
            self._loop = loop

        async with self._lock:
            if not self._initialized:
                self._value = await self._factory()
                self._initialized = True
        return self._value  # type: ignore[return-value]

    def reset(self) -> None:
        """Forget the cached value (tests only)."""
        self._value = None
        self._initialized = False
        self._lock = None
        self._loop = None
