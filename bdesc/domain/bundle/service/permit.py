"""Counting permit pool shared by every fetch of one resolution."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class PermitPool:
    """Caps the number of concurrently running operations.

    One pool is created per resolution and shared across the whole recursive
    walk, so the cap holds for the entire graph and not per level.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("permit pool size must be >= 1")
        self._size = size
        self._semaphore = asyncio.Semaphore(size)
        self._in_use = 0
        self._peak = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def peak(self) -> int:
        """Highest number of permits held at the same time so far."""
        return self._peak

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        """Hold one permit for the duration of the block, released even on error."""
        async with self._semaphore:
            self._in_use += 1
            self._peak = max(self._peak, self._in_use)
            try:
                yield
            finally:
                self._in_use -= 1
