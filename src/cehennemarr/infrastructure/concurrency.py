"""Process-wide admission control for outbound fetches.

Caps the number of simultaneous outbound requests.  Callers beyond the
cap wait in a FIFO queue; when a slot frees it is handed directly to the
oldest waiter, so a late arrival can never overtake a queued one.
"""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog

log = structlog.get_logger(__name__)


class AdmissionLimiter:
    """FIFO admission limiter shared by every outbound fetch.

    Thread-safety note: this class is *not* thread-safe but is safe
    for single-threaded asyncio (state changes only between awaits).

    Parameters:
        slots: Maximum number of concurrently admitted callers.
    """

    def __init__(self, slots: int = 5) -> None:
        if slots < 1:
            raise ValueError("slots must be >= 1")
        self.slots = slots
        self._in_flight = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def acquire(self) -> None:
        """Wait for a slot.  Admission order equals arrival order."""
        if self._in_flight < self.slots and not self._waiters:
            self._in_flight += 1
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        log.debug("admission_queued", waiting=len(self._waiters))
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # Slot was handed over just before cancellation: pass it on.
                self.release()
            else:
                self._remove_waiter(fut)
            raise

    def release(self) -> None:
        """Free a slot, handing it to the oldest live waiter if any."""
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                # in_flight stays the same: the slot changes hands
                fut.set_result(None)
                return
        self._in_flight -= 1

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """``async with limiter.slot():`` around one outbound request."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()

    def snapshot(self) -> dict[str, int]:
        """Return a diagnostic snapshot of the limiter state."""
        return {
            "slots": self.slots,
            "in_flight": self._in_flight,
            "waiting": self.waiting,
        }

    def _remove_waiter(self, fut: asyncio.Future[None]) -> None:
        try:
            self._waiters.remove(fut)
        except ValueError:
            pass
