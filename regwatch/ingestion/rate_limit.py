"""Shared minimum-interval gate for outbound requests."""

import asyncio
import logging

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforce a minimum interval between dispatched requests.

    A single instance is shared by every fetcher in the process. The
    last-dispatch timestamp is only read and written while holding the
    lock, so concurrent callers are released one interval apart.
    """

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self._last_dispatch: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until the next request may be dispatched, then claim the slot."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            if self._last_dispatch is not None:
                wait = self.min_interval - (loop.time() - self._last_dispatch)
                if wait > 0:
                    logger.debug("Rate limit: waiting %.2fs before next request", wait)
                    await asyncio.sleep(wait)
            self._last_dispatch = loop.time()
