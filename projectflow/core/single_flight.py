"""Single-flight coalescing for the bootstrap fetch.

Concurrent fetches for the same key share one in-flight task. Asking for a
different key drops the reuse and starts a fresh task; the superseded task
still finishes, and its callers use `is_current` to discard the late result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class SingleFlight:
    def __init__(self) -> None:
        self._key: Hashable | None = None
        self._task: asyncio.Future | None = None

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Await factory() for key, joining an in-flight call for the same key."""
        if self._task is not None and not self._task.done() and self._key == key:
            logger.debug("Joining in-flight fetch for %r", key)
        else:
            if self._task is not None and not self._task.done():
                logger.debug("Fetch for %r superseded by %r", self._key, key)
            self._key = key
            self._task = asyncio.ensure_future(factory())
        # shield: one cancelled waiter must not cancel the shared task
        return await asyncio.shield(self._task)

    def is_current(self, key: Hashable) -> bool:
        return self._key == key

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()
