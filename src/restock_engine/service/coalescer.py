"""Request coalescing: concurrent callers asking for the same key share one fetch."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class RequestCoalescer:
    """Map of key -> in-flight task; the entry is evicted when the task finishes.

    A caller that stops waiting (its own task is cancelled) does not cancel the
    shared fetch for the other waiters. Owned by whoever constructs it; there
    is no module-level instance.
    """

    def __init__(self) -> None:
        self._pending: dict[Hashable, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda _t, k=key: self._evict(k, _t))
        else:
            logger.debug("Coalesced request for %r", key)
        return await asyncio.shield(task)

    def _evict(self, key: Hashable, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled() and task.exception() is not None:
            # retrieved here so an unawaited failure is not reported twice
            logger.debug("Coalesced request %r failed: %s", key, task.exception())
