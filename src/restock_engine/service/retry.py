"""Retry policies for calls to the backing store.

Idempotent reads get a bounded retry with exponential backoff. Writes
(purchase order creation, lifecycle transitions, rule mutations) get a
single attempt: a duplicated write is worse than a loud failure.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from restock_engine.errors import BackingStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    name: str
    max_attempts: int
    base_delay: float = 0.5
    max_delay: float = 4.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before the next attempt (attempt is 0-based)."""
        return min(self.max_delay, self.base_delay * (2 ** attempt))


WRITE_ONCE = RetryPolicy(name="write", max_attempts=1, base_delay=0.0)


def read_policy(max_attempts: int = 3, base_delay: float = 0.5) -> RetryPolicy:
    return RetryPolicy(name="read", max_attempts=max(1, max_attempts), base_delay=base_delay)


async def call_with_retry(
    policy: RetryPolicy,
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await fn(*args, **kwargs), retrying BackingStoreError per the policy.

    Any other exception propagates immediately.
    """
    last_error: BackingStoreError | None = None
    for attempt in range(policy.max_attempts):
        try:
            return await fn(*args, **kwargs)
        except BackingStoreError as exc:
            last_error = exc
            if attempt + 1 >= policy.max_attempts:
                break
            wait = policy.delay_for(attempt)
            logger.warning(
                "%s call %s failed (attempt %d/%d): %s, retrying in %.1fs",
                policy.name,
                getattr(fn, "__name__", "store"),
                attempt + 1,
                policy.max_attempts,
                exc,
                wait,
            )
            await asyncio.sleep(wait)

    assert last_error is not None
    raise last_error
