"""Tests for retry policies."""

from unittest.mock import AsyncMock

import pytest

from restock_engine.errors import BackingStoreError, NotFound
from restock_engine.service.retry import WRITE_ONCE, RetryPolicy, call_with_retry, read_policy


class TestRetryPolicy:
    def test_exponential_backoff_capped(self):
        policy = RetryPolicy(name="read", max_attempts=6, base_delay=0.5, max_delay=4.0)
        assert [policy.delay_for(i) for i in range(5)] == [0.5, 1.0, 2.0, 4.0, 4.0]

    def test_read_policy_has_at_least_one_attempt(self):
        assert read_policy(max_attempts=0).max_attempts == 1

    def test_write_once(self):
        assert WRITE_ONCE.max_attempts == 1


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_recovers_from_transient_failure(self):
        fn = AsyncMock(side_effect=[BackingStoreError("down"), "ok"])
        result = await call_with_retry(read_policy(3, base_delay=0.0), fn, "arg")
        assert result == "ok"
        assert fn.await_count == 2
        fn.assert_awaited_with("arg")

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        fn = AsyncMock(side_effect=BackingStoreError("down"))
        with pytest.raises(BackingStoreError):
            await call_with_retry(read_policy(3, base_delay=0.0), fn)
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_writes_are_not_retried(self):
        fn = AsyncMock(side_effect=BackingStoreError("down"))
        with pytest.raises(BackingStoreError):
            await call_with_retry(WRITE_ONCE, fn)
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_other_errors_propagate_immediately(self):
        fn = AsyncMock(side_effect=NotFound("Product", "p1"))
        with pytest.raises(NotFound):
            await call_with_retry(read_policy(3, base_delay=0.0), fn)
        assert fn.await_count == 1
