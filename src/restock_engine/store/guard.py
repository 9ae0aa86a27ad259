"""Translate driver-level failures into BackingStoreError."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from restock_engine.errors import BackingStoreError

logger = logging.getLogger(__name__)


def is_transient(exc: Exception) -> bool:
    """Connection drops, timeouts and server restarts."""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


@asynccontextmanager
async def store_call(what: str, session: AsyncSession | None = None) -> AsyncIterator[None]:
    """Wrap one store operation; transient failures become BackingStoreError.

    When a session is given it is rolled back before any error propagates,
    so a failed write never leaves half of its changes pending.
    """
    try:
        yield
    except Exception as exc:
        if session is not None:
            await session.rollback()
        if not isinstance(exc, DBAPIError):
            raise
        if is_transient(exc):
            logger.warning("Backing store failure during %s: %s", what, str(exc)[:200])
            raise BackingStoreError(f"{what} failed: backing store unavailable") from exc
        raise
