"""
Optimistic transaction runner.

``run_transaction`` is the only way the booking core mutates seat
inventory.  Each attempt gets a fresh session; the callback reads what it
needs *inside* that session, mutates ORM objects, and the commit either
applies everything or nothing.

Failure classification
----------------------
* ``StaleDataError`` (a versioned row changed since it was read), SQLite
  lock contention and PostgreSQL serialization failures / deadlocks are
  **conflicts**: roll back, sleep ``backoff * 2**(attempt - 1)`` (plus
  jitter) and run the callback again from scratch.  After
  ``max_attempts`` a ``ConflictError`` is raised.
* Connection-level failures become ``StoreUnavailableError`` and are not
  retried.
* Domain errors raised by the callback roll back and propagate unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from src.config import settings
from src.domain.errors import ConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_RETRYABLE_SQLSTATES = {"40001", "40P01"}  # serialization_failure, deadlock_detected


def is_conflict(exc: BaseException) -> bool:
    """True if *exc* means a concurrent transaction invalidated our reads."""
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in _RETRYABLE_SQLSTATES:
            return True
        if isinstance(exc, OperationalError) and "database is locked" in str(orig):
            return True
    return False


def is_unavailable(exc: BaseException) -> bool:
    if isinstance(exc, (InterfaceError, OperationalError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (ConnectionError, OSError))


async def run_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    fn: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: int | None = None,
    backoff: float | None = None,
) -> T:
    """Run *fn* atomically, retrying on optimistic conflicts."""
    attempts = max_attempts or settings.transaction_max_attempts
    delay = settings.transaction_backoff_seconds if backoff is None else backoff

    for attempt in range(1, attempts + 1):
        try:
            async with session_factory() as session:
                async with session.begin():
                    result = await fn(session)
                return result
        except Exception as exc:
            if is_conflict(exc):
                if attempt == attempts:
                    logger.warning(
                        "Transaction conflict, giving up after %d attempts", attempts
                    )
                    raise ConflictError(attempts=attempts) from exc
                logger.warning(
                    "Transaction conflict (attempt %d/%d), retrying", attempt, attempts
                )
                pause = delay * 2 ** (attempt - 1)
                await asyncio.sleep(pause + random.uniform(0, pause))
                continue
            if is_unavailable(exc):
                logger.error("Store unavailable: %s", exc)
                raise StoreUnavailableError("Database is unavailable") from exc
            raise

    # unreachable: the loop either returns or raises
    raise ConflictError(attempts=attempts)
