"""
Fire-and-forget post-commit hooks.

Side effects that must never affect the outcome of a committed booking
transaction (profile stats, mostly) are scheduled here once the commit
has succeeded.  Failures are logged and swallowed; ``drain`` lets the
app wait for in-flight hooks on shutdown and lets tests observe them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable

logger = logging.getLogger(__name__)


class PostCommitHooks:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def fire(self, name: str, awaitable: Awaitable[object]) -> asyncio.Task:
        task = asyncio.create_task(self._run(name, awaitable))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    async def _run(name: str, awaitable: Awaitable[object]) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception("Post-commit hook %r failed", name)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every scheduled hook has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
