"""Cancellation scope tied to a component's active lifetime."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LifetimeClosed(Exception):
    """The owning component went away before the call settled."""


class Lifetime:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Future] = set()
        self.closed = False

    @property
    def active(self) -> bool:
        return not self.closed

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        if self.closed:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise LifetimeClosed("component is no longer active")
        task = asyncio.ensure_future(awaitable)
        self._track(task)
        try:
            return await task
        except asyncio.CancelledError:
            if self.closed and task.cancelled():
                raise LifetimeClosed("component closed while a call was in flight") from None
            raise

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        if self.closed:
            coro.close()
            raise LifetimeClosed("component is no longer active")
        task = asyncio.ensure_future(coro)
        self._track(task)
        task.add_done_callback(_log_failure)
        return task

    def close(self) -> None:
        self.closed = True
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def _track(self, task: asyncio.Future) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def _log_failure(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Background call failed: %s", exc)
