"""Tracked background tasks for the operator console."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Awaitable, Dict, Iterable

from garment_capture.core.logging_utils import LoggerLike, ensure_structured_logger


class TaskManager:
    """Owns asyncio tasks spawned on behalf of the operator, with clean shutdown."""

    def __init__(self, *, logger: LoggerLike = None) -> None:
        self._logger = ensure_structured_logger(logger, fallback_name=__name__)
        self._tasks: Dict[str, asyncio.Task[Any]] = {}
        self._counter = itertools.count(1)
        self._closed = False

    def create(self, name: str, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        """Spawn a tracked task; ``name`` gets a sequence suffix so repeats coexist."""

        if self._closed:
            raise RuntimeError(f"Cannot create task {name}; shutdown already requested")

        key = f"{name}#{next(self._counter)}"
        task = asyncio.create_task(self._run_task(key, coro), name=key)
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._tasks.pop(key, None))
        self._logger.debug("Task created: %s", key)
        return task

    async def _run_task(self, name: str, coro: Awaitable[Any]) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            self._logger.debug("Task cancelled: %s", name)
            raise
        except Exception:
            self._logger.exception("Task error: %s", name)
            return None

    async def wait_all(self) -> None:
        """Wait until every tracked task (including ones spawned meanwhile) is done."""

        while self._tasks:
            await asyncio.wait(list(self._tasks.values()))

    async def cancel_all(self, *, reason: str = "shutdown", timeout: float = 5.0) -> None:
        self._closed = True
        if not self._tasks:
            return

        self._logger.info("Cancelling %d tasks (%s)", len(self._tasks), reason)
        for task in list(self._tasks.values()):
            if not task.done():
                task.cancel()
        await self._wait_for_tasks(self._tasks.values(), timeout=timeout)
        self._tasks.clear()

    async def _wait_for_tasks(self, tasks: Iterable[asyncio.Task[Any]], *, timeout: float) -> None:
        pending = {task for task in tasks if not task.done()}
        if pending:
            await asyncio.wait(pending, timeout=timeout)


__all__ = ["TaskManager"]
