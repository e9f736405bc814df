from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..errors import AdapterError
from ..manager import ServiceManager
from ..models import ServiceAction
from .events import CommandFailed, Event, RecordsLoaded

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Runs service-manager calls as asyncio tasks.

    Each effect delivers its outcome as an event through ``deliver``; nothing
    here touches session state. Effects are never cancelled: after ``close()``
    no new effect starts and the results of running ones are dropped.
    """

    def __init__(self, manager: ServiceManager, deliver: Callable[[Event], None]) -> None:
        self._manager = manager
        self._deliver = deliver
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def close(self) -> None:
        self._closed = True

    def fetch_all(self) -> Optional[asyncio.Task]:
        if self._closed:
            return None
        return self._spawn(self._fetch_all(), "fetch-all")

    def run_action(self, action: ServiceAction, name: str) -> Optional[asyncio.Task]:
        """Run ``action`` on ``name``, then refresh whatever the outcome."""
        if self._closed:
            return None
        return self._spawn(self._action_then_refresh(action, name), f"{action.value} {name}")

    async def drain(self) -> None:
        """Wait until no effect is running, including refreshes spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Awaitable[None], label: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        logger.debug("dispatched %s", label)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("effect crashed", exc_info=exc)

    def _emit(self, event: Event) -> None:
        if self._closed:
            logger.debug("session closed, dropping %s", type(event).__name__)
            return
        self._deliver(event)

    async def _load(self) -> Event:
        try:
            records = await self._manager.list_services()
        except AdapterError as e:
            return CommandFailed(e)
        except Exception as e:
            logger.exception("listing services crashed")
            return CommandFailed(AdapterError(f"error on fetching list of services: {str(e) or type(e).__name__}"))
        return RecordsLoaded(tuple(records))

    async def _fetch_all(self) -> None:
        self._emit(await self._load())

    async def _action_then_refresh(self, action: ServiceAction, name: str) -> None:
        try:
            await self._manager.run(action, name)
        except AdapterError as e:
            if e.action is None:
                e = e.with_context(action, name)
            self._emit(CommandFailed(e))
        except Exception as e:
            logger.exception("%s %s crashed", action.value, name)
            self._emit(CommandFailed(AdapterError(str(e) or type(e).__name__, action=action, target=name)))
        # Only now, so the listing reflects the command's consequence
        self.fetch_all()
