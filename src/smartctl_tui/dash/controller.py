from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..manager import ServiceManager
from ..models import ActiveFilter, Mode, SessionState, SessionView, clamp_index
from .dispatcher import CommandDispatcher
from .events import (
    ApplyRunningFilter,
    CancelSearch,
    ClearFilter,
    CommandFailed,
    CommitSearch,
    EnterSearch,
    Event,
    MoveSelection,
    Quit,
    RecordsLoaded,
    Refresh,
    SearchTextChanged,
    SelectRow,
    ServiceActionRequested,
)

logger = logging.getLogger(__name__)

RenderFn = Callable[[SessionView], None]


class SessionController:
    """Sole owner and writer of the session state.

    Key presses and effect outcomes are submitted to one queue; ``run()``
    takes them off one at a time, applies the matching transition and asks
    for a render whenever something observable changed.
    """

    def __init__(
        self,
        manager: ServiceManager,
        render: Optional[RenderFn] = None,
        on_quit: Optional[Callable[[], None]] = None,
    ) -> None:
        self._state = SessionState()
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._render = render
        self._on_quit = on_quit
        self._closed = False
        self.dispatcher = CommandDispatcher(manager, self.submit)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Events queued but not yet processed."""
        return self._queue.qsize()

    @property
    def mode(self) -> Mode:
        return self._state.mode

    def view(self) -> SessionView:
        return SessionView.of(self._state)

    def submit(self, event: Event) -> None:
        if self._closed:
            logger.debug("session closed, ignoring %s", type(event).__name__)
            return
        self._queue.put_nowait(event)

    async def run(self) -> None:
        logger.info("session started")
        self.dispatcher.fetch_all()
        self._emit_render()
        while not self._closed:
            event = await self._queue.get()
            self.process(event)
        logger.info("session ended")

    def process(self, event: Event) -> None:
        """Apply one event and render if it changed anything."""
        if self.handle(event):
            self._emit_render()

    def handle(self, event: Event) -> bool:
        if self._closed:
            return False
        s = self._state

        if isinstance(event, Quit):
            self._closed = True
            self.dispatcher.close()
            if self._on_quit is not None:
                self._on_quit()
            return False

        if isinstance(event, RecordsLoaded):
            s.all_records = event.records
            s.rederive()
            if s.mode is Mode.ERROR:
                s.mode = Mode.BROWSING
                s.last_error = None
            return True

        if isinstance(event, CommandFailed):
            logger.warning("%s", event.error)
            s.mode = Mode.ERROR
            s.last_error = event.error
            return True

        if s.mode is Mode.SEARCHING:
            return self._handle_searching(event)
        if s.mode is Mode.BROWSING:
            return self._handle_browsing(event)
        # ERROR: nothing but quit and outcome events
        return False

    def _handle_searching(self, event: Event) -> bool:
        s = self._state
        if isinstance(event, SearchTextChanged):
            if s.search_buffer == event.text:
                return False
            s.search_buffer = event.text
            return True
        if isinstance(event, CancelSearch):
            s.mode = Mode.BROWSING
            s.search_buffer = ""
            return True
        if isinstance(event, CommitSearch):
            s.mode = Mode.BROWSING
            s.search_term = s.search_buffer
            s.search_buffer = ""
            s.active_filter = ActiveFilter.NONE
            s.rederive()
            return True
        return False

    def _handle_browsing(self, event: Event) -> bool:
        s = self._state
        if isinstance(event, EnterSearch):
            s.mode = Mode.SEARCHING
            s.search_buffer = ""
            return True
        if isinstance(event, MoveSelection):
            if s.selected_index is None:
                return False
            new = max(0, min(s.selected_index + event.delta, len(s.visible_records) - 1))
            if new == s.selected_index:
                return False
            s.selected_index = new
            return True
        if isinstance(event, SelectRow):
            new = clamp_index(event.index, len(s.visible_records))
            if new == s.selected_index:
                return False
            s.selected_index = new
            return True
        if isinstance(event, ApplyRunningFilter):
            s.active_filter = ActiveFilter.RUNNING
            s.search_term = ""
            s.rederive()
            self.dispatcher.fetch_all()
            return True
        if isinstance(event, ClearFilter):
            s.active_filter = ActiveFilter.NONE
            s.search_term = ""
            s.rederive()
            self.dispatcher.fetch_all()
            return True
        if isinstance(event, Refresh):
            self.dispatcher.fetch_all()
            return False
        if isinstance(event, ServiceActionRequested):
            target = event.target
            if target is None:
                selected = s.selected
                if selected is None:
                    return False
                target = selected.name
            logger.info("requested %s %s", event.action.value, target)
            self.dispatcher.run_action(event.action, target)
            return False
        return False

    def _emit_render(self) -> None:
        if self._render is not None:
            self._render(self.view())
