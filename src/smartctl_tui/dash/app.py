from __future__ import annotations

import asyncio
from asyncio import Task
from contextlib import suppress
from pathlib import Path

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.coordinate import Coordinate
from textual.message import Message
from textual.widgets import DataTable, Footer, Input, Label, Static

from ..manager import ServiceManager
from ..models import Mode, ServiceAction, ServiceItem, SessionView
from .controller import SessionController
from .events import (
    ApplyRunningFilter,
    CancelSearch,
    ClearFilter,
    CommitSearch,
    EnterSearch,
    MoveSelection,
    Quit,
    Refresh,
    SearchTextChanged,
    SelectRow,
    ServiceActionRequested,
)

TITLE = "SmartCTL: manage systemd"


class SearchInput(Input):
    """Search box; Escape gives up on the search instead of bubbling."""

    BINDINGS = [Binding("escape", "cancel_search", "Cancel", show=False)]

    class Cancelled(Message):
        pass

    def action_cancel_search(self) -> None:
        self.post_message(self.Cancelled())


class ServicesApp(App):
    AUTO_FOCUS = None
    CSS_PATH = Path(__file__).with_name("app.tcss")
    BINDINGS = [
        Binding("up,k", "move(-1)", "Up", show=False),
        Binding("down,j", "move(1)", "Down", show=False),
        Binding("s", "service('start')", "Start"),
        Binding("x", "service('stop')", "Stop"),
        Binding("e", "service('enable')", "Enable"),
        Binding("d", "service('disable')", "Disable"),
        Binding("r", "service('restart')", "Restart"),
        Binding("/", "search", "Search"),
        Binding("f", "filter_running", "Running only"),
        Binding("c", "clear_filter", "Clear filter"),
        Binding("ctrl+r", "refresh", "Refresh"),
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(self, manager: ServiceManager) -> None:
        super().__init__()
        self.manager = manager
        self.controller = SessionController(manager, render=self.render_view, on_quit=self.exit)
        self.table: DataTable | None = None
        self._items: tuple[ServiceItem, ...] | None = None
        self._session_task: Task | None = None

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal():
                yield Label(TITLE, id="title")
                yield Label("", id="count")

        with Container(id="search-box"):
            yield SearchInput(placeholder="search ...", max_length=100, id="search")
            yield Label("press 'Enter' for searching and 'Esc' for cancel", id="search-hint")

        self.table = DataTable(zebra_stripes=True, cursor_type="row", id="services")
        self.table.can_focus = False
        self.table.add_columns("Service", "Status")
        yield self.table

        yield Static("", id="error")
        yield Footer()

    async def on_mount(self) -> None:
        self._session_task = asyncio.create_task(self.controller.run())

    async def on_unmount(self) -> None:
        if self._session_task and not self._session_task.done():
            self._session_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._session_task
        await self.manager.close()

    def render_view(self, view: SessionView) -> None:
        search_box = self.query_one("#search-box")
        search = self.query_one("#search", SearchInput)
        error = self.query_one("#error", Static)
        assert self.table

        title = TITLE
        if view.filter_label:
            title += f" [Filter: {view.filter_label}]"
        self.query_one("#title", Label).update(title)
        self.query_one("#count", Label).update(f"{len(view.items)} of {view.total} services")

        if view.mode is Mode.ERROR:
            self.table.display = False
            search_box.display = False
            error.update(f"ERROR: {view.error_message}\n\n for exit the program press 'q'")
            error.display = True
            self.set_focus(None)
            return

        error.display = False
        self.table.display = True
        self._fill_table(view)

        if view.mode is Mode.SEARCHING:
            if not search_box.display:
                search.value = view.search_buffer
                search_box.display = True
            search.focus()
        elif search_box.display:
            search_box.display = False
            self.set_focus(None)

    def _fill_table(self, view: SessionView) -> None:
        assert self.table
        if view.items != self._items:
            self.table.clear(columns=False)
            for item in view.items:
                self.table.add_row(item.title, item.description)
            self._items = view.items
        if view.selected_index is not None:
            self.table.cursor_coordinate = Coordinate(view.selected_index, 0)

    def action_move(self, delta: int) -> None:
        self.controller.submit(MoveSelection(delta))

    def action_service(self, action: str) -> None:
        self.controller.submit(ServiceActionRequested(ServiceAction(action)))

    def action_search(self) -> None:
        self.controller.submit(EnterSearch())

    def action_filter_running(self) -> None:
        self.controller.submit(ApplyRunningFilter())

    def action_clear_filter(self) -> None:
        self.controller.submit(ClearFilter())

    def action_refresh(self) -> None:
        self.controller.submit(Refresh())

    async def action_quit(self) -> None:
        session_gone = self._session_task is not None and self._session_task.done()
        if self.controller.closed or session_gone:
            self.exit()
            return
        self.controller.submit(Quit())

    @on(DataTable.RowHighlighted, "#services")
    def _on_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        assert self.table
        row = event.cursor_row
        if row != self.table.cursor_row:
            # stale: the cursor moved again since this was posted
            return
        selected = self.controller.view().selected_index
        if row == selected:
            return
        if self.controller.mode is Mode.BROWSING:
            self.controller.submit(SelectRow(row))
        elif selected is not None:
            self.table.cursor_coordinate = Coordinate(selected, 0)

    @on(Input.Changed, "#search")
    def _on_search_changed(self, event: Input.Changed) -> None:
        self.controller.submit(SearchTextChanged(event.value))

    @on(Input.Submitted, "#search")
    def _on_search_submitted(self, event: Input.Submitted) -> None:
        self.controller.submit(CommitSearch())

    @on(SearchInput.Cancelled)
    def _on_search_cancelled(self, event: SearchInput.Cancelled) -> None:
        self.controller.submit(CancelSearch())


def run_dash(manager: ServiceManager) -> None:
    app = ServicesApp(manager)
    app.run()
