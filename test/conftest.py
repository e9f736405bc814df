"""Shared fixtures: an in-memory service manager and session helpers."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

import pytest

from smartctl_tui.errors import AdapterError
from smartctl_tui.models import RunStatus, ServiceAction, ServiceRecord


class FakeManager:
    """Service manager double that records every call.

    ``gate`` (when set) holds ``list_services`` until the event is released;
    ``after_action`` lets a test change what the next listing returns.
    """

    name = "fake"

    def __init__(self, records: list[ServiceRecord] | None = None) -> None:
        self.records: list[ServiceRecord] = list(records or [])
        self.calls: list[tuple[str, ...]] = []
        self.list_error: Optional[AdapterError] = None
        self.action_errors: dict[tuple[ServiceAction, str], AdapterError] = {}
        self.gate: Optional[asyncio.Event] = None
        self.after_action: Optional[Callable[[ServiceAction, str], None]] = None
        self.closed = False

    async def check(self) -> None:
        return None

    async def list_services(self) -> list[ServiceRecord]:
        self.calls.append(("list",))
        if self.gate is not None:
            await self.gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(self.records)

    async def run(self, action: ServiceAction, name: str) -> None:
        self.calls.append((action.value, name))
        err = self.action_errors.get((action, name))
        if err is not None:
            raise err
        if self.after_action is not None:
            self.after_action(action, name)

    async def start(self, name: str) -> None:
        await self.run(ServiceAction.START, name)

    async def stop(self, name: str) -> None:
        await self.run(ServiceAction.STOP, name)

    async def enable(self, name: str) -> None:
        await self.run(ServiceAction.ENABLE, name)

    async def disable(self, name: str) -> None:
        await self.run(ServiceAction.DISABLE, name)

    async def restart(self, name: str) -> None:
        await self.run(ServiceAction.RESTART, name)

    async def close(self) -> None:
        self.closed = True


class RecordingDispatcher:
    """Stands in for CommandDispatcher when only transitions are under test."""

    def __init__(self) -> None:
        self.effects: list[tuple[str, ...]] = []
        self.closed = False

    def fetch_all(self):
        self.effects.append(("fetch-all",))

    def run_action(self, action: ServiceAction, name: str):
        self.effects.append((action.value, name))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def sample_records() -> list[ServiceRecord]:
    return [
        ServiceRecord("nginx.service", "A high performance web server", RunStatus.RUNNING, True),
        ServiceRecord("cron.service", "Regular background program processing daemon", RunStatus.RUNNING, True),
        ServiceRecord("bluetooth.service", "Bluetooth service", RunStatus.STOPPED, False),
        ServiceRecord("postgresql.service", "PostgreSQL RDBMS", RunStatus.STOPPED, True),
        ServiceRecord("plymouth-start.service", "Show Plymouth Boot Screen", RunStatus.UNKNOWN, False),
    ]


@pytest.fixture
def fake_manager(sample_records) -> FakeManager:
    return FakeManager(sample_records)


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def settle():
    """Return a coroutine function that waits until a session is idle."""

    async def _settle(controller, rounds: int = 200) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)
            if controller.dispatcher.in_flight == 0 and controller.pending == 0:
                return
        raise AssertionError("session did not settle")

    return _settle
