from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from .errors import AdapterError


class RunStatus(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


class ServiceAction(Enum):
    START = "start"
    STOP = "stop"
    ENABLE = "enable"
    DISABLE = "disable"
    RESTART = "restart"

    @property
    def gerund(self) -> str:
        return {
            ServiceAction.START: "starting",
            ServiceAction.STOP: "stopping",
            ServiceAction.ENABLE: "enabling",
            ServiceAction.DISABLE: "disabling",
            ServiceAction.RESTART: "restarting",
        }[self]


class Mode(Enum):
    BROWSING = "browsing"
    SEARCHING = "searching"
    ERROR = "error"


class ActiveFilter(Enum):
    NONE = "none"
    RUNNING = "running"


@dataclass(frozen=True, slots=True)
class ServiceRecord:
    name: str
    description: str
    run_status: RunStatus = RunStatus.UNKNOWN
    enabled: bool = False

    @property
    def label(self) -> str:
        status = "running" if self.run_status is RunStatus.RUNNING else "stopped"
        enabled = "enabled" if self.enabled else "disabled"
        return f"[{status} | {enabled}] {self.description}"


@dataclass(frozen=True, slots=True)
class ServiceItem:
    """What the list widget gets to see of a record."""

    title: str
    description: str
    filter_value: str

    @classmethod
    def from_record(cls, record: ServiceRecord) -> ServiceItem:
        return cls(
            title=record.name,
            description=record.label,
            filter_value=f"{record.name} {record.description}",
        )


def matches_search(record: ServiceRecord, term: str) -> bool:
    q = term.lower()
    return q in record.name.lower() or q in record.description.lower()


def derive_visible(
    records: Iterable[ServiceRecord],
    active_filter: ActiveFilter,
    search_term: str,
) -> tuple[ServiceRecord, ...]:
    """Visible subsequence of ``records``, order preserved.

    The running filter and a committed search are never active together;
    the filter wins if both are set.
    """
    if active_filter is ActiveFilter.RUNNING:
        return tuple(r for r in records if r.run_status is RunStatus.RUNNING)
    if search_term:
        return tuple(r for r in records if matches_search(r, search_term))
    return tuple(records)


def clamp_index(index: int | None, length: int) -> int | None:
    if length <= 0:
        return None
    if index is None or index < 0:
        return 0
    return min(index, length - 1)


@dataclass(slots=True)
class SessionState:
    mode: Mode = Mode.BROWSING
    all_records: tuple[ServiceRecord, ...] = ()
    visible_records: tuple[ServiceRecord, ...] = ()
    active_filter: ActiveFilter = ActiveFilter.NONE
    search_buffer: str = ""
    search_term: str = ""
    selected_index: int | None = None
    last_error: AdapterError | None = None

    def rederive(self) -> None:
        self.visible_records = derive_visible(self.all_records, self.active_filter, self.search_term)
        self.selected_index = clamp_index(self.selected_index, len(self.visible_records))

    @property
    def selected(self) -> ServiceRecord | None:
        if self.selected_index is None:
            return None
        return self.visible_records[self.selected_index]

    @property
    def filter_label(self) -> str:
        if self.active_filter is ActiveFilter.RUNNING:
            return "running"
        if self.search_term:
            return f"search: {self.search_term}"
        return ""


@dataclass(frozen=True, slots=True)
class SessionView:
    """Immutable snapshot handed to the presentation layer."""

    mode: Mode
    items: tuple[ServiceItem, ...] = ()
    selected_index: int | None = None
    search_buffer: str = ""
    error_message: str | None = None
    filter_label: str = ""
    total: int = 0

    @classmethod
    def of(cls, state: SessionState) -> SessionView:
        return cls(
            mode=state.mode,
            items=tuple(ServiceItem.from_record(r) for r in state.visible_records),
            selected_index=state.selected_index,
            search_buffer=state.search_buffer if state.mode is Mode.SEARCHING else "",
            error_message=str(state.last_error) if state.last_error is not None else None,
            filter_label=state.filter_label,
            total=len(state.all_records),
        )


def unique_by_name(records: Sequence[ServiceRecord]) -> list[ServiceRecord]:
    """Drop later duplicates so names stay unique within a snapshot."""
    seen: set[str] = set()
    out: list[ServiceRecord] = []
    for r in records:
        if r.name in seen:
            continue
        seen.add(r.name)
        out.append(r)
    return out


__all__ = [
    "ActiveFilter",
    "Mode",
    "RunStatus",
    "ServiceAction",
    "ServiceItem",
    "ServiceRecord",
    "SessionState",
    "SessionView",
    "clamp_index",
    "derive_visible",
    "matches_search",
    "unique_by_name",
]
