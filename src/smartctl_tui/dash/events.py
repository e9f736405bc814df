"""Events consumed by the session controller.

Input events come from key bindings; outcome events (``RecordsLoaded``,
``CommandFailed``) come from dispatched effects. Both travel through the same
queue.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..errors import AdapterError
from ..models import ServiceAction, ServiceRecord


@dataclass(frozen=True, slots=True)
class EnterSearch:
    pass


@dataclass(frozen=True, slots=True)
class SearchTextChanged:
    text: str


@dataclass(frozen=True, slots=True)
class CancelSearch:
    pass


@dataclass(frozen=True, slots=True)
class CommitSearch:
    pass


@dataclass(frozen=True, slots=True)
class ApplyRunningFilter:
    pass


@dataclass(frozen=True, slots=True)
class ClearFilter:
    pass


@dataclass(frozen=True, slots=True)
class Refresh:
    pass


@dataclass(frozen=True, slots=True)
class MoveSelection:
    delta: int


@dataclass(frozen=True, slots=True)
class SelectRow:
    """A row picked directly, e.g. by a mouse click on the table."""

    index: int


@dataclass(frozen=True, slots=True)
class ServiceActionRequested:
    action: ServiceAction
    # None means "whatever is selected when the event is handled"
    target: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Quit:
    pass


@dataclass(frozen=True, slots=True)
class RecordsLoaded:
    records: tuple[ServiceRecord, ...]


@dataclass(frozen=True, slots=True)
class CommandFailed:
    error: AdapterError


Event = Union[
    EnterSearch,
    SearchTextChanged,
    CancelSearch,
    CommitSearch,
    ApplyRunningFilter,
    ClearFilter,
    Refresh,
    MoveSelection,
    SelectRow,
    ServiceActionRequested,
    Quit,
    RecordsLoaded,
    CommandFailed,
]
