import pytest

from smartctl_tui.errors import AdapterError
from smartctl_tui.models import (
    ActiveFilter,
    Mode,
    RunStatus,
    ServiceAction,
    ServiceItem,
    ServiceRecord,
    SessionState,
    SessionView,
    clamp_index,
    derive_visible,
    unique_by_name,
)


@pytest.mark.parametrize(
    "status, enabled, expected",
    [
        (RunStatus.RUNNING, True, "[running | enabled] nginx"),
        (RunStatus.STOPPED, True, "[stopped | enabled] nginx"),
        (RunStatus.RUNNING, False, "[running | disabled] nginx"),
        (RunStatus.UNKNOWN, False, "[stopped | disabled] nginx"),
    ],
)
def test_record_label(status, enabled, expected):
    assert ServiceRecord("nginx", "nginx", status, enabled).label == expected


def test_records_are_immutable():
    r = ServiceRecord("nginx", "web", RunStatus.RUNNING, True)
    with pytest.raises(AttributeError):
        r.enabled = False  # type: ignore[misc]


def test_service_item_from_record():
    item = ServiceItem.from_record(ServiceRecord("ssh.service", "OpenSSH server", RunStatus.RUNNING, True))
    assert item.title == "ssh.service"
    assert item.description == "[running | enabled] OpenSSH server"
    assert item.filter_value == "ssh.service OpenSSH server"


def test_derive_visible_search_is_case_insensitive(sample_records):
    visible = derive_visible(sample_records, ActiveFilter.NONE, "POSTGRES")
    assert [r.name for r in visible] == ["postgresql.service"]

    # description matches count too
    visible = derive_visible(sample_records, ActiveFilter.NONE, "Daemon")
    assert [r.name for r in visible] == ["cron.service"]


def test_derive_visible_empty_term_keeps_everything(sample_records):
    assert derive_visible(sample_records, ActiveFilter.NONE, "") == tuple(sample_records)


def test_derive_visible_running_filter(sample_records):
    visible = derive_visible(sample_records, ActiveFilter.RUNNING, "")
    assert [r.name for r in visible] == ["nginx.service", "cron.service"]


def test_derive_visible_no_match_is_empty(sample_records):
    assert derive_visible(sample_records, ActiveFilter.NONE, "does-not-exist") == ()


@pytest.mark.parametrize(
    "index, length, expected",
    [(None, 0, None), (3, 0, None), (None, 4, 0), (-1, 4, 0), (2, 4, 2), (9, 4, 3)],
)
def test_clamp_index(index, length, expected):
    assert clamp_index(index, length) == expected


def test_state_rederive_clamps_selection(sample_records):
    state = SessionState(all_records=tuple(sample_records))
    state.rederive()
    state.selected_index = 4
    state.active_filter = ActiveFilter.RUNNING
    state.rederive()
    assert state.selected_index == 1
    assert state.selected.name == "cron.service"


def test_unique_by_name_keeps_first():
    a = ServiceRecord("a.service", "first")
    dup = ServiceRecord("a.service", "second")
    b = ServiceRecord("b.service", "b")
    assert unique_by_name([a, dup, b]) == [a, b]


def test_view_hides_buffer_outside_search_and_formats_error():
    state = SessionState(search_buffer="ngi")
    assert SessionView.of(state).search_buffer == ""

    state.mode = Mode.ERROR
    state.last_error = AdapterError("permission denied", ServiceAction.STOP, "nginx")
    view = SessionView.of(state)
    assert view.error_message == "error on stopping the service nginx: permission denied"


def test_filter_label():
    state = SessionState()
    assert state.filter_label == ""
    state.search_term = "ssh"
    assert state.filter_label == "search: ssh"
    state.search_term = ""
    state.active_filter = ActiveFilter.RUNNING
    assert state.filter_label == "running"
