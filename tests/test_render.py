"""Tests for the presentation layer."""

from datetime import date, datetime

import pytest

from chat_mirror.core import FetchErrorKind, Message, Role, Status
from chat_mirror.render import build_view, format_tool_name, render_thread, status_glyph
from chat_mirror.store import MessageStore

from conftest import make_message

DAY = date(2025, 1, 15)


def at(hour, minute=0, day=15):
    return int(datetime(2025, 1, day, hour, minute).timestamp())


@pytest.fixture
def store(relay, scheduler):
    return MessageStore(relay, scheduler)


def test_groups_and_labels(store):
    store.apply_fetch_result([
        make_message(1, content="yesterday", ts=at(20, day=14)),
        make_message(2, role=Role.ASSISTANT, content="morning", ts=at(9)),
        make_message(3, content="noon", ts=at(12)),
    ])
    view = build_view(store, today=DAY)

    assert [g["label"] for g in view["groups"]] == ["Yesterday", "Today"]
    assert [[b["id"] for b in g["messages"]] for g in view["groups"]] == [[1], [2, 3]]
    assert view["empty"] is False
    assert view["connected"] is True


def test_bubble_sides_and_time(store):
    store.apply_fetch_result([
        make_message(1, content="hi", ts=at(9, 5)),
        make_message(2, role=Role.ASSISTANT, content="hello", ts=at(9, 6)),
    ])
    user, bot = build_view(store, today=DAY)["groups"][0]["messages"]
    assert user["side"] == "sender"
    assert bot["side"] == "other"
    assert user["time"] == "09:05"
    assert user["key"] == "1-real"


def test_empty_content_is_filtered(store):
    store.apply_fetch_result([
        make_message(1, content="", ts=at(9)),
        make_message(2, role=Role.ASSISTANT, content="   ", ts=at(9)),
        make_message(3, content="kept", ts=at(9)),
    ])
    ids = [b["id"] for g in build_view(store, today=DAY)["groups"] for b in g["messages"]]
    assert ids == [3]


def test_tool_messages_render_annotation_when_enabled(store):
    store.show_tool_messages = True
    store.apply_fetch_result([
        make_message(1, content="search please", ts=at(9)),
        make_message(2, role=Role.TOOL, content=None, tool_name="search_knowledge", ts=at(9, 1)),
    ])
    bubbles = build_view(store, today=DAY)["groups"][0]["messages"]
    tool = bubbles[1]
    assert tool["tool"] == "Search Knowledge"
    assert tool["content"] is None
    assert tool["glyph"] is None


def test_pending_message_sorts_last(store):
    store.apply_fetch_result([make_message(1, content="later", ts=at(12))])
    store.pending.append(make_message(99, content="typing", ts=at(11), status=Status.SENDING, is_temp=True))
    bubbles = build_view(store, today=DAY)["groups"][-1]["messages"]
    assert [b["id"] for b in bubbles] == [1, 99]
    assert bubbles[-1]["temp"] is True
    assert bubbles[-1]["key"] == "99-temp"


@pytest.mark.parametrize(
    "status,icon,tone",
    [
        (Status.SENDING, "check", "faded"),
        (Status.SENT, "check-check", "muted"),
        (Status.ERROR, "check", "alert"),
        (None, "check", "muted"),
    ],
)
def test_status_glyph(status, icon, tone):
    glyph = status_glyph(make_message(1, status=status))
    assert glyph == {"icon": icon, "tone": tone}


def test_no_glyph_for_assistant():
    assert status_glyph(make_message(1, role=Role.ASSISTANT)) is None


def test_format_tool_name():
    assert format_tool_name("search_knowledge") == "Search Knowledge"
    assert format_tool_name("generate-exercise") == "Generate Exercise"
    assert format_tool_name(None) == "Tool"


def test_loading_and_empty_states(store):
    store.set_loading(True)
    view = build_view(store)
    assert view["loading"] is True
    assert "Loading messages" in render_thread(view)

    store.set_loading(False)
    view = build_view(store)
    assert view["empty"] is True
    assert "No messages yet" in render_thread(view)


def test_render_escapes_content(store):
    store.apply_fetch_result([make_message(1, content="<script>alert(1)</script>", ts=at(9))])
    fragment = render_thread(build_view(store, today=DAY))
    assert "<script>" not in fragment
    assert "&lt;script&gt;" in fragment
    assert 'class="divider">Today<' in fragment


def test_connection_banner(store):
    store.apply_fetch_error(FetchErrorKind.CONNECTIVITY)
    view = build_view(store)
    assert view["connected"] is False
    assert view["input"]["disabled"] is True
    fragment = render_thread(view)
    assert "Database Connection Error" in fragment
    assert 'data-action="refresh"' in fragment


def test_jump_button_follows_indicator(store):
    store.apply_fetch_result([make_message(1, ts=at(9))])
    store.report_scroll(0, 2000, 500)
    store.apply_fetch_result([make_message(1, ts=at(9)), make_message(2, content="new", ts=at(10))])
    view = build_view(store, today=DAY)
    assert view["scroll"]["show_jump_button"] is True
    assert 'class="jump visible"' in render_thread(view)


@pytest.mark.parametrize("created_at", [-70_000_000_000, "0001-01-01T00:00:00+05:00"])
def test_unrepresentable_dates_still_render(store, created_at):
    store.apply_fetch_result([Message(id=1, role=Role.USER, content="x", created_at=created_at)])
    view = build_view(store)
    assert view["groups"][0]["label"] == "Today"
    assert "x" in render_thread(view)
