"""Shared test fixtures for chat-mirror."""

import asyncio
import sqlite3
from datetime import datetime, timezone

import pytest

from chat_mirror.core import FetchResult, Message, RelayResult, Role, Status
from chat_mirror.scheduling import Scheduler, TaskHandle


class ManualScheduler(Scheduler):
    """Scheduler driven by ``advance()`` instead of the event loop clock."""

    def __init__(self):
        super().__init__()
        self.now = 0.0
        self._queue = []
        self._seq = 0

    def call_later(self, delay, callback, *args):
        handle = TaskHandle(self)
        self._seq += 1
        self._queue.append((self.now + delay, self._seq, handle, callback, args))
        self._handles.add(handle)
        return handle

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [e for e in self._queue if e[0] <= target and e[2].active]
            if not due:
                break
            entry = min(due, key=lambda e: (e[0], e[1]))
            self._queue.remove(entry)
            when, _, handle, callback, args = entry
            self.now = when
            handle.done = True
            self._forget(handle)
            callback(*args)
        self.now = target


class FakeSource:
    """Async fetch callable returning a scripted FetchResult."""

    def __init__(self, messages=None, error=None):
        self.result = FetchResult(messages=list(messages or []), error=error)
        self.calls = 0
        self.gate: asyncio.Event | None = None

    def set(self, messages=None, error=None):
        self.result = FetchResult(messages=list(messages or []), error=error)

    async def __call__(self, limit):
        self.calls += 1
        result = self.result
        if self.gate is not None:
            await self.gate.wait()
        return result


class FakeRelay:
    """Async relay callable recording every body it was asked to send."""

    def __init__(self, success=True):
        self.success = success
        self.sent = []
        self.gate: asyncio.Event | None = None

    async def __call__(self, body):
        self.sent.append(body)
        if self.gate is not None:
            await self.gate.wait()
        if self.success:
            return RelayResult(success=True, data={"ok": True})
        return RelayResult(success=False, error="WhatsApp API error 500")


def make_message(id, role=Role.USER, content="hello", ts=1_736_935_200, status=Status.SENT, **kwargs):
    return Message(id=id, role=role, content=content, timestamp=ts, status=status, **kwargs)


async def drain(rounds=10):
    """Let spawned tasks run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def tmp_message_db(tmp_path):
    """Create a SQLite database shaped like the bot's messages table."""
    db_path = tmp_path / "messages.db"
    conn = sqlite3.connect(str(db_path))
    conn.execute(
        "CREATE TABLE messages ("
        "id INTEGER PRIMARY KEY, role VARCHAR(20) NOT NULL, content TEXT, "
        "tool_name VARCHAR(255), created_at TEXT NOT NULL)"
    )

    base = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
    rows = [
        (1, "user", "Hi Twiga", None, base.isoformat()),
        (2, "assistant", "Hello! How can I help?", None, base.replace(minute=1).isoformat()),
        (3, "tool", None, "search_knowledge", base.replace(minute=2).isoformat()),
        (4, "assistant", "Here is what I found.", None, base.replace(minute=3).isoformat()),
        (5, "moderator", "flagged", None, base.replace(minute=4).isoformat()),
    ]
    conn.executemany("INSERT INTO messages VALUES (?, ?, ?, ?, ?)", rows)
    conn.commit()
    conn.close()

    return db_path
