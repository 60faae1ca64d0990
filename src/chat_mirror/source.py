"""Message sources: where confirmed messages are read from.

The SQLite source reads the bot's ``messages`` table. All database access is
read-only; the only way messages get written is through the relay.
"""

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path

from .core import FetchErrorKind, FetchResult, Message, Role, Status
from .errors import ConnectivityError, FetchError, GenericError
from .timeline import canonical_timestamp

logger = logging.getLogger(__name__)


class MessageSource(ABC):
    """Base class for stores that hold the mirrored conversation."""

    name: str

    @abstractmethod
    def read_messages(self, limit: int) -> list[Message]:
        """Return up to ``limit`` newest messages.

        Raises ConnectivityError when the store is unreachable and
        GenericError when the query fails.
        """
        ...

    async def fetch_messages(self, limit: int = 100) -> FetchResult:
        """Read messages without blocking the event loop.

        Never raises: failures come back as ``FetchResult.error``.
        """
        try:
            messages = await asyncio.to_thread(self.read_messages, limit)
        except ConnectivityError as e:
            logger.error("Database connection error: %s", e)
            return FetchResult(messages=[], error=FetchErrorKind.CONNECTIVITY)
        except FetchError as e:
            logger.error("Database error: %s", e)
            return FetchResult(messages=[], error=FetchErrorKind.GENERIC)
        return FetchResult(messages=messages)


def _is_connection_error(error: sqlite3.Error) -> bool:
    text = str(error).lower()
    return "unable to open database" in text or "disk i/o error" in text


class SqliteMessageSource(MessageSource):
    """Reads the ``messages`` table of a SQLite database."""

    name = "sqlite"

    def __init__(self, db_path: Path | str, timeout: float = 10.0):
        self.db_path = Path(db_path)
        self.timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        if not self.db_path.exists():
            raise ConnectivityError(f"Database not found: {self.db_path}")
        try:
            conn = sqlite3.connect(
                f"file:{self.db_path}?mode=ro", uri=True, timeout=self.timeout
            )
        except sqlite3.Error as e:
            raise ConnectivityError(str(e)) from e
        conn.row_factory = sqlite3.Row
        return conn

    def read_messages(self, limit: int) -> list[Message]:
        conn = self._connect()
        try:
            cur = conn.execute(
                "SELECT id, role, content, tool_name, created_at FROM messages "
                "ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            )
            rows = cur.fetchall()
        except sqlite3.Error as e:
            if _is_connection_error(e):
                raise ConnectivityError(str(e)) from e
            raise GenericError(str(e)) from e
        finally:
            conn.close()

        messages = []
        for row in rows:
            message = self._row_to_message(row)
            if message is not None:
                messages.append(message)
        return messages

    def count_messages(self) -> int:
        conn = self._connect()
        try:
            return conn.execute("SELECT COUNT(*) FROM messages").fetchone()[0]
        except sqlite3.Error as e:
            raise GenericError(str(e)) from e
        finally:
            conn.close()

    def _row_to_message(self, row: sqlite3.Row) -> Message | None:
        try:
            role = Role(row["role"])
        except ValueError:
            logger.warning("Skipping message %s with unknown role %r", row["id"], row["role"])
            return None

        message = Message(
            id=row["id"],
            role=role,
            content=row["content"] if row["content"] is not None else "",
            tool_name=row["tool_name"],
            created_at=row["created_at"],
            status=Status.SENT,
        )
        message.timestamp = canonical_timestamp(message)
        return message
