"""Core data models for chat-mirror."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class Status(str, Enum):
    """Delivery state of a locally originated message."""

    SENDING = "sending"
    SENT = "sent"
    ERROR = "error"


class FetchErrorKind(str, Enum):
    CONNECTIVITY = "DATABASE_CONNECTION_ERROR"
    GENERIC = "DATABASE_ERROR"


@dataclass
class Message:
    """A single message in the mirrored conversation."""

    id: Union[str, int]
    role: Role
    content: Optional[str] = None
    tool_name: Optional[str] = None
    created_at: Union[str, int, float, datetime, None] = None
    timestamp: Optional[int] = None  # epoch seconds, wins over created_at
    status: Optional[Status] = None
    is_temp: bool = False  # optimistic, not yet seen in a fetch


@dataclass
class DateGroup:
    """Messages sharing one local calendar day."""

    date: int  # canonical timestamp of the first message
    messages: list[Message] = field(default_factory=list)


@dataclass
class FetchResult:
    messages: list[Message] = field(default_factory=list)
    error: Optional[FetchErrorKind] = None


@dataclass
class RelayResult:
    success: bool
    data: Any = None
    error: Optional[str] = None
