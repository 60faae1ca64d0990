"""Timestamp normalisation, ordering and date grouping for messages."""

import logging
import math
import time
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from .core import DateGroup, Message

logger = logging.getLogger(__name__)

# Numbers at or above this are epoch milliseconds (JS Date convention).
_MS_CUTOFF = 100_000_000_000
# 0001-01-02 to 9999-12-31 UTC. The day of slack at each end keeps every
# value convertible by datetime.fromtimestamp under any local UTC offset.
_MIN_SECONDS = -62_135_510_400
_MAX_SECONDS = 253_402_214_400


def _in_range(seconds: float) -> Optional[int]:
    if not _MIN_SECONDS <= seconds <= _MAX_SECONDS:
        return None
    return int(math.floor(seconds))


def _from_number(value) -> Optional[int]:
    if isinstance(value, bool) or not math.isfinite(value):
        return None
    if abs(value) >= _MS_CUTOFF:
        value = value / 1000
    return _in_range(value)


def _parse_created_at(value) -> Optional[int]:
    """Convert a ``created_at`` value to epoch seconds, or None if unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _in_range(value.timestamp())
    if isinstance(value, (int, float)):
        return _from_number(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _from_number(float(text))
        except ValueError:
            pass
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return _in_range(datetime.fromisoformat(text).timestamp())
        except (ValueError, OverflowError, OSError):
            return None
    return None


def canonical_timestamp(message: Message, now: Optional[float] = None) -> int:
    """Return the message time as epoch seconds.

    Uses ``message.timestamp`` when present, then ``created_at``, and falls
    back to the current time. Never raises.
    """
    ts = message.timestamp
    if isinstance(ts, (int, float)) and not isinstance(ts, bool):
        result = _from_number(ts)
        if result is not None:
            return result

    try:
        parsed = _parse_created_at(message.created_at)
    except (OverflowError, OSError, ValueError):
        parsed = None
    if parsed is not None:
        return parsed

    if message.created_at is not None:
        logger.debug("Unparseable created_at on message %s: %r", message.id, message.created_at)
    return int(now if now is not None else time.time())


def sort_messages(messages: Iterable[Message]) -> list[Message]:
    """Order confirmed messages first, then optimistic ones, each by time."""
    now = time.time()
    return sorted(messages, key=lambda m: (bool(m.is_temp), canonical_timestamp(m, now)))


def local_date(ts: int) -> date:
    return datetime.fromtimestamp(ts).date()


def group_by_date(ordered: Iterable[Message]) -> list[DateGroup]:
    """Split an already sorted message sequence into local-day buckets.

    Does not sort; a message whose day differs from the previous group's
    starts a new group.
    """
    now = time.time()
    groups: list[DateGroup] = []
    current_day: Optional[date] = None

    for message in ordered:
        ts = canonical_timestamp(message, now)
        day = local_date(ts)
        if not groups or day != current_day:
            groups.append(DateGroup(date=ts, messages=[message]))
            current_day = day
        else:
            groups[-1].messages.append(message)

    return groups


def format_date_divider(ts: int, today: Optional[date] = None) -> str:
    """Label for a date divider: Today, Yesterday or e.g. January 5, 2025."""
    day = local_date(ts)
    today = today or date.today()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{day:%B} {day.day}, {day.year}"


def format_message_time(ts: int) -> str:
    return datetime.fromtimestamp(ts).strftime("%H:%M")
