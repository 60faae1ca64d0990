"""Match optimistic messages against messages confirmed by the store.

The store assigns its own ids on insert, so correlation is by content: a
pending message counts as confirmed once a ``user`` message with exactly the
same text shows up in a fetch.
"""

from typing import Iterable, Optional

from .core import Message, Role


def _confirmed_texts(confirmed: Iterable[Message]) -> set[Optional[str]]:
    return {m.content for m in confirmed if m.role == Role.USER}


def reconcile(confirmed: Iterable[Message], pending: Iterable[Message]) -> list[Message]:
    """Return the pending messages that have not been confirmed yet."""
    texts = _confirmed_texts(confirmed)
    return [p for p in pending if p.content not in texts]


def is_confirmed(text: Optional[str], confirmed: Iterable[Message]) -> bool:
    return any(m.role == Role.USER and m.content == text for m in confirmed)
