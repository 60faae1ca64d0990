"""Client-side message state for one chat view.

``MessageStore`` is the single source of truth the renderer reads. The
polling controller feeds it fetch results, the user feeds it sends, and it
owns the optimistic (pending) messages and the one-send-at-a-time guard.
"""

import logging
import time
from typing import Awaitable, Callable, Optional

from . import dedup
from .core import FetchErrorKind, Message, RelayResult, Role, Status
from .scheduling import Scheduler, TaskHandle
from .scroll import ScrollController

logger = logging.getLogger(__name__)

SEND_SUCCESS_TTL = 10.0
SEND_FAILURE_TTL = 5.0
BLOCKED_NOTICE_TTL = 3.0

CONNECTIVITY_MESSAGE = "Database connection failed. Please check your database configuration."
GENERIC_MESSAGE = "An error occurred while fetching messages."
FETCH_FAILED_MESSAGE = "Failed to fetch messages. Please try again."
SEND_BLOCKED_MESSAGE = (
    "Cannot send messages while disconnected from the database. "
    "Please restore connection and refresh."
)

CHAT_ROLES = (Role.USER, Role.ASSISTANT)

Relay = Callable[[str], Awaitable[RelayResult]]


class MessageStore:
    """Confirmed and pending messages plus the view flags derived from them."""

    def __init__(
        self,
        relay: Relay,
        scheduler: Scheduler,
        scroll: Optional[ScrollController] = None,
        *,
        show_tool_messages: bool = False,
        success_ttl: float = SEND_SUCCESS_TTL,
        failure_ttl: float = SEND_FAILURE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._relay = relay
        self._scheduler = scheduler
        self._clock = clock
        self.scroll = scroll or ScrollController()
        self.show_tool_messages = show_tool_messages
        self.success_ttl = success_ttl
        self.failure_ttl = failure_ttl

        self.confirmed: list[Message] = []
        self.pending: list[Message] = []
        self.is_loading = False
        self.error: Optional[str] = None
        self.connection_failed = False
        self.should_scroll_to_bottom = False

        # Hooks wired by the session.
        self.on_connectivity_lost: Optional[Callable[[], None]] = None
        self.after_send: Optional[Callable[[], Awaitable[None]]] = None

        self._relay_in_flight = False
        self._in_flight_id: Optional[int] = None
        self._in_flight_text: Optional[str] = None
        self._last_temp_id = 0
        self._timers: dict[int, TaskHandle] = {}
        self._notice_timer: Optional[TaskHandle] = None

    # ── Derived state ────────────────────────────────────────────────

    @property
    def sending(self) -> bool:
        """True while a send is in flight or awaiting confirmation."""
        return self._relay_in_flight or self._in_flight_id is not None

    @property
    def input_disabled(self) -> bool:
        return self.sending or self.connection_failed

    @property
    def input_placeholder(self) -> str:
        if self.connection_failed:
            return "Database connection required to send messages"
        return "Type a message..."

    def visible_messages(self) -> list[Message]:
        roles = CHAT_ROLES + ((Role.TOOL,) if self.show_tool_messages else ())
        return [m for m in self.confirmed + self.pending if m.role in roles]

    # ── Fetch results ────────────────────────────────────────────────

    def set_loading(self, loading: bool) -> None:
        self.is_loading = loading

    def apply_fetch_result(
        self, confirmed: list[Message], error: Optional[FetchErrorKind] = None
    ) -> None:
        """Replace the confirmed set with a fresh fetch and reconcile pending."""
        if error is not None:
            self.apply_fetch_error(error)
            return

        self.confirmed = list(confirmed)
        self.error = None
        self.connection_failed = False

        if self.pending:
            self.pending = dedup.reconcile(self.confirmed, self.pending)
        if self._in_flight_text is not None and dedup.is_confirmed(
            self._in_flight_text, self.confirmed
        ):
            logger.debug("Sent message confirmed by the store")
            self._in_flight_id = None
            self._in_flight_text = None

        self._update_scroll()

    def apply_fetch_error(self, kind: FetchErrorKind, message: Optional[str] = None) -> None:
        if kind == FetchErrorKind.CONNECTIVITY:
            self.connection_failed = True
            self.error = message or CONNECTIVITY_MESSAGE
            logger.warning("Message store unreachable; suspending polling")
            if self.on_connectivity_lost is not None:
                self.on_connectivity_lost()
        else:
            self.connection_failed = False
            self.error = message or GENERIC_MESSAGE
            logger.warning("Fetching messages failed: %s", self.error)

    def reset_connectivity(self) -> None:
        """Called on an explicit user retry."""
        self.connection_failed = False
        self.should_scroll_to_bottom = True
        self.scroll.scroll_to_bottom()

    def dismiss_error(self) -> None:
        # The connectivity banner stays until a fetch succeeds.
        if not self.connection_failed:
            self.error = None

    # ── Sending ──────────────────────────────────────────────────────

    async def send_message(self, text: str) -> Optional[Message]:
        """Send ``text`` through the relay, showing it optimistically.

        Returns the optimistic message, or None if the send was rejected.
        """
        text = (text or "").strip()
        if not text:
            return None

        if self.connection_failed:
            self._show_blocked_notice()
            return None

        if self.sending:
            logger.debug("Send rejected: another message is in flight")
            return None

        temp = Message(
            id=self._next_temp_id(),
            role=Role.USER,
            content=text,
            created_at=self._clock(),
            timestamp=int(self._clock()),
            status=Status.SENDING,
            is_temp=True,
        )
        self.pending.append(temp)
        self._relay_in_flight = True
        self._in_flight_id = temp.id
        self._in_flight_text = text
        self._update_scroll(force=True)

        try:
            result = await self._relay(text)
        except Exception as e:
            logger.error("Relay raised while sending message: %s", e)
            result = RelayResult(success=False, error=str(e))
        finally:
            self._relay_in_flight = False

        if result.success:
            if self.after_send is not None:
                await self.after_send()
            temp.status = Status.SENT
            self._schedule_expiry(temp, self.success_ttl)
        else:
            logger.error("Error sending message: %s", result.error)
            temp.status = Status.ERROR
            self._schedule_expiry(temp, self.failure_ttl)

        return temp

    def _next_temp_id(self) -> int:
        # Submission time in ms, bumped so rapid sends never collide.
        candidate = int(self._clock() * 1000)
        self._last_temp_id = max(candidate, self._last_temp_id + 1)
        return self._last_temp_id

    def _schedule_expiry(self, message: Message, delay: float) -> None:
        self._timers[message.id] = self._scheduler.call_later(delay, self._expire, message.id)

    def _expire(self, message_id: int) -> None:
        self._timers.pop(message_id, None)
        self.pending = [m for m in self.pending if m.id != message_id]
        if self._in_flight_id == message_id:
            self._in_flight_id = None
            self._in_flight_text = None
        self._update_scroll()

    def _show_blocked_notice(self) -> None:
        self.error = SEND_BLOCKED_MESSAGE
        if self._notice_timer is not None:
            self._notice_timer.cancel()
        self._notice_timer = self._scheduler.call_later(BLOCKED_NOTICE_TTL, self._restore_banner)

    def _restore_banner(self) -> None:
        self._notice_timer = None
        if self.connection_failed and self.error == SEND_BLOCKED_MESSAGE:
            self.error = CONNECTIVITY_MESSAGE

    # ── View actions ─────────────────────────────────────────────────

    def clear(self) -> None:
        """Empty the local view; the store itself is untouched."""
        self.confirmed = []
        self.pending = []
        self.scroll.reset()
        self.should_scroll_to_bottom = False

    def scroll_completed(self) -> None:
        self.should_scroll_to_bottom = False

    def report_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> None:
        self.scroll.on_scroll(scroll_top, scroll_height, client_height)

    def jump_to_latest(self) -> None:
        self.scroll.scroll_to_bottom()
        self.should_scroll_to_bottom = True

    def close(self) -> None:
        """Cancel every timer this store started."""
        for handle in list(self._timers.values()):
            handle.cancel()
        self._timers.clear()
        if self._notice_timer is not None:
            self._notice_timer.cancel()
            self._notice_timer = None

    def _update_scroll(self, force: bool = False) -> None:
        keys = [(m.id, m.is_temp) for m in self.visible_messages()]
        if self.scroll.on_messages_changed(keys, force=force):
            self.should_scroll_to_bottom = True
