"""One chat view: store, scroll and polling wired to their collaborators."""

import logging
from datetime import date
from typing import Optional

from .config import Settings
from .polling import Fetch, PollingController, PollState
from .relay import WhatsAppRelay
from .render import build_view, render_thread
from .scheduling import Scheduler
from .scroll import ScrollController
from .source import SqliteMessageSource
from .store import MessageStore, Relay

logger = logging.getLogger(__name__)


class ChatSession:
    """Owns all mutable state for a single mirrored conversation view.

    Subcomponents receive the session's objects explicitly; nothing is kept
    in module globals.
    """

    def __init__(
        self,
        fetch: Fetch,
        relay: Relay,
        *,
        scheduler: Optional[Scheduler] = None,
        fetch_limit: int = 100,
        show_tool_messages: bool = False,
    ):
        self.scheduler = scheduler or Scheduler()
        self.scroll = ScrollController()
        self.store = MessageStore(
            relay,
            self.scheduler,
            self.scroll,
            show_tool_messages=show_tool_messages,
        )
        self.polling = PollingController(fetch, self.store, self.scheduler, limit=fetch_limit)

        self.store.on_connectivity_lost = self.polling.suspend
        self.store.after_send = self._poll_after_send

    async def _poll_after_send(self) -> None:
        await self.polling.poll_once()

    @property
    def started(self) -> bool:
        return self.polling.state != PollState.IDLE

    def start(self) -> None:
        if not self.started:
            logger.info("Chat session started")
        self.polling.mount()

    def stop(self) -> None:
        """Tear down: stop polling and cancel every pending timer."""
        self.polling.unmount()
        self.store.close()
        self.scheduler.cancel_all()
        logger.info("Chat session stopped")

    async def send(self, text: str) -> bool:
        return await self.store.send_message(text) is not None

    def refresh(self) -> None:
        self.polling.refresh()

    def clear(self) -> None:
        self.store.clear()

    def view(self, today: Optional[date] = None) -> dict:
        return build_view(self.store, today)

    def thread_html(self, today: Optional[date] = None) -> str:
        return render_thread(self.view(today))


def build_session(settings: Settings) -> ChatSession:
    """Create a session backed by SQLite and the WhatsApp webhook."""
    source = SqliteMessageSource(settings.database_path)
    relay = WhatsAppRelay(settings.callback_url, settings.recipient_id)
    return ChatSession(
        source.fetch_messages,
        relay.send,
        fetch_limit=settings.fetch_limit,
        show_tool_messages=settings.show_tool_messages,
    )
