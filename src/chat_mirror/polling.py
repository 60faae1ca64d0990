"""Repeating fetch loop feeding the message store."""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from .core import FetchErrorKind, FetchResult
from .scheduling import Scheduler, TaskHandle
from .store import FETCH_FAILED_MESSAGE, MessageStore

logger = logging.getLogger(__name__)

FAST_INTERVAL = 1.0  # while a send is in flight
SLOW_INTERVAL = 2.0
DEFAULT_LIMIT = 100

Fetch = Callable[[int], Awaitable[FetchResult]]


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    SUSPENDED = "suspended"


class PollingController:
    """Polls ``fetch`` on an adaptive interval until suspended or unmounted.

    Fetches may overlap when one outlives a tick. Each carries a sequence
    number and the generation it was issued in; a completion older than the
    newest applied one, or issued before the last suspend/unmount, is dropped.
    """

    def __init__(
        self,
        fetch: Fetch,
        store: MessageStore,
        scheduler: Scheduler,
        *,
        limit: int = DEFAULT_LIMIT,
        fast_interval: float = FAST_INTERVAL,
        slow_interval: float = SLOW_INTERVAL,
    ):
        self._fetch = fetch
        self.store = store
        self._scheduler = scheduler
        self.limit = limit
        self.fast_interval = fast_interval
        self.slow_interval = slow_interval

        self.state = PollState.IDLE
        self._tick_handle: Optional[TaskHandle] = None
        self._tasks: set[asyncio.Task] = set()
        self._issued = 0
        self._applied = 0
        self._generation = 0
        self._in_flight = 0

    @property
    def interval(self) -> float:
        return self.fast_interval if self.store.sending else self.slow_interval

    # ── Lifecycle ────────────────────────────────────────────────────

    def mount(self) -> Optional[asyncio.Task]:
        """Start polling with an immediate fetch."""
        if self.state != PollState.IDLE:
            return None
        self.state = PollState.POLLING
        logger.info("Polling started (limit=%d)", self.limit)
        self._schedule_tick()
        return self._spawn()

    def unmount(self) -> None:
        """Stop everything: pending tick and in-flight fetches."""
        self._cancel_tick()
        self._generation += 1
        for task in list(self._tasks):
            task.cancel()
        if self.state != PollState.IDLE:
            logger.info("Polling stopped")
        self.state = PollState.IDLE

    def suspend(self) -> None:
        if self.state != PollState.POLLING:
            return
        self._cancel_tick()
        self._generation += 1
        self.state = PollState.SUSPENDED
        logger.info("Polling suspended until an explicit refresh")

    def refresh(self) -> Optional[asyncio.Task]:
        """User-initiated retry: resume if suspended and fetch right away."""
        if self.state == PollState.IDLE:
            return None
        self.store.reset_connectivity()
        if self.state == PollState.SUSPENDED:
            self.state = PollState.POLLING
            logger.info("Polling resumed")
            self._schedule_tick()
        return self._spawn()

    async def wait_idle(self) -> None:
        """Wait until no fetch is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Fetching ─────────────────────────────────────────────────────

    async def poll_once(self) -> bool:
        """Fetch once and hand the result to the store.

        Returns True if the result was applied.
        """
        if self.state != PollState.POLLING:
            return False

        self._issued += 1
        seq = self._issued
        generation = self._generation

        self._in_flight += 1
        self.store.set_loading(True)
        try:
            result: Optional[FetchResult] = await self._fetch(self.limit)
        except Exception as e:
            logger.error("Error fetching messages: %s", e)
            result = None
        finally:
            self._in_flight -= 1
            self.store.set_loading(self._in_flight > 0)

        if generation != self._generation or self.state != PollState.POLLING:
            logger.debug("Discarding fetch #%d issued before suspension", seq)
            return False
        if seq < self._applied:
            logger.debug("Discarding stale fetch #%d (newest applied #%d)", seq, self._applied)
            return False
        self._applied = seq

        if result is None:
            self.store.apply_fetch_error(FetchErrorKind.GENERIC, FETCH_FAILED_MESSAGE)
        else:
            self.store.apply_fetch_result(result.messages, result.error)
        return True

    def _spawn(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.poll_once())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _schedule_tick(self) -> None:
        self._cancel_tick()
        self._tick_handle = self._scheduler.call_later(self.interval, self._tick)

    def _cancel_tick(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _tick(self) -> None:
        self._tick_handle = None
        if self.state != PollState.POLLING:
            return
        self._schedule_tick()
        self._spawn()
