"""Delayed callbacks with cancellation handles.

Every timer the session starts goes through a ``Scheduler`` so teardown can
cancel all of them at once.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class TaskHandle:
    """Handle for one scheduled callback."""

    def __init__(self, scheduler: "Scheduler"):
        self._scheduler = scheduler
        self._timer: Optional[asyncio.TimerHandle] = None
        self.cancelled = False
        self.done = False

    def cancel(self) -> None:
        if self.cancelled or self.done:
            return
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()
        self._scheduler._forget(self)

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.done)


class Scheduler:
    """Runs callbacks after a delay on the asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: set[TaskHandle] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TaskHandle:
        handle = TaskHandle(self)

        def run() -> None:
            if not handle.active:
                return
            handle.done = True
            self._forget(handle)
            callback(*args)

        handle._timer = self._get_loop().call_later(delay, run)
        self._handles.add(handle)
        return handle

    def cancel_all(self) -> None:
        pending = list(self._handles)
        for handle in pending:
            handle.cancel()
        if pending:
            logger.debug("Cancelled %d scheduled callbacks", len(pending))

    @property
    def pending_count(self) -> int:
        return len(self._handles)

    def _forget(self, handle: TaskHandle) -> None:
        self._handles.discard(handle)
