"""Scheduling primitives used to defer each pipeline step to a fresh turn.

Any callable ``schedule(fn)`` works as a scheduler.  Two are provided:

``Trampoline``
    Default.  A thread-local run queue drained in a loop by whichever call
    first schedules work on an idle thread.  Steps never run inside the frame
    of the callable that requested them, so stack depth stays constant no
    matter how long the chain is.

``AsyncioScheduler``
    For hosts running an asyncio event loop; defers via
    ``loop.call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from typing import Callable, Optional

from .errors import ComposerError
from .protocol import Scheduler

logger = logging.getLogger(__name__)


class Trampoline:
    """Thread-local FIFO run queue."""

    def __init__(self) -> None:
        self._local = threading.local()

    def _queue(self) -> deque:
        queue = getattr(self._local, "queue", None)
        if queue is None:
            queue = self._local.queue = deque()
            self._local.draining = False
        return queue

    @property
    def draining(self) -> bool:
        """*True* while the current thread is draining the queue."""
        return getattr(self._local, "draining", False)

    def __call__(self, fn: Callable[[], None]) -> None:
        queue = self._queue()
        queue.append(fn)
        if self._local.draining:
            return
        self._local.draining = True
        first: Optional[Exception] = None
        try:
            # Keep draining past a failing callback; other runs may be queued.
            while queue:
                try:
                    queue.popleft()()
                except Exception as exc:
                    if first is None:
                        first = exc
                    else:
                        logger.error("Scheduled callback raised", exc_info=True)
        finally:
            self._local.draining = False
        if first is not None:
            raise first

    def __repr__(self) -> str:
        return "Trampoline()"


class AsyncioScheduler:
    """Defers to an asyncio event loop.

    Args:
        loop: Target loop.  Defaults to the loop running in the calling
            thread; constructing without one outside a running loop raises
            :class:`ComposerError`.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise ComposerError(
                    "AsyncioScheduler needs a loop when no event loop is running"
                ) from exc
        self.loop = loop

    def __call__(self, fn: Callable[[], None]) -> None:
        self.loop.call_soon_threadsafe(fn)

    def __repr__(self) -> str:
        return f"AsyncioScheduler(loop={self.loop!r})"


_default = Trampoline()


def default_scheduler() -> Trampoline:
    """The process-wide trampoline."""
    return _default


def get_scheduler(name: str) -> Scheduler:
    """Resolve a scheduler by name (``"trampoline"`` or ``"asyncio"``)."""
    key = name.strip().lower()
    if key == "trampoline":
        return default_scheduler()
    if key == "asyncio":
        return AsyncioScheduler()
    raise ComposerError(f"Unknown scheduler {name!r}")
