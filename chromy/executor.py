"""Deadline-bounded execution of asynchronous operations.

``run_with_deadline`` starts the operation as a task and polls it at a fixed interval. On
expiry only the waiting is abandoned: the task keeps running detached, and whatever it
eventually produces is logged at debug level and dropped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .errors import TimeoutError

logger = logging.getLogger("chromy.executor")

T = TypeVar("T")

DEFAULT_POLL_INTERVAL_MS = 50

# Abandoned tasks stay referenced until they settle.
_detached: set[asyncio.Task[Any]] = set()


@dataclass
class PendingCall:
    """One in-flight operation and the deadline it must meet."""

    task: asyncio.Task[Any]
    timeout_ms: float
    started_at: float = field(default_factory=time.monotonic)

    @property
    def settled(self) -> bool:
        return self.task.done()

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started_at) * 1000.0

    def expired(self) -> bool:
        return self.elapsed_ms() > self.timeout_ms

    def outcome(self) -> Any:
        """Result of the settled task; re-raises its error."""
        return self.task.result()

    def detach(self) -> None:
        _detached.add(self.task)
        self.task.add_done_callback(_discard_abandoned)


def _discard_abandoned(task: asyncio.Task[Any]) -> None:
    _detached.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("abandoned operation failed after its deadline: %r", exc)
    else:
        logger.debug("abandoned operation settled after its deadline; result dropped")


async def run_with_deadline(
    timeout_ms: float,
    operation: Callable[[], Awaitable[T]],
    *,
    poll_interval_ms: float = DEFAULT_POLL_INTERVAL_MS,
    cancel_on_timeout: bool = False,
) -> T:
    """Await ``operation()`` for at most ``timeout_ms``; raise ``TimeoutError`` otherwise.

    With ``cancel_on_timeout`` the expired operation is cancelled instead of detached.
    Nested use is fine: an operation may itself call ``run_with_deadline``.
    """
    call = PendingCall(asyncio.ensure_future(operation()), timeout_ms)
    interval = max(0.001, poll_interval_ms / 1000.0)
    try:
        while not call.settled:
            if call.expired():
                if cancel_on_timeout:
                    call.task.cancel()
                else:
                    call.detach()
                raise TimeoutError(f"timeout after {timeout_ms}ms")
            remaining = (call.timeout_ms - call.elapsed_ms()) / 1000.0
            # Wakes early when the task settles; never cancels it.
            await asyncio.wait({call.task}, timeout=max(0.001, min(interval, remaining + 0.001)))
    except asyncio.CancelledError:
        # Our own caller was cancelled: take the operation down with it.
        call.task.cancel()
        raise
    return call.outcome()


__all__ = ["DEFAULT_POLL_INTERVAL_MS", "PendingCall", "run_with_deadline"]
