"""
Condition polling behind ``Document.wait()``.

Three condition shapes, dispatched once:
- ``Delay``: sleep for a number of milliseconds (plain ``int``/``float``);
- ``Predicate``: a JavaScript function re-evaluated until it returns something truthy
  (plain ``JsFunction``);
- ``SelectorPresent``: a CSS selector re-checked until an element matches (plain ``str``).

Predicates and selectors are checked immediately, then every ``poll_interval`` ms until
``wait_timeout`` elapses, which raises ``WaitTimeoutError``.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Protocol, Union

from .config import ChromyConfig
from .errors import EvaluateTimeoutError, TimeoutError, WaitTimeoutError
from .executor import run_with_deadline
from .functions import Expression, JsFunction


@dataclass(frozen=True)
class Delay:
    ms: float


@dataclass(frozen=True)
class Predicate:
    expr: Expression


@dataclass(frozen=True)
class SelectorPresent:
    selector: str


Condition = Union[Delay, Predicate, SelectorPresent]


class Waitable(Protocol):
    @property
    def config(self) -> ChromyConfig: ...

    async def evaluate(self, expr: Expression, replaces: dict[str, Any] | None = None) -> Any: ...

    async def exists(self, selector: str) -> bool: ...


def to_condition(cond: Any) -> Condition:
    if isinstance(cond, (Delay, Predicate, SelectorPresent)):
        return cond
    if isinstance(cond, bool):
        raise TypeError("wait() does not accept booleans")
    if isinstance(cond, (int, float)):
        # Negative delays behave like zero.
        return Delay(max(0, cond))
    if isinstance(cond, JsFunction):
        return Predicate(cond)
    if isinstance(cond, str):
        return SelectorPresent(cond)
    raise TypeError(f"Unsupported wait condition: {type(cond).__name__}")


async def wait_for(target: Waitable, cond: Any) -> None:
    condition = to_condition(cond)
    if isinstance(condition, Delay):
        await asyncio.sleep(condition.ms / 1000.0)
    elif isinstance(condition, Predicate):
        await wait_predicate(target, condition.expr)
    else:
        await wait_selector(target, condition.selector)


async def wait_predicate(target: Waitable, expr: Expression) -> None:
    config = target.config
    interval = config.poll_interval / 1000.0

    async def _poll() -> None:
        while True:
            if await target.evaluate(expr):
                return
            await asyncio.sleep(interval)

    try:
        await run_with_deadline(
            config.wait_timeout,
            _poll,
            poll_interval_ms=config.poll_interval,
            cancel_on_timeout=True,
        )
    except EvaluateTimeoutError:
        raise
    except TimeoutError as exc:
        raise WaitTimeoutError("wait() timeout") from exc


class _SelectorWatch:
    """Self-rescheduling presence check: each attempt schedules the next one."""

    def __init__(self, target: Waitable, selector: str) -> None:
        self.target = target
        self.selector = selector
        self.loop = asyncio.get_running_loop()
        self.done: asyncio.Future[None] = self.loop.create_future()
        self.started_at = time.monotonic()
        self._timer: asyncio.TimerHandle | None = None
        self._attempt: asyncio.Task[None] | None = None

    async def run(self) -> None:
        self._launch()
        try:
            await self.done
        finally:
            if self._timer is not None:
                self._timer.cancel()
            if self._attempt is not None and not self._attempt.done():
                self._attempt.cancel()

    def _launch(self) -> None:
        self._timer = None
        self._attempt = asyncio.ensure_future(self._check())

    async def _check(self) -> None:
        config = self.target.config
        try:
            if (time.monotonic() - self.started_at) * 1000.0 > config.wait_timeout:
                self._finish(WaitTimeoutError("wait() timeout"))
                return
            if await self.target.exists(self.selector):
                self._finish(None)
            elif not self.done.done():
                self._timer = self.loop.call_later(config.poll_interval / 1000.0, self._launch)
        except Exception as exc:  # noqa: BLE001
            self._finish(exc)

    def _finish(self, error: BaseException | None) -> None:
        if self.done.done():
            return
        if error is None:
            self.done.set_result(None)
        else:
            self.done.set_exception(error)


async def wait_selector(target: Waitable, selector: str) -> None:
    await _SelectorWatch(target, selector).run()


__all__ = [
    "Condition",
    "Delay",
    "Predicate",
    "SelectorPresent",
    "Waitable",
    "to_condition",
    "wait_for",
    "wait_predicate",
    "wait_selector",
]
