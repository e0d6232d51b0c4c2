"""
Document: evaluation facade for the top-level page or an embedded frame.

``evaluate()`` is the one entry point every document operation goes through:

    serialize (functions.py) -> resolve context (context.py, frames only)
    -> dispatch under evaluate_timeout (executor.py) -> normalize (results.py)

A ``Chromy`` session is itself the top-level Document; frame documents are created by
``iframe()`` and share the session's transport.
"""

from __future__ import annotations

import asyncio
import inspect
import math
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from . import js_helpers
from .config import ChromyConfig
from .context import EvaluationContext
from .errors import EvaluateError, EvaluateTimeoutError, GotoTimeoutError, SessionClosedError, TimeoutError
from .executor import run_with_deadline
from .functions import Expression, wrap_function_for_call_function, wrap_function_for_evaluation
from .results import normalize_result
from .transport import CdpTransport
from .waiting import wait_for

if TYPE_CHECKING:
    from .chromy import Chromy


def _floor_rect(rect: dict[str, Any]) -> dict[str, int]:
    return {key: math.floor(rect[key]) for key in ("top", "left", "width", "height")}


class Document:
    def __init__(self, chromy: Chromy | None = None, client: CdpTransport | None = None, node_id: int | None = None):
        # The top-level session is its own owner.
        self.chromy: Any = chromy if chromy is not None else self
        self.client = client
        self.context = EvaluationContext(client, node_id)

    @property
    def config(self) -> ChromyConfig:
        return self.chromy.config

    def _require_client(self) -> CdpTransport:
        client = self.client
        if client is None or client.closed:
            raise SessionClosedError("Session is not started or has been closed")
        return client

    # ─────────────────────────────────────────────────────────────────────────
    # Evaluation
    # ─────────────────────────────────────────────────────────────────────────

    async def evaluate(self, expr: Expression, replaces: dict[str, Any] | None = None) -> Any:
        """Run ``expr`` in this document and return its value.

        ``expr`` is a ``JsFunction`` (called with no arguments) or expression source text.
        ``replaces`` maps placeholder identifiers in the source to JSON-serializable values.
        Returns ``UNDEFINED`` for ``undefined`` and ``None`` for ``null``; promises are awaited.
        """
        client = self._require_client()
        nested = self.context.nested
        if nested:
            source = wrap_function_for_call_function(expr, replaces)
        else:
            source = wrap_function_for_evaluation(expr, replaces)

        async def _dispatch() -> Any:
            if nested:
                # Frame documents can be swapped out; resolve the receiver on every call.
                object_id = await self.context.resolve()
                if object_id is None:
                    raise EvaluateError("The frame's execution context is not resolvable (was it removed?)")
                response = await client.call_function_on(object_id, source)
            else:
                response = await client.evaluate(source)
            return await normalize_result(response, client)

        try:
            return await run_with_deadline(
                self.config.evaluate_timeout,
                _dispatch,
                poll_interval_ms=self.config.poll_interval,
            )
        except TimeoutError as exc:
            raise EvaluateTimeoutError("evaluate() timeout") from exc

    async def sleep(self, msec: float) -> None:
        await asyncio.sleep(msec / 1000.0)

    async def wait(self, cond: Any) -> None:
        """Wait for ``cond``: milliseconds, a ``JsFunction`` predicate, or a CSS selector."""
        await wait_for(self, cond)

    # ─────────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────────

    async def exists(self, selector: str) -> bool:
        return bool(await self.evaluate(js_helpers.EXISTS, {"$selector": selector}))

    async def visible(self, selector: str) -> bool:
        return bool(await self.evaluate(js_helpers.VISIBLE, {"$selector": selector}))

    async def rect(self, selector: str) -> dict[str, int] | None:
        """Bounding client rect of the first match, floored to ints; None when absent."""
        rect = await self.evaluate(js_helpers.RECT, {"$selector": selector})
        if not rect:
            return None
        return _floor_rect(rect)

    async def rect_all(self, selector: str) -> list[dict[str, int]]:
        rects = await self.evaluate(js_helpers.RECT_ALL, {"$selector": selector})
        return [_floor_rect(rect) for rect in rects or []]

    async def page_offset(self) -> dict[str, float]:
        return await self.evaluate(js_helpers.PAGE_OFFSET)

    # ─────────────────────────────────────────────────────────────────────────
    # Actions
    # ─────────────────────────────────────────────────────────────────────────

    async def click(self, selector: str, wait_load_event: bool = False) -> None:
        """Click every element matching ``selector``; optionally wait for the next page load.

        With ``wait_load_event`` a load that does not fire within ``goto_timeout`` raises
        ``GotoTimeoutError``.
        """
        client = self._require_client()
        load: asyncio.Future[bool] | None = None
        if wait_load_event:
            load = asyncio.ensure_future(client.wait_load_event(timeout=self.config.goto_timeout / 1000.0))
        try:
            await self.evaluate(js_helpers.CLICK_ALL, {"$selector": selector})
            if load is not None and not await load:
                raise GotoTimeoutError("click() load event timeout")
        finally:
            if load is not None and not load.done():
                load.cancel()

    async def insert(self, selector: str, value: str) -> None:
        await self.evaluate(js_helpers.FOCUS, {"$selector": selector})
        await self.evaluate(js_helpers.SET_VALUE, {"$selector": selector, "$value": value})

    async def type(self, selector: str, value: str) -> None:
        """Focus ``selector`` and send ``value`` one key event per character."""
        await self.evaluate(js_helpers.FOCUS, {"$selector": selector})
        client = self._require_client()
        for char in value:
            await client.dispatch_char(char)
            await self.sleep(self.config.type_interval)

    async def check(self, selector: str) -> None:
        await self.evaluate(js_helpers.SET_CHECKED, {"$selector": selector, "$checked": True})

    async def uncheck(self, selector: str) -> None:
        await self.evaluate(js_helpers.SET_CHECKED, {"$selector": selector, "$checked": False})

    async def select(self, selector: str, value: str) -> None:
        await self.evaluate(js_helpers.SELECT_OPTION, {"$selector": selector, "$value": value})

    async def scroll(self, dx: float, dy: float) -> None:
        await self.evaluate(js_helpers.SCROLL_BY, {"$dx": dx, "$dy": dy})

    async def scroll_to(self, x: float, y: float) -> None:
        await self.evaluate(js_helpers.SCROLL_TO, {"$x": x, "$y": y})

    # ─────────────────────────────────────────────────────────────────────────
    # Frames
    # ─────────────────────────────────────────────────────────────────────────

    async def iframe(self, selector: str, callback: Callable[[Document], Any]) -> Any:
        """Run ``callback`` with a Document bound to the frame matching ``selector``.

        Returns the callback's result, or None without calling it when no frame is found.
        """
        rect = await self.rect(selector)
        if not rect:
            return None
        client = self._require_client()
        # Location lookup only works for nodes inside the viewport.
        original_offset = await self.page_offset()
        try:
            await self.scroll_to(0, original_offset["y"] + rect["top"])
            rect = await self.rect(selector) or rect
            await self.context.get_node_id()
            node_id = await client.get_node_for_location(rect["left"] + 10, rect["top"] + 10)
            if not node_id:
                return None
            doc = Document(self.chromy, client, node_id)
        finally:
            await self.scroll_to(original_offset["x"], original_offset["y"])
        result = callback(doc)
        if inspect.isawaitable(result):
            result = await result
        return result


__all__ = ["Document"]
