"""Low-level asyncio DevTools protocol connection.

One WebSocket per page target. A reader task routes every incoming frame:
- responses (``id`` present) settle the matching pending future;
- events (``method`` without ``id``) fan out to registered listeners.

Listener failures are logged and isolated: one broken callback must not stop the reader
or other listeners.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from .errors import CdpError, ConnectionClosedError

logger = logging.getLogger("chromy.connection")

EventListener = Callable[[dict[str, Any]], "Awaitable[None] | None"]


class CdpConnection:
    """DevTools protocol client over a single WebSocket."""

    def __init__(self, ws: Any, ws_url: str = "") -> None:
        self.ws = ws
        self.ws_url = ws_url
        self._next_id = 1
        self._pending: dict[int, tuple[str, asyncio.Future[dict[str, Any]]]] = {}
        self._listeners: dict[str, list[EventListener]] = {}
        self._background: set[asyncio.Task[Any]] = set()
        self._closed = False
        self._reader = asyncio.ensure_future(self._read_loop())

    @classmethod
    async def open(cls, ws_url: str, *, timeout: float = 10.0) -> CdpConnection:
        # CDP payloads (screenshots, PDFs) routinely exceed the default 1 MiB frame limit.
        ws = await websockets.connect(ws_url, max_size=None, open_timeout=timeout)
        logger.debug("connected to %s", ws_url)
        return cls(ws, ws_url)

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a command and wait for its response ``result``."""
        if self._closed:
            raise ConnectionClosedError(f"{method}: connection is closed", method=method)
        msg_id = self._next_id
        self._next_id += 1

        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = (method, future)
        try:
            await self.ws.send(json.dumps(msg))
        except ConnectionClosed as exc:
            self._pending.pop(msg_id, None)
            raise ConnectionClosedError(f"{method}: {exc}", method=method) from exc
        try:
            return await future
        finally:
            self._pending.pop(msg_id, None)

    def on(self, event_name: str, listener: EventListener) -> Callable[[], None]:
        """Register a listener for ``event_name`` params; returns an unsubscribe function."""
        self._listeners.setdefault(event_name, []).append(listener)

        def _remove() -> None:
            with suppress(ValueError):
                self._listeners.get(event_name, []).remove(listener)

        return _remove

    async def wait_for_event(self, event_name: str, timeout: float | None = None) -> dict[str, Any] | None:
        """Wait for the next ``event_name`` event; None on timeout."""
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()

        def _once(params: dict[str, Any]) -> None:
            if not future.done():
                future.set_result(params)

        remove = self.on(event_name, _once)
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            return None
        finally:
            remove()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with suppress(Exception):
            await self.ws.close()
        self._reader.cancel()
        with suppress(asyncio.CancelledError):
            await self._reader
        self._fail_pending("connection closed")

    def _fail_pending(self, reason: str) -> None:
        for method, future in list(self._pending.values()):
            if not future.done():
                future.set_exception(ConnectionClosedError(f"{method}: {reason}", method=method))
        self._pending.clear()

    async def _read_loop(self) -> None:
        try:
            async for raw in self.ws:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning("dropping non-JSON frame from %s", self.ws_url)
                    continue
                if not isinstance(data, dict):
                    continue
                if "id" in data:
                    self._settle(data)
                elif isinstance(data.get("method"), str):
                    self._dispatch(data["method"], data.get("params") or {})
        except ConnectionClosed:
            pass
        finally:
            self._closed = True
            self._fail_pending("connection lost")

    def _settle(self, data: dict[str, Any]) -> None:
        entry = self._pending.get(data["id"])
        if entry is None:
            # Response for a call nobody waits on anymore.
            return
        method, future = entry
        if future.done():
            return
        error = data.get("error")
        if isinstance(error, dict):
            future.set_exception(
                CdpError(
                    f"{method}: {error.get('message', 'protocol error')}",
                    code=error.get("code"),
                    method=method,
                    data=error.get("data"),
                )
            )
        else:
            future.set_result(data.get("result") or {})

    def _dispatch(self, event_name: str, params: dict[str, Any]) -> None:
        for listener in list(self._listeners.get(event_name, [])):
            try:
                outcome = listener(params)
            except Exception:
                logger.warning("listener for %s failed", event_name, exc_info=True)
                continue
            if inspect.isawaitable(outcome):
                task = asyncio.ensure_future(outcome)
                self._background.add(task)
                task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("async event listener failed", exc_info=exc)


__all__ = ["CdpConnection", "EventListener"]
