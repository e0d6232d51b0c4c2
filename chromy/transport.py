"""DevTools domain operations used by sessions and documents.

Wraps ``CdpConnection`` with the handful of protocol calls chromy needs. Results are returned
as raw protocol dicts; interpreting them is the caller's job (see ``results.py``).
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from typing import Any

from .connection import CdpConnection, EventListener
from .errors import CdpError


class CdpTransport:
    """High-level protocol surface for one page target."""

    def __init__(self, connection: CdpConnection) -> None:
        self.conn = connection
        self._enabled: set[str] = set()

    @classmethod
    async def connect(cls, ws_url: str, *, timeout: float = 10.0) -> CdpTransport:
        return cls(await CdpConnection.open(ws_url, timeout=timeout))

    @property
    def closed(self) -> bool:
        return self.conn.closed

    async def close(self) -> None:
        await self.conn.close()

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a raw protocol command."""
        return await self.conn.send(method, params)

    def on(self, event_name: str, listener: EventListener) -> Callable[[], None]:
        return self.conn.on(event_name, listener)

    async def enable(self, *domains: str) -> None:
        """Enable protocol domains once per transport (``Page``, ``Runtime``, ...)."""
        for domain in domains:
            if domain in self._enabled:
                continue
            await self.conn.send(f"{domain}.enable")
            self._enabled.add(domain)

    # ─────────────────────────────────────────────────────────────────────────
    # Runtime
    # ─────────────────────────────────────────────────────────────────────────

    async def evaluate(self, expression: str) -> dict[str, Any]:
        return await self.conn.send("Runtime.evaluate", {"expression": expression})

    async def call_function_on(self, object_id: str, function_declaration: str, **options: Any) -> dict[str, Any]:
        params = dict(options)
        params.update({"objectId": object_id, "functionDeclaration": function_declaration})
        return await self.conn.send("Runtime.callFunctionOn", params)

    async def await_promise(self, promise_object_id: str) -> dict[str, Any]:
        return await self.conn.send(
            "Runtime.awaitPromise",
            {"promiseObjectId": promise_object_id, "returnByValue": True},
        )

    # ─────────────────────────────────────────────────────────────────────────
    # DOM
    # ─────────────────────────────────────────────────────────────────────────

    async def get_document_root(self) -> int | None:
        result = await self.conn.send("DOM.getDocument")
        root = result.get("root")
        if not isinstance(root, dict):
            return None
        node_id = root.get("nodeId")
        return node_id if isinstance(node_id, int) else None

    async def resolve_node(self, node_id: int) -> str | None:
        """Return the remote object id for ``node_id``, or None when the node is gone."""
        try:
            result = await self.conn.send("DOM.resolveNode", {"nodeId": node_id})
        except CdpError as exc:
            if exc.code == -32000:
                # "No node with given id found": stale id after the document was replaced.
                return None
            raise
        obj = result.get("object")
        if not isinstance(obj, dict):
            return None
        object_id = obj.get("objectId")
        return str(object_id) if object_id else None

    async def get_node_for_location(self, x: int, y: int) -> int | None:
        try:
            result = await self.conn.send("DOM.getNodeForLocation", {"x": x, "y": y})
        except CdpError as exc:
            if exc.code == -32000:
                return None
            raise
        node_id = result.get("nodeId")
        return node_id if isinstance(node_id, int) and node_id else None

    def on_document_updated(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self.conn.on("DOM.documentUpdated", lambda _params: callback())

    # ─────────────────────────────────────────────────────────────────────────
    # Page / Input / Network
    # ─────────────────────────────────────────────────────────────────────────

    async def navigate(self, url: str) -> dict[str, Any]:
        result = await self.conn.send("Page.navigate", {"url": url})
        error_text = result.get("errorText")
        if error_text:
            raise CdpError(f"Page.navigate: {error_text}", method="Page.navigate")
        return result

    async def wait_load_event(self, timeout: float | None = None) -> bool:
        return await self.conn.wait_for_event("Page.loadEventFired", timeout=timeout) is not None

    async def reload(self, ignore_cache: bool = False, script_to_evaluate_on_load: str | None = None) -> None:
        params: dict[str, Any] = {"ignoreCache": ignore_cache}
        if script_to_evaluate_on_load is not None:
            params["scriptToEvaluateOnLoad"] = script_to_evaluate_on_load
        await self.conn.send("Page.reload", params)

    async def dispatch_char(self, character: str) -> None:
        await self.conn.send("Input.dispatchKeyEvent", {"type": "char", "text": character})

    async def capture_screenshot(self, format: str = "png", quality: int | None = None, from_surface: bool = True) -> bytes:
        params: dict[str, Any] = {"format": format, "fromSurface": from_surface}
        if quality is not None:
            params["quality"] = quality
        result = await self.conn.send("Page.captureScreenshot", params)
        return base64.b64decode(result.get("data") or "")

    async def print_to_pdf(self, **options: Any) -> bytes:
        result = await self.conn.send("Page.printToPDF", options or None)
        return base64.b64decode(result.get("data") or "")

    async def set_user_agent(self, user_agent: str) -> None:
        await self.conn.send("Network.setUserAgentOverride", {"userAgent": user_agent})

    async def set_extra_headers(self, headers: dict[str, str]) -> None:
        await self.conn.send("Network.setExtraHTTPHeaders", {"headers": dict(headers)})


__all__ = ["CdpTransport"]
