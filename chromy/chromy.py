"""
Chromy: one browser automation session.

Owns the browser process (through ``BrowserLauncher``, unless attaching) and the single
DevTools transport every Document of the session shares. Live sessions are tracked in a
process-wide registry so ``Chromy.cleanup()`` can close them all.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
import threading
import uuid
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from .config import ChromyConfig
from .context import EvaluationContext
from .document import Document
from .errors import GotoTimeoutError, TimeoutError
from .executor import run_with_deadline
from .functions import Expression, JsFunction, module_to_function_sources
from .http_client import page_ws_url
from .js_helpers import send_to_chromy_source
from .launcher import BrowserLauncher
from .results import raise_for_exception
from .transport import CdpTransport

logger = logging.getLogger("chromy.session")

_instances: list[Chromy] = []
_instances_lock = threading.Lock()
_instance_ids = itertools.count(1)

SCREENSHOT_FORMATS = ("png", "jpeg")


def _register(instance: Chromy) -> None:
    with _instances_lock:
        if instance not in _instances:
            _instances.append(instance)


def _unregister(instance: Chromy) -> None:
    with _instances_lock:
        _instances[:] = [i for i in _instances if i.instance_id != instance.instance_id]


def live_sessions() -> list[Chromy]:
    with _instances_lock:
        return list(_instances)


def console_text(params: dict[str, Any]) -> str | None:
    """Text of a ``Runtime.consoleAPICalled`` event (arguments joined by spaces)."""
    args = params.get("args")
    if not isinstance(args, list) or not args:
        return None
    parts: list[str] = []
    for arg in args:
        if not isinstance(arg, dict):
            continue
        if "value" in arg:
            value = arg["value"]
            parts.append(value if isinstance(value, str) else json.dumps(value))
        elif arg.get("description"):
            parts.append(str(arg["description"]))
        else:
            parts.append(str(arg.get("type", "")))
    return " ".join(parts)


class Chromy(Document):
    """Browser session; also the top-level Document of its page.

    Usage::

        async with Chromy(visible=False) as chromy:
            await chromy.goto("https://example.com")
            title = await chromy.evaluate("document.title")
    """

    def __init__(self, config: ChromyConfig | None = None, **options: Any) -> None:
        base = config if config is not None else ChromyConfig.from_env()
        self._config = base.with_options(**options) if options else base
        super().__init__(None, None)
        self.launcher: BrowserLauncher | None = None
        self.message_prefix: str | None = None
        self.instance_id = next(_instance_ids)

    @property
    def config(self) -> ChromyConfig:
        return self._config

    async def __aenter__(self) -> Chromy:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    async def start(self) -> None:
        if self.client is not None:
            return
        if self.config.launch_browser and self.launcher is None:
            self.launcher = BrowserLauncher(self.config)
        try:
            if self.launcher is not None:
                await asyncio.to_thread(self.launcher.start)
            ws_url = await asyncio.to_thread(page_ws_url, self.config)
            client = await CdpTransport.connect(ws_url)
        except BaseException:
            await self._kill_launcher()
            raise
        try:
            await client.enable("Network", "Page", "Runtime", "DOM")
        except BaseException:
            await client.close()
            await self._kill_launcher()
            raise

        self.client = client
        self.context = EvaluationContext(client)
        _register(self)
        logger.debug("session %d started on %s", self.instance_id, ws_url)

        if self.config.user_agent is not None:
            await self.user_agent(self.config.user_agent)
        if self.config.headers is not None:
            await self.headers(self.config.headers)

    async def close(self) -> bool:
        """Tear down the transport and the owned browser. False when not started."""
        if self.client is None:
            return False
        client = self.client
        self.client = None
        self.context = EvaluationContext(None)
        try:
            await client.close()
        finally:
            await self._kill_launcher()
            _unregister(self)
        logger.debug("session %d closed", self.instance_id)
        return True

    async def _kill_launcher(self) -> None:
        if self.launcher is not None:
            launcher = self.launcher
            self.launcher = None
            await asyncio.to_thread(launcher.kill)

    @classmethod
    async def cleanup(cls) -> None:
        """Close every live session."""
        for instance in live_sessions():
            await instance.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    async def goto(self, url: str) -> None:
        """Navigate and wait for the load event (``goto_timeout``), starting if needed."""
        if self.client is None:
            await self.start()
        client = self._require_client()

        async def _navigate() -> None:
            load = asyncio.ensure_future(client.wait_load_event())
            try:
                await client.navigate(url)
                await load
            finally:
                if not load.done():
                    load.cancel()

        try:
            await run_with_deadline(
                self.config.goto_timeout,
                _navigate,
                poll_interval_ms=self.config.poll_interval,
                cancel_on_timeout=True,
            )
        except TimeoutError as exc:
            raise GotoTimeoutError("goto() timeout") from exc

    async def reload(self, ignore_cache: bool = False, script_to_evaluate_on_load: str | None = None) -> None:
        await self._require_client().reload(ignore_cache, script_to_evaluate_on_load)

    # ─────────────────────────────────────────────────────────────────────────
    # Thin protocol calls
    # ─────────────────────────────────────────────────────────────────────────

    async def user_agent(self, ua: str) -> None:
        await self._require_client().set_user_agent(ua)

    async def headers(self, headers: Mapping[str, str]) -> None:
        """Extra HTTP headers for every request, e.g. ``{"X-Requested-By": "foo"}``."""
        await self._require_client().set_extra_headers(dict(headers))

    async def screenshot(self, format: str = "png", quality: int | None = None, from_surface: bool = True) -> bytes:
        if format not in SCREENSHOT_FORMATS:
            raise ValueError(f"format is invalid: {format!r} (expected one of {', '.join(SCREENSHOT_FORMATS)})")
        return await self._require_client().capture_screenshot(format, quality, from_surface)

    async def pdf(self, **options: Any) -> bytes:
        return await self._require_client().print_to_pdf(**options)

    async def define_function(self, definition: Expression | Sequence[Expression] | Mapping[str, Expression]) -> None:
        """Declare global functions in the page.

        Accepts function source (``str`` or ``JsFunction``), a list of them, or a mapping
        ``name -> function`` defining ``name(...)`` as a forwarder.
        """
        client = self._require_client()
        if isinstance(definition, Mapping):
            sources = module_to_function_sources(definition)
        elif isinstance(definition, (str, JsFunction)):
            sources = [str(definition)]
        else:
            sources = [str(item) for item in definition]
        for source in sources:
            raise_for_exception(await client.evaluate(source))

    # ─────────────────────────────────────────────────────────────────────────
    # Console
    # ─────────────────────────────────────────────────────────────────────────

    def console(self, callback: Callable[[str, dict[str, Any]], Any]) -> Callable[[], None]:
        """Call ``callback(text, event)`` for console messages; returns an unsubscribe function.

        Messages sent through ``receive_message`` are not reported here.
        """
        client = self._require_client()

        def _on_console(params: dict[str, Any]) -> Any:
            text = console_text(params)
            if text is None:
                return None
            prefix = self.message_prefix
            if prefix is not None and text.startswith(prefix + ":"):
                return None
            return callback(text, params)

        return client.on("Runtime.consoleAPICalled", _on_console)

    async def receive_message(self, callback: Callable[[list[Any]], Any]) -> Callable[[], None]:
        """Define ``sendToChromy(...)`` in the page; ``callback`` gets its argument list."""
        client = self._require_client()
        prefix = str(uuid.uuid4())
        self.message_prefix = prefix
        await self.define_function({"sendToChromy": send_to_chromy_source(prefix)})

        def _on_message(params: dict[str, Any]) -> Any:
            text = console_text(params)
            if not text or not text.startswith(prefix + ":"):
                return None
            return callback(json.loads(text[len(prefix) + 1 :]))

        return client.on("Runtime.consoleAPICalled", _on_message)


__all__ = ["Chromy", "console_text", "live_sessions"]
