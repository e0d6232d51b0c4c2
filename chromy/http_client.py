"""DevTools HTTP discovery endpoints (``/json/version``, ``/json/list``, ``/json/new``)."""

from __future__ import annotations

import json
import urllib.parse
from typing import Any
from urllib.error import URLError
from urllib.request import Request, urlopen

from .config import ChromyConfig
from .errors import ChromyError


class HttpClientError(ChromyError):
    pass


def _request_json(url: str, *, method: str = "GET", timeout: float = 2.0) -> Any:
    req = Request(url, method=method, headers={"User-Agent": "chromy/1.0"})
    try:
        with urlopen(req, timeout=timeout) as resp:
            return json.loads(resp.read().decode())
    except (TimeoutError, URLError, OSError) as exc:
        raise HttpClientError(f"{method} {url} failed: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise HttpClientError(f"{method} {url} returned invalid JSON") from exc


def get_version(config: ChromyConfig, timeout: float = 2.0) -> dict[str, Any]:
    data = _request_json(f"{config.http_endpoint}/json/version", timeout=timeout)
    if not isinstance(data, dict):
        raise HttpClientError("/json/version returned an unexpected payload")
    return data


def list_targets(config: ChromyConfig, timeout: float = 2.0) -> list[dict[str, Any]]:
    data = _request_json(f"{config.http_endpoint}/json/list", timeout=timeout)
    if not isinstance(data, list):
        raise HttpClientError("/json/list returned an unexpected payload")
    return [t for t in data if isinstance(t, dict)]


def new_target(config: ChromyConfig, url: str = "about:blank", timeout: float = 2.0) -> dict[str, Any]:
    endpoint = f"{config.http_endpoint}/json/new?{urllib.parse.quote(url, safe='')}"
    # Recent Chrome rejects GET on /json/new.
    data = _request_json(endpoint, method="PUT", timeout=timeout)
    if not isinstance(data, dict):
        raise HttpClientError("/json/new returned an unexpected payload")
    return data


def page_ws_url(config: ChromyConfig, timeout: float = 2.0) -> str:
    """Return the WebSocket URL of the first page target, creating one if none exists."""
    for target in list_targets(config, timeout=timeout):
        if target.get("type") == "page" and target.get("webSocketDebuggerUrl"):
            return str(target["webSocketDebuggerUrl"])
    created = new_target(config, timeout=timeout)
    ws_url = created.get("webSocketDebuggerUrl")
    if not ws_url:
        raise HttpClientError("New target has no webSocketDebuggerUrl (is another client attached?)")
    return str(ws_url)


__all__ = ["HttpClientError", "get_version", "list_targets", "new_target", "page_ws_url"]
