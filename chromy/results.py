"""Decode protocol results produced by the wrappers in ``functions.py``."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from .errors import EvaluateError, SerializationError

logger = logging.getLogger("chromy.results")


class _Undefined:
    """JavaScript ``undefined``: falsy and distinct from ``None`` (``null``)."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


class PromiseAwaiter(Protocol):
    async def await_promise(self, promise_object_id: str) -> dict[str, Any]: ...


def _error_description(response: dict[str, Any]) -> str:
    details = response.get("exceptionDetails")
    if isinstance(details, dict):
        exc = details.get("exception")
        if isinstance(exc, dict):
            desc = exc.get("description")
            if desc:
                return str(desc)
            if "value" in exc:
                return str(exc["value"])
        if details.get("text"):
            return str(details["text"])
    remote = response.get("result")
    if isinstance(remote, dict) and remote.get("description"):
        return str(remote["description"])
    return "unknown error"


def raise_for_exception(response: dict[str, Any]) -> None:
    remote = response.get("result")
    is_error_object = isinstance(remote, dict) and remote.get("subtype") == "error"
    if "exceptionDetails" in response or is_error_object:
        description = _error_description(response)
        raise EvaluateError(
            f"An error has occurred evaluating the script in the browser. {description}",
            description=description,
            result=remote if isinstance(remote, dict) else {},
        )


def rewrap_awaited(response: dict[str, Any]) -> dict[str, Any]:
    """Re-encode a by-value ``Runtime.awaitPromise`` result into the envelope shape."""
    remote = response.get("result") or {}
    js_type = remote.get("type", "undefined")
    if js_type == "undefined":
        envelope = {"type": "undefined"}
    else:
        envelope = {"type": js_type, "result": json.dumps(remote.get("value"))}
    return {"result": {"type": "string", "value": json.dumps(envelope)}}


def decode_envelope(text: Any) -> Any:
    """``{type, result}`` JSON text -> Python value (``UNDEFINED`` for undefined)."""
    try:
        envelope = json.loads(text)
        if envelope["type"] == "undefined":
            return UNDEFINED
        return json.loads(envelope["result"])
    except (TypeError, KeyError, ValueError) as exc:
        logger.warning("malformed result envelope: %r", text)
        raise SerializationError(f"Malformed result envelope: {text!r}") from exc


async def normalize_result(response: dict[str, Any] | None, awaiter: PromiseAwaiter) -> Any:
    """Turn a ``Runtime.evaluate`` / ``callFunctionOn`` response into a Python value.

    A promise result costs one extra ``Runtime.awaitPromise`` round trip; its outcome is
    re-wrapped so both paths share the same decoding.
    """
    if not response or not response.get("result"):
        return None

    remote = response["result"]
    if remote.get("subtype") == "promise" and "exceptionDetails" not in response:
        awaited = await awaiter.await_promise(remote["objectId"])
        raise_for_exception(awaited)
        response = rewrap_awaited(awaited)
        remote = response["result"]

    raise_for_exception(response)
    return decode_envelope(remote.get("value"))


__all__ = [
    "UNDEFINED",
    "PromiseAwaiter",
    "decode_envelope",
    "normalize_result",
    "raise_for_exception",
    "rewrap_awaited",
]
