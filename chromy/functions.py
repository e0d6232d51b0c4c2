"""
Turn JavaScript functions and expressions into source text the browser can run.

Every wrapped snippet reports its outcome as JSON text of the shape::

    {"type": typeof result, "result": JSON.stringify(result)}

The double encoding lets ``undefined`` (which JSON cannot carry) travel back distinguishable
from ``null``. A thenable result is returned as-is so the caller can await it remotely.

Placeholders are JavaScript identifiers replaced, as whole tokens, with JSON literals::

    wrap_function_for_evaluation(js("() => document.querySelector(sel) !== null"), {"sel": "#a"})
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import SerializationError

_PLACEHOLDER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


@dataclass(frozen=True)
class JsFunction:
    """Source text of a JavaScript function, e.g. ``"() => document.title"``."""

    source: str

    def __post_init__(self) -> None:
        if not isinstance(self.source, str) or not self.source.strip():
            raise SerializationError("JsFunction source must be a non-empty string")

    def __str__(self) -> str:
        return self.source


def js(source: str) -> JsFunction:
    return JsFunction(source)


Expression = Union[str, JsFunction]


@dataclass(frozen=True)
class SerializedExpression:
    source: str
    replaces: Mapping[str, Any] = field(default_factory=dict)

    def render(self) -> str:
        return apply_replaces(self.source, self.replaces)


def to_js_literal(value: Any) -> str:
    try:
        return json.dumps(value, allow_nan=False, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Value is not JSON-serializable: {value!r}") from exc


def apply_replaces(source: str, replaces: Mapping[str, Any] | None) -> str:
    """Substitute every whole-token placeholder occurrence with its JSON literal."""
    if not replaces:
        return source
    literals: dict[str, str] = {}
    for name, value in replaces.items():
        if not isinstance(name, str) or not _PLACEHOLDER_RE.match(name):
            raise SerializationError(f"Invalid placeholder name: {name!r}")
        literals[name] = to_js_literal(value)
    # One pass: spliced literals are never scanned again.
    names = sorted(literals, key=len, reverse=True)
    pattern = re.compile(r"(?<![\w$.])(?:" + "|".join(re.escape(n) for n in names) + r")(?![\w$])")
    return pattern.sub(lambda m: literals[m.group(0)], source)


def function_to_source(expr: Expression, replaces: Mapping[str, Any] | None = None) -> str:
    """Return an expression that produces the value of ``expr``.

    Functions are invoked with no arguments; plain strings must be a single expression
    (wrap statements in a ``JsFunction``).
    """
    if isinstance(expr, JsFunction):
        body = f"({expr.source})()"
    elif isinstance(expr, str):
        if not expr.strip():
            raise SerializationError("Expression must not be empty")
        body = f"({expr})"
    else:
        raise SerializationError(f"Unsupported expression type: {type(expr).__name__}")
    return SerializedExpression(body, dict(replaces or {})).render()


_ENVELOPE_BODY = """
    const __result = {body};
    if (__result !== null && typeof __result === 'object' && typeof __result.then === 'function') {{
      return __result;
    }}
    return JSON.stringify({{type: (typeof __result), result: JSON.stringify(__result)}});
"""


def wrap_function_for_evaluation(expr: Expression, replaces: Mapping[str, Any] | None = None) -> str:
    """Free form: an IIFE for ``Runtime.evaluate`` in the page's global scope."""
    body = _ENVELOPE_BODY.format(body=function_to_source(expr, replaces))
    return f"(function () {{{body}}})()"


def wrap_function_for_call_function(expr: Expression, replaces: Mapping[str, Any] | None = None) -> str:
    """Bound form: a ``functionDeclaration`` for ``Runtime.callFunctionOn``.

    The receiver is the context node. When it owns a frame, ``document`` and ``window`` refer
    to the frame's document inside the snippet.
    """
    body = _ENVELOPE_BODY.format(body=function_to_source(expr, replaces))
    return (
        "function () {\n"
        "  const document = (this && this.contentDocument) || (this && this.ownerDocument) || globalThis.document;\n"
        "  const window = document.defaultView || globalThis;\n"
        f"  return (function () {{{body}}})();\n"
        "}"
    )


def module_to_function_sources(module: Mapping[str, Expression]) -> list[str]:
    """Wrap ``{name: function}`` pairs as named globals forwarding their arguments."""
    sources = []
    for name, func in module.items():
        if not isinstance(name, str) or not _PLACEHOLDER_RE.match(name):
            raise SerializationError(f"Invalid function name: {name!r}")
        sources.append(f"function {name} () {{ return ({func})(...arguments) }}")
    return sources


__all__ = [
    "Expression",
    "JsFunction",
    "SerializedExpression",
    "apply_replaces",
    "function_to_source",
    "js",
    "module_to_function_sources",
    "to_js_literal",
    "wrap_function_for_call_function",
    "wrap_function_for_evaluation",
]
