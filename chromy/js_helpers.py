"""
JavaScript snippets behind the document operations.

Each snippet is a ``JsFunction`` whose ``$``-prefixed identifiers are placeholders filled with
JSON literals at call time, so user-supplied selectors and values never break the source.
"""

from __future__ import annotations

from .functions import js, to_js_literal

# ═══════════════════════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════════════════════

EXISTS = js("() => document.querySelector($selector) !== null")

VISIBLE = js(
    """() => {
    const el = document.querySelector($selector);
    return el !== null && el.offsetWidth > 0 && el.offsetHeight > 0;
}"""
)

RECT = js(
    """() => {
    const el = document.querySelector($selector);
    if (!el) return null;
    const r = el.getBoundingClientRect();
    return {top: r.top, left: r.left, width: r.width, height: r.height};
}"""
)

RECT_ALL = js(
    """() => Array.prototype.map.call(document.querySelectorAll($selector), (el) => {
    const r = el.getBoundingClientRect();
    return {top: r.top, left: r.left, width: r.width, height: r.height};
})"""
)

PAGE_OFFSET = js("() => ({x: window.pageXOffset, y: window.pageYOffset})")

# ═══════════════════════════════════════════════════════════════════════════════
# Actions
# ═══════════════════════════════════════════════════════════════════════════════

CLICK_ALL = js("() => { document.querySelectorAll($selector).forEach((n) => n.click()) }")

FOCUS = js("() => { document.querySelector($selector).focus() }")

SET_VALUE = js("() => { document.querySelector($selector).value = $value }")

SET_CHECKED = js("() => { document.querySelectorAll($selector).forEach((n) => { n.checked = $checked }) }")

SELECT_OPTION = js(
    """() => {
    document.querySelectorAll($selector + ' > option').forEach((n) => {
        if (n.value === $value) {
            n.selected = true;
        }
    });
}"""
)

SCROLL_BY = js("() => { window.scrollTo(window.pageXOffset + $dx, window.pageYOffset + $dy) }")

SCROLL_TO = js("() => { window.scrollTo($x, $y) }")


def send_to_chromy_source(prefix: str) -> str:
    """Page function that forwards its arguments to the session through the console."""
    return f"function () {{ console.info({to_js_literal(prefix + ':')} + JSON.stringify(Array.from(arguments))) }}"


__all__ = [
    "CLICK_ALL",
    "EXISTS",
    "FOCUS",
    "PAGE_OFFSET",
    "RECT",
    "RECT_ALL",
    "SCROLL_BY",
    "SCROLL_TO",
    "SELECT_OPTION",
    "SET_CHECKED",
    "SET_VALUE",
    "VISIBLE",
    "send_to_chromy_source",
]
