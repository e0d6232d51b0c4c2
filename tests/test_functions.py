from __future__ import annotations

import pytest

from chromy.errors import SerializationError
from chromy.functions import (
    JsFunction,
    SerializedExpression,
    apply_replaces,
    function_to_source,
    js,
    module_to_function_sources,
    wrap_function_for_call_function,
    wrap_function_for_evaluation,
)


def test_function_is_invoked_and_string_is_an_expression() -> None:
    assert function_to_source(js("() => 1")) == "(() => 1)()"
    assert function_to_source("document.title") == "(document.title)"


def test_replaces_splice_json_literals() -> None:
    src = function_to_source(js("() => document.querySelector($sel) !== null"), {"$sel": "a[href='x\"y']"})
    assert 'document.querySelector("a[href=\'x\\"y\']") !== null' in src


def test_replaces_only_match_whole_tokens() -> None:
    src = apply_replaces("n.value === value && valueX && value", {"value": 3})
    assert src == "n.value === 3 && valueX && 3"


def test_spliced_values_are_not_substituted_again() -> None:
    assert apply_replaces("setLabel(label, count)", {"label": "count", "count": 3}) == 'setLabel("count", 3)'
    src = apply_replaces("f($selector, $value)", {"$selector": "input[placeholder='$value']", "$value": "hi"})
    assert src == "f(\"input[placeholder='$value']\", \"hi\")"


def test_longer_placeholder_wins_over_its_prefix() -> None:
    assert apply_replaces("g($v, $value)", {"$v": 1, "$value": 2}) == "g(1, 2)"


def test_replaces_numbers_booleans_and_none() -> None:
    src = apply_replaces("f(a, b, c)", {"a": 1.5, "b": True, "c": None})
    assert src == "f(1.5, true, null)"


def test_invalid_placeholder_name_is_rejected() -> None:
    with pytest.raises(SerializationError):
        apply_replaces("x ? y : z", {"?": "boom"})


@pytest.mark.parametrize("bad", [object(), float("nan"), {1, 2}])
def test_unserializable_replace_value_is_rejected(bad: object) -> None:
    with pytest.raises(SerializationError):
        wrap_function_for_evaluation(js("() => $v"), {"$v": bad})


def test_empty_sources_are_rejected() -> None:
    with pytest.raises(SerializationError):
        JsFunction("  ")
    with pytest.raises(SerializationError):
        function_to_source("")
    with pytest.raises(SerializationError):
        function_to_source(42)  # type: ignore[arg-type]


def test_evaluation_wrapper_builds_envelope() -> None:
    src = wrap_function_for_evaluation(js("() => 1 + 1"))
    assert src.startswith("(function () {")
    assert src.endswith("})()")
    assert "const __result = (() => 1 + 1)();" in src
    assert "JSON.stringify({type: (typeof __result), result: JSON.stringify(__result)})" in src
    # thenables are handed back untouched for Runtime.awaitPromise
    assert "typeof __result.then === 'function'" in src


def test_call_function_wrapper_rebinds_document_to_receiver() -> None:
    src = wrap_function_for_call_function(js("() => document.title"))
    assert src.startswith("function () {")
    assert "this.contentDocument" in src
    assert "const window = document.defaultView" in src
    assert "(() => document.title)()" in src


def test_serialized_expression_is_a_value() -> None:
    a = SerializedExpression("f($x)", {"$x": 1})
    assert a.render() == "f(1)"
    assert a == SerializedExpression("f($x)", {"$x": 1})


def test_module_to_function_sources() -> None:
    (src,) = module_to_function_sources({"double": js("(x) => x * 2")})
    assert src == "function double () { return ((x) => x * 2)(...arguments) }"
    with pytest.raises(SerializationError):
        module_to_function_sources({"not a name": "() => 1"})
