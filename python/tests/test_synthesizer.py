"""Tests for fnfile synthesizer."""

import quickjs
import pytest

from fnfile.errors import ParseError, UnsettledPromiseError
from fnfile.extractors import TreeSitterExtractor
from fnfile.synthesizer import Scope, SynthesizedFunction, synthesize


def _synth(source, name, scope=None):
    descriptor = next(d for d in TreeSitterExtractor().parse(source) if d.name == name)
    return synthesize(source, descriptor, scope)


def test_rebuilt_function_runs():
    fn = _synth("function add(a, b) { return a + b; }", "add")

    assert isinstance(fn, SynthesizedFunction)
    assert fn.__name__ == "add"
    assert fn.params == ("a", "b")
    assert fn(1, 2) == 3


def test_source_is_rebuilt_from_descriptor():
    fn = _synth("function add(a,   b) { return a + b; }", "add")
    assert fn.source == "function add(a,b) { return a + b; }"
    assert str(fn) == fn.source


def test_non_identifier_parameters_are_dropped():
    fn = _synth("function f(a, { b }, c = 2, ...d) { return typeof c; }", "f")

    assert fn.params == ("a",)
    assert fn(1) == "undefined"


def test_free_variables_resolve_against_scope():
    source = "function f() { return printMe(c + d); }"
    fn = _synth(source, "f")
    with pytest.raises(quickjs.JSException, match="not defined"):
        fn()

    scope = Scope({"c": 1, "d": 2, "printMe": lambda value: f"Result is {value}"})
    assert _synth(source, "f", scope)() == "Result is 3"


def test_rebind_compiles_into_another_scope():
    fn = _synth("function f() { return base * 2; }", "f", Scope({"base": 1}))
    other = fn.rebind(Scope({"base": 21}))

    assert fn() == 2
    assert other() == 42
    assert fn.rebind(fn.scope) is fn


def test_scope_define_and_eval():
    scope = Scope()
    scope.define("items", [1, 2, 3])
    scope.define("double", lambda x: x * 2)

    assert scope.eval("items.length") == 3
    assert scope.eval("double(4)") == 8
    assert scope.eval("({a: [1, 2]})") == {"a": [1, 2]}


def test_objects_cross_the_boundary_as_json():
    fn = _synth("function wrap(v) { return { value: v, list: [v, v] }; }", "wrap")
    assert fn({"k": 1}) == {"value": {"k": 1}, "list": [{"k": 1}, {"k": 1}]}


def test_generator_keyword_is_kept():
    fn = _synth("function* gen() { yield 1; }", "gen")
    assert fn.source.startswith("function* gen()")


def test_synthesized_function_as_binding():
    helper = _synth("function helper(x) { return x + 1; }", "helper")
    scope = Scope({"helper": helper})
    assert scope.eval("helper(1)") == 2


def test_inner_function_body_is_sliced_exactly():
    source = "function outer() {\n  function inner(x) { return x; }\n  return 0;\n}\n"
    fn = _synth(source, "inner")
    assert fn.body == "{ return x; }"
    assert fn("same") == "same"


def test_generator_result_is_drained_into_a_list():
    fn = _synth("function* gen(n) { for (var i = 0; i < n; i++) yield i; }", "gen")
    assert fn(3) == [0, 1, 2]


def test_async_result_is_settled():
    fn = _synth("async function later(x) { var y = await Promise.resolve(x); return y * 2; }", "later")
    assert fn.source.startswith("async function later(x)")
    assert fn(21) == 42


def test_async_rejection_raises_js_exception():
    fn = _synth("async function fails() { throw new Error('nope'); }", "fails")
    with pytest.raises(quickjs.JSException, match="nope"):
        fn()


def test_promise_that_never_settles():
    fn = _synth("async function never() { await new Promise(function () {}); }", "never")
    with pytest.raises(UnsettledPromiseError):
        fn()


def test_python_callables_pass_as_arguments():
    fn = _synth("function apply(f, x) { return f(x) + 1; }", "apply")
    assert fn(lambda v: v * 10, 2) == 21


def test_compile_failure_is_a_parse_error():
    with pytest.raises(ParseError, match="SyntaxError"):
        SynthesizedFunction("f", [], "{ break; }", Scope())
