"""Rebuild callable JavaScript functions from slices of their source.

A rebuilt function is compiled inside a Scope, an embedded QuickJS global
environment. Free variables in its body resolve against whatever that scope
defines when the function runs, never against the file it was cut from: the
result is portable source text, not a portable closure.
"""

import itertools
import json
from collections.abc import Mapping
from typing import Any

import quickjs

from .errors import ParseError, UnsettledPromiseError, first_line
from .protocols import FunctionDescriptor

_KIND = """(function (value) {
    if (value instanceof Promise) return "promise";
    var tag = Object.prototype.toString.call(value);
    if (tag === "[object Generator]") return "generator";
    if (tag === "[object AsyncGenerator]") return "async_generator";
    return typeof value;
})"""
_ASSIGN = "(function (name, value) { globalThis[name] = value; })"
_WATCH = """(function (promise) {
    var box = {done: false, rejected: false};
    promise.then(
        function (value) { box.done = true; box.value = value; },
        function (reason) { box.done = box.rejected = true; box.reason = String(reason); });
    return box;
})"""
_FIELD = "(function (box, key) { return box[key]; })"
_DRAIN = "(function (iterator) { return Array.from(iterator); })"


class Scope:
    """A JavaScript global environment that synthesized functions run in.

    Bindings may be plain JSON-compatible values or Python callables, which
    become JS functions of the same name.

    The engine has no event loop: a returned Promise is settled by running
    the pending job queue until it is empty, and a returned generator is
    drained into a list.
    """

    def __init__(self, bindings: Mapping[str, Any] | None = None):
        self._context = quickjs.Context()
        self._kind = self._context.eval(_KIND)
        self._assign = self._context.eval(_ASSIGN)
        self._watch = self._context.eval(_WATCH)
        self._field = self._context.eval(_FIELD)
        self._drain = self._context.eval(_DRAIN)
        self._json_parse = self._context.eval("JSON.parse")
        self._callable_ids = itertools.count()
        for name, value in (bindings or {}).items():
            self.define(name, value)

    def define(self, name: str, value: Any) -> None:
        """Bind ``name`` as a global of this scope."""
        if _is_host_callable(value):
            self._context.add_callable(name, value)
        else:
            self._assign(name, self.to_js(value))

    def eval(self, code: str) -> Any:
        """Run JavaScript code in this scope and return its value."""
        return self.to_python(self._context.eval(code))

    def compile(self, source: str) -> quickjs.Object:
        """Evaluate a function expression and return the JS function object.

        Raises:
            ParseError: if the engine rejects the source.
        """
        try:
            return self._context.eval(f"({source})")
        except quickjs.JSException as e:
            raise ParseError(first_line(str(e))) from e

    def call(self, function: quickjs.Object, args) -> Any:
        """Call a JS function of this scope with Python arguments.

        Python callables among the arguments are passed as JS functions.
        """
        return self.to_python(function(*(self.to_js(arg) for arg in args)))

    def to_js(self, value: Any) -> Any:
        if isinstance(value, SynthesizedFunction):
            return value.rebind(self).js_function
        if _is_host_callable(value):
            name = f"__fnfile_callable_{next(self._callable_ids)}"
            self._context.add_callable(name, value)
            return self._context.get(name)
        if isinstance(value, (list, tuple, dict)):
            return self._json_parse(json.dumps(value))
        return value

    def to_python(self, value: Any) -> Any:
        if not isinstance(value, quickjs.Object):
            return value
        kind = self._kind(value)
        # Functions cannot go through JSON; hand them back as engine objects.
        if kind == "function":
            return value
        if kind == "promise":
            return self.to_python(self._settle(value))
        if kind == "generator":
            return self.to_python(self._drain(value))
        if kind == "async_generator":
            raise TypeError("async generators cannot be converted to Python values")
        return json.loads(value.json())

    def _settle(self, promise: quickjs.Object) -> Any:
        box = self._watch(promise)
        while self._context.execute_pending_job():
            pass
        if not self._field(box, "done"):
            raise UnsettledPromiseError("Promise did not settle once pending jobs ran out")
        if self._field(box, "rejected"):
            raise quickjs.JSException(self._field(box, "reason"))
        return self._field(box, "value")


def _is_host_callable(value: Any) -> bool:
    return callable(value) and not isinstance(value, (quickjs.Object, SynthesizedFunction))


class SynthesizedFunction:
    """A JavaScript function rebuilt from source text, callable from Python."""

    def __init__(
        self,
        name: str,
        params: list[str],
        body: str,
        scope: Scope,
        is_async: bool = False,
        is_generator: bool = False,
    ):
        self.name = self.__name__ = name
        self.params = tuple(params)
        self.body = body
        self.scope = scope
        self.is_async = is_async
        self.is_generator = is_generator
        self.js_function = scope.compile(self.source)

    @property
    def source(self) -> str:
        keyword = "function*" if self.is_generator else "function"
        if self.is_async:
            keyword = "async " + keyword
        return f"{keyword} {self.name}({','.join(self.params)}) {self.body}"

    def rebind(self, scope: Scope) -> "SynthesizedFunction":
        """Compile the same source text again inside another scope."""
        if scope is self.scope:
            return self
        return SynthesizedFunction(
            self.name, list(self.params), self.body, scope,
            is_async=self.is_async, is_generator=self.is_generator,
        )

    def __call__(self, *args):
        return self.scope.call(self.js_function, args)

    def __str__(self) -> str:
        return self.source

    def __repr__(self) -> str:
        return f"<SynthesizedFunction {self.name}({', '.join(self.params)})>"


def synthesize(
    source: str,
    descriptor: FunctionDescriptor,
    scope: Scope | None = None,
) -> SynthesizedFunction:
    """Rebuild the function ``descriptor`` points at inside ``scope``.

    Only plain identifier parameters survive; destructuring, rest and
    default parameters are dropped from the rebuilt signature.
    """
    body = source[descriptor.body_start:descriptor.end]
    return SynthesizedFunction(
        descriptor.name,
        descriptor.param_names,
        body,
        scope if scope is not None else Scope(),
        is_async=descriptor.is_async,
        is_generator=descriptor.is_generator,
    )
