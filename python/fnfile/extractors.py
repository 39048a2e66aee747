"""Function extraction from JavaScript source using tree-sitter.

Working from a real syntax tree rather than text search means commented-out
functions are never reported, and nested functions are found like top-level
ones.

tree-sitter recovers silently from early errors (``break`` outside a loop,
a redeclared ``let``, strict-mode violations), so every accepted text is
also compiled, never run, by QuickJS before any function is reported.
"""

import logging

import quickjs
import tree_sitter
import tree_sitter_javascript

from .errors import ParseError, first_line
from .protocols import FunctionDescriptor, Parameter

logger = logging.getLogger(__name__)

JS_LANGUAGE = tree_sitter.Language(tree_sitter_javascript.language())

# "function" is the expression node name in grammars older than 0.21.
_FUNCTION_NODES = {
    "function_declaration",
    "function_expression",
    "function",
    "generator_function_declaration",
    "generator_function",
}
_GENERATOR_NODES = {"generator_function_declaration", "generator_function"}
_RETURN_SCOPES = _FUNCTION_NODES | {"arrow_function", "method_definition"}

# The Function constructor compiles its body without running it.
_COMPILE_CHECK = "(function (body) { new Function(body); })"


class TreeSitterExtractor:
    """Describe every named function in a JavaScript source text."""

    def __init__(self):
        self._parser = tree_sitter.Parser(JS_LANGUAGE)
        self._checker = quickjs.Context()
        self._compile_check = self._checker.eval(_COMPILE_CHECK)

    def parse(self, source: str) -> list[FunctionDescriptor]:
        data = source.encode("utf-8")
        tree = self._parser.parse(data)
        root = tree.root_node
        if root.has_error:
            raise ParseError(_describe_error(root))
        self._check_early_errors(root, source)

        to_char = _char_offset_mapper(source, data)
        functions = []
        for node in _walk(root):
            if node.type not in _FUNCTION_NODES:
                continue
            name_node = node.child_by_field_name("name")
            body = node.child_by_field_name("body")
            if name_node is None or body is None:
                continue
            functions.append(FunctionDescriptor(
                name=_text(name_node),
                parameters=tuple(_parameters(node)),
                body_start=to_char(body.start_byte),
                end=to_char(node.end_byte),
                start=to_char(node.start_byte),
                line=node.start_point[0] + 1,
                is_async=any(child.type == "async" for child in node.children),
                is_generator=node.type in _GENERATOR_NODES,
            ))

        logger.debug(
            "extractors.parsed",
            extra={"functions": len(functions), "chars": len(source)},
        )
        return functions

    def _check_early_errors(self, root, source: str) -> None:
        # Compiled as a function body, where a bare return is legal; catch
        # a top-level return from the tree instead.
        for node in _walk(root):
            if node.type == "return_statement" and not _inside_function(node):
                raise ParseError(f"Line {node.start_point[0] + 1}: Illegal return statement")
        try:
            self._compile_check(source)
        except quickjs.JSException as e:
            raise ParseError(first_line(str(e))) from e


def _inside_function(node) -> bool:
    parent = node.parent
    while parent is not None:
        if parent.type in _RETURN_SCOPES:
            return True
        parent = parent.parent
    return False


def _walk(root):
    """Yield nodes in document (pre-)order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _parameters(function_node) -> list[Parameter]:
    params_node = function_node.child_by_field_name("parameters")
    if params_node is None:
        return []
    params = []
    for child in params_node.named_children:
        if child.type == "comment":
            continue
        params.append(Parameter(name=_text(child), kind=child.type))
    return params


def _describe_error(root) -> str:
    """Message for the first syntax error in document order."""
    for node in _walk(root):
        line = node.start_point[0] + 1
        if node.is_missing:
            return f"Line {line}: Missing {node.type}"
        if node.is_error:
            lines = _text(node).strip().splitlines()
            snippet = lines[0] if lines else ""
            if len(snippet) > 40:
                snippet = snippet[:40] + "..."
            return f"Line {line}: Unexpected token {snippet!r}"
    return "Invalid JavaScript source"


def _char_offset_mapper(source: str, data: bytes):
    """Map tree-sitter byte offsets onto indices into ``source``."""
    if len(data) == len(source):
        return lambda offset: offset
    return lambda offset: len(data[:offset].decode("utf-8"))


def _text(node) -> str:
    return node.text.decode("utf-8") if node.text else ""
