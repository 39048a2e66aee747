"""Parsing protocols for fnfile.

Defines the SourceParser protocol that decouples retrieval from a specific
parser implementation (tree-sitter today), plus the records it produces.
"""

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class Parameter:
    """One formal parameter of a function, tagged by its syntax kind."""
    name: str
    kind: str = "identifier"

    @property
    def is_identifier(self) -> bool:
        return self.kind == "identifier"


@dataclass(frozen=True)
class FunctionDescriptor:
    """Location and signature of one named function inside a source text.

    Offsets are character indices into the exact text the descriptor was
    parsed from and are meaningless against any other text.
    """
    name: str
    parameters: tuple[Parameter, ...] = ()
    body_start: int = 0
    end: int = 0
    start: int = 0
    line: int = 0
    is_async: bool = False
    is_generator: bool = False

    @property
    def param_names(self) -> list[str]:
        """Plain identifier parameters, in declaration order."""
        return [p.name for p in self.parameters if p.is_identifier]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "line": self.line,
            "params": [{"name": p.name, "kind": p.kind} for p in self.parameters],
            "body_start": self.body_start,
            "end": self.end,
            "async": self.is_async,
            "generator": self.is_generator,
        }


@dataclass(frozen=True)
class ParsedSource:
    """A source text together with the functions parsed out of it."""
    text: str
    descriptors: tuple[FunctionDescriptor, ...] = field(default_factory=tuple)


class SourceParser(Protocol):
    """Protocol for turning JavaScript source into function descriptors."""

    def parse(self, source: str) -> list[FunctionDescriptor]:
        """Parse source text and describe every named function in it.

        Raises:
            ParseError: if the text is not valid JavaScript.
        """
        ...
