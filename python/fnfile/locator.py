"""Pick the function descriptor a name refers to."""

from collections.abc import Sequence

from .errors import FunctionNotFoundError
from .protocols import FunctionDescriptor


def locate(
    descriptors: Sequence[FunctionDescriptor],
    name: str,
    path: str = "",
) -> FunctionDescriptor:
    """Return the last descriptor named ``name``.

    A later definition of the same name shadows earlier ones, the way a
    redeclared function does in JavaScript.

    Raises:
        FunctionNotFoundError: if no descriptor has that name.
    """
    for descriptor in reversed(descriptors):
        if descriptor.name == name:
            return descriptor
    raise FunctionNotFoundError(name, path)
