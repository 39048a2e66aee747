"""Error types raised while retrieving functions from source files.

Read failures are not wrapped: the native OSError reaches the caller with
its system message intact.
"""


class FnFileError(Exception):
    """Base class for fnfile errors."""


class ParseError(FnFileError):
    """Source text could not be parsed as JavaScript."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.message = message
        self.path = path


class UnsettledPromiseError(FnFileError):
    """A rebuilt async function returned a Promise that never settled."""


class FunctionNotFoundError(FnFileError, LookupError):
    """No function with the requested name exists in the parsed source."""

    def __init__(self, name: str, path: str = ""):
        super().__init__(f"Function `{name}` not found in given source code `{path}`.")
        self.name = name
        self.path = path


def first_line(message: str) -> str:
    """Engine messages carry a stack trace after the first line."""
    lines = message.strip().splitlines()
    return lines[0] if lines else message
