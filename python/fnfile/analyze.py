"""Command dispatcher for fnfile.

Routes CLI commands to the retriever. Called from __main__.py.
"""

from __future__ import annotations

from .retriever import default_retriever


def dispatch(command: str, file: str, args: dict) -> dict:
    """Dispatch a command against a JavaScript source file.

    Args:
        command: Command name (list, source, call)
        file: Path to the JavaScript source file
        args: Extra arguments dict

    Returns:
        JSON-serializable dict result
    """
    retriever = default_retriever()

    if command == "list":
        parsed = retriever.load(file)
        return {
            "file": file,
            "functions": [d.to_dict() for d in parsed.descriptors],
        }

    elif command == "source":
        # One batch lookup: an unknown name fails the whole command.
        functions = retriever.retrieve_many(file, args["names"])
        return {
            "file": file,
            "functions": {
                name: {"params": list(fn.params), "source": fn.source}
                for name, fn in functions.items()
            },
        }

    elif command == "call":
        fn = retriever.retrieve(file, args["name"], scope=args.get("scope"))
        result = fn(*args.get("args", []))
        return {"name": fn.name, "result": _jsonable(result)}

    else:
        return {"error": "UnknownCommand", "message": f"Unknown command: {command}"}


def _jsonable(value):
    """Engine objects (JS functions) are reported by their string form."""
    if value is None or isinstance(value, (bool, int, float, str, list, dict)):
        return value
    return str(value)
