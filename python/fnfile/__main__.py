"""CLI entry point: python3 -m fnfile

    python3 -m fnfile list lib/utils.js
    python3 -m fnfile source lib/utils.js add sub
    python3 -m fnfile call lib/utils.js add --args '[1, 2]' --scope '{"base": 10}'

Results are written to stdout as JSON. Failures are written to stderr as a
JSON object and mapped to an exit code per error kind.
"""

import argparse
import json
import logging
import sys

import quickjs

from .errors import FunctionNotFoundError, ParseError, UnsettledPromiseError

# Checked in order; FileNotFoundError etc. are all OSError.
EXIT_CODES = (
    (OSError, "IOError", 3),
    (ParseError, "ParseError", 4),
    (FunctionNotFoundError, "NotFoundError", 5),
    (quickjs.JSException, "JavaScriptError", 6),
    (UnsettledPromiseError, "JavaScriptError", 6),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fnfile", description="Retrieve functions from JavaScript files",
    )
    parser.add_argument("--verbose", action="store_true", help="Log debug events to stderr")
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List the named functions of a file")
    list_cmd.add_argument("file")

    source_cmd = commands.add_parser("source", help="Print rebuilt source of functions")
    source_cmd.add_argument("file")
    source_cmd.add_argument("names", nargs="+")

    call_cmd = commands.add_parser("call", help="Call a function and print its result")
    call_cmd.add_argument("file")
    call_cmd.add_argument("name")
    call_cmd.add_argument("--args", default="[]", help="JSON array of arguments")
    call_cmd.add_argument("--scope", default="{}", help="JSON object of scope bindings")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
    )

    extra_args = {}
    if args.command == "source":
        extra_args = {"names": args.names}
    elif args.command == "call":
        try:
            extra_args = {
                "name": args.name,
                "args": json.loads(args.args),
                "scope": json.loads(args.scope),
            }
        except json.JSONDecodeError as e:
            parser.error(f"--args/--scope must be JSON: {e}")
        if not isinstance(extra_args["args"], list):
            parser.error("--args must be a JSON array")

    from .analyze import dispatch
    try:
        result = dispatch(args.command, args.file, extra_args)
    except Exception as e:
        for error_type, kind, code in EXIT_CODES:
            if isinstance(e, error_type):
                _error_exit(kind, str(e), args.file, code)
        raise

    json.dump(result, sys.stdout)
    sys.stdout.write("\n")


def _error_exit(kind: str, message: str, file: str, code: int):
    """Write structured error to stderr and exit."""
    json.dump({"error": kind, "message": message, "file": file}, sys.stderr)
    sys.stderr.write("\n")
    sys.exit(code)


if __name__ == "__main__":
    main()
