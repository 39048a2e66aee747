"""Retrieve named functions from JavaScript files as Python callables.

    retriever = FunctionRetriever()
    fn = retriever.retrieve("lib/utils.js", "add")
    fn(1, 2)

Parsed files are cached per path until clear_cache() is called, so an edit on
disk is not seen by a retriever that already parsed the file. The
module-level functions operate on a process-wide default retriever whose
cache can be switched off with FNFILE_CACHE=off.
"""

import asyncio
import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .errors import ParseError
from .extractors import TreeSitterExtractor
from .file_cache import SourceCache
from .locator import locate
from .protocols import ParsedSource, SourceParser
from .synthesizer import Scope, SynthesizedFunction, synthesize

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

ScopeLike = Scope | Mapping[str, Any] | None


class FunctionRetriever:
    """Find functions in source files and rebuild them as callables."""

    def __init__(
        self,
        cache: SourceCache | None = None,
        parser: SourceParser | None = None,
        encoding: str = DEFAULT_ENCODING,
    ):
        self.cache = cache if cache is not None else SourceCache()
        self.parser = parser if parser is not None else TreeSitterExtractor()
        self.encoding = encoding

    def retrieve(self, path, name: str, scope: ScopeLike = None) -> SynthesizedFunction:
        """Return function ``name`` from the file at ``path``.

        Raises:
            OSError: if the file cannot be read.
            ParseError: if the file is not valid JavaScript.
            FunctionNotFoundError: if the file defines no such function.
        """
        key = os.fspath(path)
        return self._build(self._load(key), [name], key, scope)[name]

    def retrieve_many(
        self, path, names: Iterable[str], scope: ScopeLike = None,
    ) -> dict[str, SynthesizedFunction]:
        """Return every function in ``names``, keyed by name.

        All functions share one scope. A single unknown name fails the whole
        call; no partial result is returned.
        """
        names = _name_list(names)
        key = os.fspath(path)
        return self._build(self._load(key), names, key, scope)

    async def retrieve_async(
        self, path, name: str, scope: ScopeLike = None,
    ) -> SynthesizedFunction:
        """Like retrieve(), but reads the file without blocking the event loop."""
        key = os.fspath(path)
        parsed = await self._load_async(key)
        return self._build(parsed, [name], key, scope)[name]

    async def retrieve_many_async(
        self, path, names: Iterable[str], scope: ScopeLike = None,
    ) -> dict[str, SynthesizedFunction]:
        """Like retrieve_many(), but reads the file without blocking the event loop."""
        names = _name_list(names)
        key = os.fspath(path)
        parsed = await self._load_async(key)
        return self._build(parsed, names, key, scope)

    def clear_cache(self) -> None:
        self.cache.clear()

    def enable_cache(self) -> None:
        self.cache.enable()

    def disable_cache(self) -> None:
        self.cache.disable()

    def load(self, path) -> ParsedSource:
        """Return the parsed source for ``path``, from cache when possible."""
        return self._load(os.fspath(path))

    def _load(self, path: str) -> ParsedSource:
        cached = self._cached(path)
        if cached is not None:
            return cached
        text = _read_source(path, self.encoding)
        return self._parse(path, text)

    async def _load_async(self, path: str) -> ParsedSource:
        cached = self._cached(path)
        if cached is not None:
            return cached
        # The read is the only suspension point; parsing runs on the loop.
        text = await asyncio.to_thread(_read_source, path, self.encoding)
        return self._parse(path, text)

    def _cached(self, path: str) -> ParsedSource | None:
        parsed = self.cache.get(path)
        if parsed is not None:
            logger.debug("retriever.cache_hit", extra={"path": path})
        else:
            logger.debug(
                "retriever.cache_miss",
                extra={"path": path, "cache_enabled": self.cache.enabled},
            )
        return parsed

    def _parse(self, path: str, text: str) -> ParsedSource:
        try:
            descriptors = self.parser.parse(text)
        except ParseError as e:
            raise _with_path(e, path) from e
        parsed = ParsedSource(text=text, descriptors=tuple(descriptors))
        self.cache.put(path, parsed)
        return parsed

    def _build(
        self, parsed: ParsedSource, names: list[str], path: str, scope: ScopeLike,
    ) -> dict[str, SynthesizedFunction]:
        # Locate everything first so an unknown name fails before any compile.
        found = {name: locate(parsed.descriptors, name, path) for name in names}
        scope = _as_scope(scope)
        try:
            return {
                name: synthesize(parsed.text, descriptor, scope)
                for name, descriptor in found.items()
            }
        except ParseError as e:
            raise _with_path(e, path) from e


def _read_source(path: str, encoding: str) -> str:
    # Undecodable bytes become U+FFFD instead of failing the read.
    return Path(path).read_text(encoding=encoding, errors="replace")


def _with_path(error: ParseError, path: str) -> ParseError:
    logger.debug(
        "retriever.parse_error",
        extra={"path": path, "error_message": str(error)},
    )
    return ParseError(f"Error parsing source code `{path}`. {error}", path=path)


def _name_list(names: Iterable[str]) -> list[str]:
    if isinstance(names, str):
        raise TypeError("names must be an iterable of function names, not a single str")
    return list(names)


def _as_scope(scope: ScopeLike) -> Scope:
    if isinstance(scope, Scope):
        return scope
    return Scope(scope)


def _cache_enabled_from_env() -> bool:
    raw = os.getenv("FNFILE_CACHE", "on").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    logger.warning(
        "retriever.invalid_cache_setting",
        extra={"value": raw, "fallback": "on"},
    )
    return True


_default: FunctionRetriever | None = None


def default_retriever() -> FunctionRetriever:
    """The process-wide retriever behind the module-level functions."""
    global _default
    if _default is None:
        _default = FunctionRetriever(
            cache=SourceCache(enabled=_cache_enabled_from_env()),
            encoding=os.getenv("FNFILE_ENCODING", DEFAULT_ENCODING),
        )
    return _default


def retrieve(path, name: str, scope: ScopeLike = None) -> SynthesizedFunction:
    return default_retriever().retrieve(path, name, scope)


def retrieve_many(path, names: Iterable[str], scope: ScopeLike = None) -> dict[str, SynthesizedFunction]:
    return default_retriever().retrieve_many(path, names, scope)


async def retrieve_async(path, name: str, scope: ScopeLike = None) -> SynthesizedFunction:
    return await default_retriever().retrieve_async(path, name, scope)


async def retrieve_many_async(
    path, names: Iterable[str], scope: ScopeLike = None,
) -> dict[str, SynthesizedFunction]:
    return await default_retriever().retrieve_many_async(path, names, scope)


def clear_cache() -> None:
    """Forget every parsed file held by the default retriever."""
    default_retriever().clear_cache()


def enable_cache() -> None:
    default_retriever().enable_cache()


def disable_cache() -> None:
    default_retriever().disable_cache()
