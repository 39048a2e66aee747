"""Simple in-process source cache keyed by path.

Entries are never invalidated on their own: a cached path keeps serving the
text and functions it was first parsed with until clear() is called. This
is NOT persistent across processes.
"""

from .protocols import ParsedSource


class SourceCache:
    """In-process dict cache of parsed sources, with an on/off switch."""

    def __init__(self, enabled: bool = True):
        self._cache: dict[str, ParsedSource] = {}
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        """Turn lookups and inserts on or off. Existing entries are kept."""
        self._enabled = bool(enabled)

    def enable(self) -> None:
        self.set_enabled(True)

    def disable(self) -> None:
        self.set_enabled(False)

    def get(self, path: str) -> ParsedSource | None:
        """Return the cached source for path, or None if absent or disabled."""
        if not self._enabled:
            return None
        return self._cache.get(path)

    def put(self, path: str, parsed: ParsedSource) -> None:
        """Cache a parsed source for path. No-op while disabled."""
        if self._enabled:
            self._cache[path] = parsed

    def clear(self) -> None:
        """Drop all cached entries."""
        self._cache = {}

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, path: str) -> bool:
        return path in self._cache
