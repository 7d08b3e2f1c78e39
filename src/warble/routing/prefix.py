"""Stack-based path-prefix composition for nested route declarations."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any


def normalize_prefix(prefix: str | None) -> str | None:
    """The root prefix is absent, not ``"/"``."""
    if prefix is None or prefix in ("", "/"):
        return None
    return prefix


class PrefixScope:
    """The current route prefix of one App.

    Entering a scope composes ``current + segment``; leaving it restores
    the previous value on every exit path, including failures. Routes
    registered anywhere inside the scope pick up the composed prefix::

        with scope.enter("/blog"):
            with scope.enter("/admin"):
                scope.current  # "/blog/admin"
        scope.current          # None
    """

    __slots__ = ("_current",)

    def __init__(self, prefix: str | None = None) -> None:
        self._current = normalize_prefix(prefix)

    @property
    def current(self) -> str | None:
        return self._current

    def compose(self, segment: str | None) -> str | None:
        """Prefix that would be in effect inside a scope for *segment*."""
        return normalize_prefix((self._current or "") + (normalize_prefix(segment) or ""))

    @contextmanager
    def enter(self, segment: str | None) -> Iterator[str | None]:
        saved = self._current
        self._current = self.compose(segment)
        try:
            yield self._current
        except Exception as exc:
            exc.add_note(f"while registering routes under prefix {segment!r}")
            raise
        finally:
            self._current = saved

    def run(self, segment: str | None, body: Callable[[], Any]) -> Any:
        """Call *body* with the composed prefix in effect."""
        with self.enter(segment):
            return body()
