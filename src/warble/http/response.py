"""HTTP response.

Mutable for the duration of one dispatch: hooks, handlers and engines
all write to the same in-progress response held by the Context. The
``halted`` flag is what makes ``halt()`` stop the remaining filters.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, field
from typing import Any

DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass(slots=True, eq=False)
class Response:
    """The in-progress HTTP response of a dispatch.

    ``serializer`` is the app's serializer engine, if any. When set,
    non-string content assigned through ``set_content`` is encoded with
    it instead of the built-in JSON fallback.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = DEFAULT_CONTENT_TYPE
    headers: list[tuple[str, str]] = field(default_factory=list)
    serializer: Any = None
    _halted: bool = False

    # -- Halting --

    def halt(self) -> None:
        """Freeze this response; remaining hooks will skip themselves."""
        self._halted = True

    @property
    def is_halted(self) -> bool:
        return self._halted

    # -- Headers --

    def header(self, name: str, value: str) -> None:
        """Set *name*, replacing any existing values."""
        lower = name.lower()
        if lower == "content-type":
            self.content_type = value
            return
        self.headers = [(k, v) for k, v in self.headers if k.lower() != lower]
        self.headers.append((name, value))

    def push_header(self, name: str, value: str) -> None:
        """Append a header value without replacing existing ones."""
        self.headers.append((name, value))

    def get_header(self, name: str) -> str | None:
        """Return the last value for *name*, or None."""
        lower = name.lower()
        if lower == "content-type":
            return self.content_type
        for key, value in reversed(self.headers):
            if key.lower() == lower:
                return value
        return None

    def get_headers(self, name: str) -> list[str]:
        """Return every value for *name* (e.g. several ``Set-Cookie``)."""
        lower = name.lower()
        return [value for key, value in self.headers if key.lower() == lower]

    # -- Redirects --

    def redirect(self, location: str, status: int | None = None) -> None:
        """Turn this response into a redirect to *location*."""
        self.status = status or 302
        self.header("Location", location)

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400 and self.get_header("Location") is not None

    # -- Body --

    def set_content(self, value: Any) -> None:
        """Assign a handler's return value as the body.

        Strings and bytes are used as-is. Mappings and sequences are
        serialized, by the app's serializer engine when one is present,
        else as JSON.
        """
        if value is None:
            return
        if isinstance(value, (str, bytes)):
            self.body = value
            return
        if self.serializer is not None:
            self.body = self.serializer.serialize(value)
            self.content_type = self.serializer.content_type
            return
        if isinstance(value, (dict, list, tuple)):
            self.body = json_module.dumps(value, default=str)
            self.content_type = "application/json"
            return
        self.body = str(value)

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body
