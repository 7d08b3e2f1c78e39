"""MIME type registry.

Wraps the standard ``mimetypes`` database with per-registry custom types,
short aliases (``"json"`` → ``application/json``) and a resettable
default. One registry is injected into each App.
"""

import mimetypes
from pathlib import PurePath

DEFAULT_MIME_TYPE = "application/data"

_ALIASES: dict[str, str] = {
    "css": "text/css",
    "gif": "image/gif",
    "htm": "text/html",
    "html": "text/html",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "js": "application/javascript",
    "json": "application/json",
    "png": "image/png",
    "rss": "application/rss+xml",
    "svg": "image/svg+xml",
    "text": "text/plain",
    "txt": "text/plain",
    "xml": "application/xml",
    "yaml": "text/x-yaml",
    "yml": "text/x-yaml",
}


class MimeTypes:
    """Extension and alias lookup for content types.

    Usage::

        mime = MimeTypes()
        mime.add_type("foo", "text/foo")
        mime.for_name("json")          # "application/json"
        mime.for_file("data/x.foo")    # "text/foo"
        mime.for_file("blob.unknown")  # mime.default
    """

    __slots__ = ("_custom", "default")

    def __init__(self, default: str = DEFAULT_MIME_TYPE) -> None:
        self._custom: dict[str, str] = {}
        self.default = default

    def add_type(self, name: str, content_type: str) -> None:
        """Register *content_type* for extension or alias *name*."""
        self._custom[name.lower().lstrip(".")] = content_type

    def add_alias(self, alias: str, name: str) -> str:
        """Make *alias* resolve to whatever *name* resolves to."""
        content_type = self.for_name(name)
        self.add_type(alias, content_type)
        return content_type

    def for_name(self, name: str) -> str:
        """Resolve an alias or bare extension to a content type."""
        key = name.lower().lstrip(".")
        if key in self._custom:
            return self._custom[key]
        if key in _ALIASES:
            return _ALIASES[key]
        guessed, _ = mimetypes.guess_type(f"file.{key}", strict=False)
        return guessed or self.default

    def for_file(self, path: str | PurePath) -> str:
        """Resolve a file path to a content type by its extension."""
        suffix = PurePath(path).suffix
        if not suffix:
            return self.default
        return self.for_name(suffix)

    def reset_default(self) -> None:
        """Restore the built-in default content type."""
        self.default = DEFAULT_MIME_TYPE
