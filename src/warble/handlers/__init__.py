"""Route handlers: Hookable objects that register their own routes at finish."""

from warble.handlers.autopage import AutoPageHandler
from warble.handlers.file import FileHandler

__all__ = ["AutoPageHandler", "FileHandler"]
