"""Logger engines.

Levels, lowest first: ``core`` (framework chatter), ``debug``, ``info``,
``warning``, ``error``. They map onto stdlib ``logging`` levels, with
``core`` registered as level 5.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from warble.engines.base import Engine

CORE = 5
logging.addLevelName(CORE, "CORE")

LEVELS: dict[str, int] = {
    "core": CORE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
_LEVEL_ALIASES = {"warn": "warning", "err": "error"}


def level_number(level: str) -> int:
    """Numeric logging level for a warble level name."""
    name = level.lower()
    name = _LEVEL_ALIASES.get(name, name)
    try:
        return LEVELS[name]
    except KeyError:
        msg = f"Unknown log level {level!r}; expected one of {tuple(LEVELS)}"
        raise ValueError(msg) from None


class LoggerEngine(Engine):
    """Base logger engine.

    ``log`` filters by the configured threshold, formats the message and
    hands it to ``write``. ``engine.logger.before`` hooks receive
    ``(engine, level, message)`` and may return a replacement message;
    ``engine.logger.after`` hooks receive the same once it was written.
    """

    kind: ClassVar[str] = "logger"
    supported_hooks = ("engine.logger.before", "engine.logger.after")

    def __init__(self, *, log: str = "debug", app_name: str = "main", **options: Any) -> None:
        self.threshold = level_number(log)
        self.app_name = app_name
        super().__init__(**options)

    def log(self, level: str, *args: Any) -> None:
        number = level_number(level)
        if number < self.threshold:
            return
        message = self.format_message(level, args)
        for replacement in self.execute_hook("engine.logger.before", self, level, message):
            if isinstance(replacement, str):
                message = replacement
        self.write(number, message)
        self.execute_hook("engine.logger.after", self, level, message)

    def format_message(self, level: str, args: tuple[Any, ...]) -> str:
        return " ".join(str(arg) for arg in args)

    def write(self, level: int, message: str) -> None:
        raise NotImplementedError

    # Level shortcuts

    def core(self, *args: Any) -> None:
        self.log("core", *args)

    def debug(self, *args: Any) -> None:
        self.log("debug", *args)

    def info(self, *args: Any) -> None:
        self.log("info", *args)

    def warning(self, *args: Any) -> None:
        self.log("warning", *args)

    def error(self, *args: Any) -> None:
        self.log("error", *args)


class ConsoleLogger(LoggerEngine):
    """Writes through ``logging.getLogger("warble.app.<app name>")``.

    Handlers and formatting are left to the embedding application's
    logging configuration.
    """

    name: ClassVar[str] = "console"

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        self.logger = logging.getLogger(f"warble.app.{self.app_name}")

    def write(self, level: int, message: str) -> None:
        context = self.context
        if context is not None:
            message = f"[{context.request.method} {context.request.path}] {message}"
        self.logger.log(level, message)


class CaptureLogger(LoggerEngine):
    """Keeps ``(level name, message)`` records in memory."""

    name: ClassVar[str] = "capture"

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        self.records: list[tuple[str, str]] = []

    def write(self, level: int, message: str) -> None:
        self.records.append((logging.getLevelName(level).lower(), message))

    def clear(self) -> None:
        self.records.clear()


class NullLogger(LoggerEngine):
    """Discards everything."""

    name: ClassVar[str] = "null"

    def write(self, level: int, message: str) -> None:
        pass
