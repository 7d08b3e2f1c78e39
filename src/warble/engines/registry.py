"""Engine variant lookup.

Each engine kind has a closed set of variants, registered by name. The
App asks the registry for the class behind the name found in its
config; anything not registered is a configuration error rather than a
dynamic import.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from warble.errors import ConfigurationError, UnsupportedEngineError

if TYPE_CHECKING:
    from warble.engines.base import Engine

ENGINE_KINDS: tuple[str, ...] = ("logger", "serializer", "session", "template")
"""Supported kinds, in hook-candidate order."""

_IDENTIFIER = re.compile(r"^[A-Za-z_]\w*(?:(?:::|\.)[A-Za-z_]\w*)*$")


def camelize(name: str) -> str:
    """``"simple_file"`` -> ``"SimpleFile"``."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


def engine_options(
    engines: Mapping[str, Mapping[str, Mapping[str, Any]]],
    kind: str,
    name: str,
) -> dict[str, Any]:
    """Options for variant *name* of *kind*.

    Looked up under the name as written, then under its camelized form.
    """
    section = engines.get(kind) or {}
    for candidate in (name, camelize(name)):
        if candidate in section:
            return dict(section[candidate])
    return {}


class EngineRegistry:
    """Kind -> variant name -> Engine class.

    Usage::

        registry = EngineRegistry()
        registry.register("session", "redis", RedisSessionEngine)
        registry.resolve("session", "redis")  # RedisSessionEngine
    """

    __slots__ = ("_variants",)

    def __init__(self) -> None:
        self._variants: dict[str, dict[str, type[Engine]]] = {kind: {} for kind in ENGINE_KINDS}

    def register(self, kind: str, name: str, engine_class: type[Engine]) -> None:
        self._check_kind(kind)
        self._check_identifier(kind, name)
        self._variants[kind][name] = engine_class

    def resolve(self, kind: str, name: str) -> type[Engine]:
        """Return the class registered for *name*.

        Raises ``ConfigurationError`` for an illegal name and
        ``UnsupportedEngineError`` for an unknown kind or variant.
        """
        self._check_kind(kind)
        self._check_identifier(kind, name)
        variants = self._variants[kind]
        for candidate in (name, name.lower(), camelize(name).lower()):
            if candidate in variants:
                return variants[candidate]
        msg = (
            f"Unknown {kind} engine {name!r}; "
            f"registered: {', '.join(sorted(variants)) or '(none)'}"
        )
        raise UnsupportedEngineError(msg)

    def variants(self, kind: str) -> tuple[str, ...]:
        self._check_kind(kind)
        return tuple(self._variants[kind])

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in ENGINE_KINDS:
            msg = f"Engine {kind!r} is not supported; expected one of {ENGINE_KINDS}"
            raise UnsupportedEngineError(msg)

    @staticmethod
    def _check_identifier(kind: str, name: str) -> None:
        if not _IDENTIFIER.match(name):
            msg = f"Cannot load {kind} engine {name!r}: illegal name"
            raise ConfigurationError(msg)


def default_registry() -> EngineRegistry:
    """A registry holding every built-in variant."""
    from warble.engines.logger import CaptureLogger, ConsoleLogger, NullLogger
    from warble.engines.serializer import JSONSerializer
    from warble.engines.session import CookieSessionEngine, SimpleSessionEngine
    from warble.engines.template import KidaTemplateEngine

    registry = EngineRegistry()
    for engine_class in (
        ConsoleLogger,
        CaptureLogger,
        NullLogger,
        JSONSerializer,
        SimpleSessionEngine,
        CookieSessionEngine,
        KidaTemplateEngine,
    ):
        registry.register(engine_class.kind, engine_class.name, engine_class)
    return registry
