"""Engines: pluggable logger, serializer, session and template subsystems."""

from warble.engines.base import Engine
from warble.engines.registry import (
    ENGINE_KINDS,
    EngineRegistry,
    camelize,
    default_registry,
    engine_options,
)

__all__ = [
    "ENGINE_KINDS",
    "Engine",
    "EngineRegistry",
    "camelize",
    "default_registry",
    "engine_options",
]
