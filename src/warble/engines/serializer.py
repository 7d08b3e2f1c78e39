"""Serializer engines.

When a serializer is configured, handler return values that are not
strings are serialized with it and the response takes its content type.
Request bodies of that content type are deserialized into body params.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar

from warble.engines.base import Engine


class SerializerEngine(Engine):
    """Base serializer.

    ``engine.serializer.before`` hooks receive the entity about to be
    serialized; ``engine.serializer.after`` hooks receive the result.
    """

    kind: ClassVar[str] = "serializer"
    content_type: ClassVar[str] = "application/octet-stream"
    supported_hooks = ("engine.serializer.before", "engine.serializer.after")

    def serialize(self, entity: Any) -> str:
        self.execute_hook("engine.serializer.before", entity)
        serialized = self.dumps(entity)
        self.execute_hook("engine.serializer.after", serialized)
        return serialized

    def deserialize(self, content: str | bytes) -> Any:
        return self.loads(content)

    def accepts(self, content_type: str | None) -> bool:
        """True if a body of *content_type* is this serializer's format."""
        if not content_type:
            return False
        media_type = content_type.split(";", 1)[0].strip().lower()
        return media_type == self.content_type

    def dumps(self, entity: Any) -> str:
        raise NotImplementedError

    def loads(self, content: str | bytes) -> Any:
        raise NotImplementedError


class JSONSerializer(SerializerEngine):
    """JSON via the standard library.

    Options: ``pretty`` (indent output), ``sort_keys``.
    """

    name: ClassVar[str] = "json"
    content_type: ClassVar[str] = "application/json"

    def __init__(self, *, pretty: bool = False, sort_keys: bool = False, **options: Any) -> None:
        super().__init__(**options)
        self.pretty = pretty
        self.sort_keys = sort_keys

    def dumps(self, entity: Any) -> str:
        return json.dumps(
            entity,
            indent=2 if self.pretty else None,
            sort_keys=self.sort_keys,
            ensure_ascii=False,
            default=str,
        )

    def loads(self, content: str | bytes) -> Any:
        return json.loads(content)
