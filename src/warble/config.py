"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, no string-key
lookups outside of the per-engine option tree.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    Engine fields (``logger``, ``session``, ``template``, ``serializer``)
    take a registered variant name, a pre-built engine instance, or
    ``None`` for "no engine of that kind". Per-engine options live in
    ``engines[kind][name]``::

        config = AppConfig(
            session="cookie",
            engines={"session": {"cookie": {"secret_key": "s3cr3t"}}},
        )

    ``session`` defaults to ``None``, not ``"simple"``: sessions are
    opt-in, and ``App.session()`` without one raises
    ``MissingEngineError`` instead of silently keeping per-process state.

    ``auto_page`` renders ``views/<path>`` for a GET no route handled.
    ``App.set()`` changes fields after construction.
    """

    name: str = "main"
    debug: bool = False

    # Engines
    logger: Any = "console"
    log: str = "debug"
    session: Any = None
    template: Any = "kida"
    serializer: Any = None
    engines: dict[str, dict[str, dict[str, Any]]] = field(default_factory=dict)

    # Templates
    views: str | Path = "views"
    layout: str | None = None
    auto_page: bool = False

    # Static files
    public_dir: str | Path | None = None
    default_mime_type: str | None = None

    # Dispatch
    max_forward_hops: int = 10
    propagate_exceptions: bool = False
