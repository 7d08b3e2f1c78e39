"""Engine base class.

Engines are the pluggable subsystems of an App (logger, serializer,
session, template). One instance per kind is shared by every dispatch,
so per-request state is never stored on it: the dispatcher attaches the
current Context to the engine's own ContextVar and detaches it when the
dispatch ends.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Any, ClassVar

from warble.hooks.hook import Hookable

if TYPE_CHECKING:
    from warble.app import App
    from warble.context import Context
    from warble.hooks.registry import HookRegistry


class Engine(Hookable):
    """Base for every engine.

    Subclasses set ``kind`` (the engine kind) and ``name`` (the variant
    name it is registered under). Unknown keyword options are kept in
    ``options`` for the variant to interpret.
    """

    hook_type: ClassVar[str] = "engine"
    kind: ClassVar[str] = ""
    name: ClassVar[str] = ""

    def __init__(
        self,
        *,
        app: App | None = None,
        postponed_hooks: HookRegistry | None = None,
        **options: Any,
    ) -> None:
        self.app = app
        self.options = options
        self._context: ContextVar[Context | None] = ContextVar(
            f"warble_{self.kind}_engine_context", default=None
        )
        super().__init__(postponed_hooks=postponed_hooks)

    @property
    def hook_candidate(self) -> str:  # type: ignore[override]
        return self.kind

    # -- Context --

    @property
    def context(self) -> Context | None:
        """The Context of the dispatch in progress, if any."""
        return self._context.get()

    def attach_context(self, context: Context) -> Token[Context | None]:
        return self._context.set(context)

    def detach_context(self, token: Token[Context | None]) -> None:
        self._context.reset(token)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.kind}:{self.name}>"
