"""Per-dispatch state.

One ``Context`` is created by the dispatcher for each top-level dispatch
and shared by any internal ``forward`` re-entries of it. The current
Context is held in ``context_var``: task-local under asyncio and
thread-local under threads, so concurrent dispatches never see each
other's request, response or session.
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from warble.app import App
    from warble.engines.base import Engine
    from warble.http.request import Request
    from warble.http.response import Response

context_var: ContextVar[Context] = ContextVar("warble_context")
"""The Context of the dispatch in progress. Set and reset by the dispatcher."""


@dataclass(slots=True, eq=False)
class Context:
    """Request, response and request-scoped state of one dispatch.

    ``session`` is retrieved lazily by ``App.session()``; ``destroyed``
    holds a session removed by ``App.destroy_session()`` until the
    after-request hook expires its cookie. ``forward_trail`` records the
    ``(method, path, params)`` targets already forwarded to, and
    ``engine_tokens`` the engines attached to this dispatch.
    """

    app: App
    request: Request
    response: Response
    vars: dict[str, Any] = field(default_factory=dict)
    session: Any = None
    destroyed: Any = None
    escape_open: bool = False
    forward_trail: list[tuple[str, str, str]] = field(default_factory=list)
    engine_tokens: list[tuple[Engine, Token[Context | None]]] = field(default_factory=list)

    @property
    def has_session(self) -> bool:
        return self.session is not None


def get_context() -> Context:
    """Return the current Context.

    Raises ``LookupError`` outside of a dispatch.
    """
    return context_var.get()
