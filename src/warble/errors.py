"""Warble exception hierarchy.

Shared across RouteTable, HookRegistry, App, Dispatcher and engines so
every module raises and catches the same types.

Control escapes (``halt``, ``redirect``, ``pass_``, ``forward``) are NOT
part of this hierarchy. They travel as ``warble.control.ControlSignal``,
which derives from ``BaseException`` so ``except Exception`` blocks in
application code never swallow them.
"""

from dataclasses import dataclass
from typing import Any


class WarbleError(Exception):
    """Base for all warble-specific errors."""


class ConfigurationError(WarbleError):
    """Raised when the application is assembled incorrectly.

    Always a build-time failure: registering routes, declaring hooks or
    resolving engines. Startup should abort.
    """


class DuplicateRouteError(ConfigurationError):
    """A route with the same method and prefixed spec is already registered."""

    def __init__(self, method: str, spec_route: str) -> None:
        self.method = method
        self.spec_route = spec_route
        super().__init__(f"Route {method} {spec_route!r} is already registered.")


class HookNameError(ConfigurationError):
    """Malformed hook name, unknown hook type, or unsupported hook event."""


class UnsupportedEngineError(ConfigurationError):
    """Unknown engine kind or unknown engine variant."""


class MissingEngineError(WarbleError):
    """A subsystem was used but no engine is configured for it.

    Signals misconfiguration, not a transient condition.
    """


class HookError(WarbleError):
    """A hook callback failed during dispatch.

    ``position`` is the canonical hook name. The original exception is
    chained as ``__cause__``.
    """

    def __init__(self, position: str, original: BaseException) -> None:
        self.position = position
        self.original = original
        super().__init__(f"Exception caught in {position!r} filter: {original}")


class HandlerError(WarbleError):
    """A route handler failed during dispatch."""

    def __init__(self, route: Any, original: BaseException) -> None:
        self.route = route
        self.original = original
        super().__init__(
            f"Exception caught in handler for {route.method} {route.spec_route!r}: {original}"
        )


class ForwardLoopError(WarbleError):
    """``forward()`` revisited a target or exceeded the hop limit."""


class DispatchStateError(WarbleError):
    """A control primitive was used outside of an active dispatch."""


@dataclass(slots=True, eq=False)
class HTTPError(WarbleError):
    """An error that maps directly to an HTTP status code.

    Raised by handlers or the dispatcher. The dispatcher renders a
    status page for it instead of treating it as a 500. Not frozen:
    the interpreter and ``add_note`` need to set attributes on it.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818: conventional name in web frameworks
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)
