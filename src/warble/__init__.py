"""Warble: the dispatch core of a small routing web framework.

Routes with named, splat and regex patterns; lifecycle hooks that can be
declared before the subsystem owning them exists; lazily-built engines
for logging, sessions, templates and serialization; and non-local
control flow (``halt``, ``redirect``, ``pass_``, ``forward``) inside
route handlers and hooks.

Basic usage::

    from warble import App

    app = App()

    @app.route("/hello/:name")
    def hello(name):
        return f"Hello, {name}!"

The App is an ASGI 3.0 application; serve it with any ASGI server.
"""

__version__ = "0.1.0-dev"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "DispatchStateError",
    "Engine",
    "ForwardLoopError",
    "HTTPError",
    "Hook",
    "HookError",
    "HookNameError",
    "MissingEngineError",
    "NotFound",
    "Plugin",
    "Request",
    "Response",
    "UnsupportedEngineError",
    "WarbleError",
    "get_context",
]

_ERRORS = (
    "ConfigurationError",
    "DispatchStateError",
    "ForwardLoopError",
    "HTTPError",
    "HookError",
    "HookNameError",
    "MissingEngineError",
    "NotFound",
    "UnsupportedEngineError",
    "WarbleError",
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import warble`` fast while providing a clean top-level API.
    """
    if name == "App":
        from warble.app import App

        return App

    if name == "AppConfig":
        from warble.config import AppConfig

        return AppConfig

    if name in ("Context", "get_context"):
        from warble import context as _ctx

        return getattr(_ctx, name)

    if name == "Engine":
        from warble.engines.base import Engine

        return Engine

    if name == "Hook":
        from warble.hooks.hook import Hook

        return Hook

    if name == "Plugin":
        from warble.plugins import Plugin

        return Plugin

    if name == "Request":
        from warble.http.request import Request

        return Request

    if name == "Response":
        from warble.http.response import Response

        return Response

    if name in _ERRORS:
        from warble import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
