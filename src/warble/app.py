"""Warble application class.

The App is the per-application aggregate: route table, hook registry,
engines, plugins and route handlers. It is also the façade application
code talks to during a dispatch: ``halt``, ``redirect``, ``pass_``,
``forward``, ``send_file``, ``session``, ``cookie``, ``template``,
``var`` and ``log`` all act on the Context of the dispatch in progress.

Mutable during setup (route and hook registration). ``finish()`` runs
once before the first request and registers the route handlers' own
routes.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Callable, Mapping
from contextlib import AbstractContextManager
from dataclasses import fields, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, NoReturn
from urllib.parse import urljoin

from warble._internal.asgi import Receive, Scope, Send
from warble._internal.types import Handler, HookCallback
from warble.config import AppConfig
from warble.context import Context, context_var
from warble.control import Forward, Halt, Pass, Redirect, Respond, escape
from warble.dispatcher import Dispatcher
from warble.engines.base import Engine
from warble.engines.registry import ENGINE_KINDS, EngineRegistry, default_registry, engine_options
from warble.errors import (
    ConfigurationError,
    DispatchStateError,
    MissingEngineError,
    NotFound,
    UnsupportedEngineError,
)
from warble.handlers.autopage import AutoPageHandler
from warble.handlers.file import FileHandler
from warble.hooks.hook import Hook, Hookable
from warble.hooks.registry import HookRegistry
from warble.http.cookies import SetCookie
from warble.http.mime import MimeTypes
from warble.http.request import Request
from warble.http.response import Response
from warble.plugins import Plugin
from warble.routing.prefix import PrefixScope
from warble.routing.route import Route
from warble.routing.table import RouteTable
from warble.server.handler import handle_request

# RFC 2396: scheme = alpha *( alpha | digit | "+" | "-" | "." )
_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")

_MISSING: Any = object()

_CONFIG_FIELDS = frozenset(f.name for f in fields(AppConfig))

DEFAULT_HOOK_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "before": "core.app.before_request",
        "after": "core.app.after_request",
        "on_route_exception": "core.app.route_exception",
        "before_error": "core.error.before",
        "after_error": "core.error.after",
        "init_error": "core.error.init",
        "before_template_render": "engine.template.before_render",
        "after_template_render": "engine.template.after_render",
        "before_layout_render": "engine.template.before_layout_render",
        "after_layout_render": "engine.template.after_layout_render",
        "before_serializer": "engine.serializer.before",
        "after_serializer": "engine.serializer.after",
        "before_file_render": "handler.file.before_render",
        "after_file_render": "handler.file.after_render",
    }
)


class App(Hookable):
    """The warble application.

    Usage::

        app = App(AppConfig(session="simple"))

        @app.route("/users/:id")
        def show_user(app, id):
            app.session("last_seen", id)
            return f"user {id}"

        @app.hook("before")
        def require_login(context):
            if context.request.path.startswith("/admin"):
                app.redirect("/login")

    Thread safety:
        Setup is single-threaded (decorators at import time). ``finish()``
        uses a Lock + double-check so exactly one thread registers the
        route handlers, even when several ASGI workers receive their
        first request concurrently. Per-request state lives in
        ContextVars and is never shared between dispatches.
    """

    hook_type = "core"
    hook_candidate = "app"
    supported_hooks = (
        "core.app.before_request",
        "core.app.after_request",
        "core.app.route_exception",
        "core.error.before",
        "core.error.after",
        "core.error.init",
    )
    hook_aliases = DEFAULT_HOOK_ALIASES

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        mime_types: MimeTypes | None = None,
        engine_registry: EngineRegistry | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        super().__init__()
        self.config: AppConfig = config or AppConfig()
        self.routes = RouteTable()
        self.plugins: list[Plugin] = []
        self.route_handlers: list[tuple[str, Hookable]] = []
        self.hook_registry = HookRegistry(
            self,
            candidates=self.hook_candidates,
            aliases=self.all_hook_aliases,
            is_halted=self._response_halted,
        )
        self.dispatcher = dispatcher or Dispatcher(self)
        self._prefix = PrefixScope()
        self._mime_types = mime_types or MimeTypes()
        self._engine_registry = engine_registry or default_registry()
        self._engines: dict[str, Engine | None] = {}
        self._engine_lock = threading.RLock()
        self._finish_lock = threading.Lock()
        self._finished = False

        self._init_route_handlers()
        self._init_hooks()

    @property
    def name(self) -> str:
        return self.config.name

    def __repr__(self) -> str:
        return f"<App {self.name!r} routes={len(self.routes)}>"

    # -- Settings --

    def setting(self, name: str) -> Any:
        """Current value of the configuration field *name*."""
        if name not in _CONFIG_FIELDS:
            msg = f"Unknown setting {name!r}"
            raise ConfigurationError(msg)
        return getattr(self.config, name)

    def set(self, **values: Any) -> AppConfig:
        """Change settings after construction.

        The config is replaced, never mutated. Settings with a trigger
        take effect on what is already built:

        - ``views`` and ``layout`` update the built template engine;
        - an engine field rebuilds a built engine of that kind, keeping
          its hooks;
        - ``public_dir`` moves the file handler.

        Engines not built yet pick up the new values when first used.
        ``public_dir`` and ``auto_page`` only add routes before
        ``finish()``.
        """
        unknown = sorted(set(values) - _CONFIG_FIELDS)
        if unknown:
            msg = f"Unknown setting(s): {', '.join(unknown)}"
            raise ConfigurationError(msg)
        self.config = replace(self.config, **values)

        for name, value in values.items():
            if name in ENGINE_KINDS:
                if name in self._engines:
                    self.set_engine(name, value)
            elif name in ("views", "layout"):
                template = self._engines.get("template")
                if template is None:
                    continue
                if name == "views":
                    template.set_views(value)
                else:
                    template.layout = value
            elif name == "public_dir":
                file_handler = self._route_handler("File")
                if isinstance(file_handler, FileHandler):
                    file_handler.public_dir = Path(value) if value is not None else None
        return self.config

    # -- Routes --

    def route(
        self,
        spec: str | re.Pattern[str],
        *,
        methods: list[str] | None = None,
        conditions: Mapping[str, str | re.Pattern[str]] | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Defaults to GET. Registering GET also registers HEAD.

        Usage::

            @app.route("/")
            def index():
                return "Hello, World!"

            @app.route("/users/:id", methods=["GET", "POST"])
            async def user(request, id: int):
                ...
        """
        expanded = [method.upper() for method in (methods or ["GET"])]
        if "GET" in expanded and "HEAD" not in expanded:
            expanded.append("HEAD")

        def decorator(func: Handler) -> Handler:
            for method in expanded:
                self.add_route(method, spec, func, conditions=conditions)
            return func

        return decorator

    def add_route(
        self,
        method: str,
        spec: str | re.Pattern[str],
        handler: Handler,
        *,
        conditions: Mapping[str, str | re.Pattern[str]] | None = None,
    ) -> Route:
        """Register *handler* for *method* under the current prefix."""
        route = Route(
            method=method,
            spec=spec,
            handler=handler,
            prefix=self._prefix.current,
            conditions=conditions or {},
        )
        return self.routes.add(route)

    def route_exists(self, route: Route) -> bool:
        return self.routes.route_exists(route)

    def routes_for(self, method: str) -> tuple[re.Pattern[str], ...]:
        return self.routes.routes_for(method)

    # -- Prefix --

    @property
    def prefix(self) -> str | None:
        return self._prefix.current

    def with_prefix(self, segment: str | None, body: Callable[[], Any]) -> Any:
        """Call *body* with *segment* appended to the current prefix."""
        return self._prefix.run(segment, body)

    def prefix_scope(self, segment: str | None) -> AbstractContextManager[str | None]:
        """Context-manager form of ``with_prefix``::

            with app.prefix_scope("/blog"):
                app.add_route("GET", "/:slug", show_post)
        """
        return self._prefix.enter(segment)

    # -- Hooks --

    def add_hook(self, hook: Hook) -> None:
        """Declare *hook*; see ``HookRegistry.add_hook``."""
        self.hook_registry.add_hook(hook)

    def hook(self, name: str) -> Callable[[HookCallback], HookCallback]:
        """Register a hook via decorator.

        Usage::

            @app.hook("before_template_render")
            def add_user(tokens):
                tokens["user"] = current_user()
        """

        def decorator(func: HookCallback) -> HookCallback:
            self.add_hook(Hook(name=name, code=func))
            return func

        return decorator

    async def execute_hook_async(self, name: str, *args: Any) -> list[Any]:
        """Run the hooks for *name* (alias or canonical) through the registry."""
        return await self.hook_registry.execute_hook(name, *args)

    def hook_candidates(self) -> list[Hookable]:
        """Hookables besides the app: route handlers, built engines, plugins."""
        candidates: list[Hookable] = [handler for _, handler in self.route_handlers]
        candidates.extend(
            engine for kind in ENGINE_KINDS if (engine := self._engines.get(kind)) is not None
        )
        candidates.extend(self.plugins)
        return candidates

    def all_hook_aliases(self) -> dict[str, str]:
        """App aliases merged with each plugin's, later plugins winning."""
        aliases = dict(self.hook_aliases)
        for plugin in self.plugins:
            aliases.update(plugin.hook_aliases)
        return aliases

    def register_plugin(self, plugin: Plugin) -> None:
        if any(existing is plugin for existing in self.plugins):
            return
        if plugin.app is None:
            plugin.app = self
            plugin.claim_postponed_hooks(self.hook_registry)
        self.plugins.append(plugin)
        self._log_core(f"Registered {plugin!r}")

    def _init_hooks(self) -> None:
        # flush the session once per request, at the very end
        self.add_hook(Hook(name="core.app.after_request", code=self._flush_session))

    def _response_halted(self) -> bool:
        context = context_var.get(None)
        return context is not None and context.response.is_halted

    # -- Engines --

    def engine(self, kind: str) -> Any:
        """The engine of *kind*, built on first use. None if not configured."""
        if kind not in ENGINE_KINDS:
            msg = f"Engine {kind!r} is not supported."
            raise UnsupportedEngineError(msg)
        if kind in self._engines:
            return self._engines[kind]
        with self._engine_lock:
            if kind not in self._engines:
                self._engines[kind] = self._build_engine(kind, getattr(self.config, kind))
            return self._engines[kind]

    def set_engine(self, kind: str, value: Any) -> Any:
        """Replace the engine of *kind*.

        *value* is a variant name, an Engine instance or None. The new
        engine keeps the hooks registered on the one it replaces.
        """
        if kind not in ENGINE_KINDS:
            msg = f"Engine {kind!r} is not supported."
            raise UnsupportedEngineError(msg)
        with self._engine_lock:
            previous = self._engines.get(kind)
            engine = self._build_engine(kind, value)
            if previous is not None and engine is not None:
                for name in engine.supported_hooks:
                    if previous.has_hook(name):
                        inherited = list(previous.hooks_for(name))
                        inherited.extend(
                            hook
                            for hook in engine.hooks_for(name)
                            if not any(hook is seen for seen in inherited)
                        )
                        engine.replace_hook(name, inherited)
            self._engines[kind] = engine
            return engine

    def _build_engine(self, kind: str, value: Any) -> Engine | None:
        if value is None:
            return None
        if isinstance(value, Engine):
            if value.kind != kind:
                msg = f"{value!r} cannot be used as the {kind} engine"
                raise ConfigurationError(msg)
            engine = value
            engine.app = self
            engine.claim_postponed_hooks(self.hook_registry)
        elif isinstance(value, str):
            engine_class = self._engine_registry.resolve(kind, value)
            options = {**self._engine_defaults(kind), **engine_options(self.config.engines, kind, value)}
            engine = engine_class(app=self, postponed_hooks=self.hook_registry, **options)
        else:
            msg = f"Cannot build {kind} engine from {value!r}"
            raise ConfigurationError(msg)

        context = context_var.get(None)
        if context is not None and context.app is self:
            context.engine_tokens.append((engine, engine.attach_context(context)))
        return engine

    def _engine_defaults(self, kind: str) -> dict[str, Any]:
        if kind == "logger":
            return {"log": self.config.log, "app_name": self.config.name}
        if kind == "template":
            defaults: dict[str, Any] = {"views": self.config.views}
            if self.config.layout is not None:
                defaults["layout"] = self.config.layout
            return defaults
        return {}

    def attach_engines(self, context: Context) -> None:
        """Bind *context* to every engine built so far."""
        for kind in ENGINE_KINDS:
            engine = self._engines.get(kind)
            if engine is not None:
                context.engine_tokens.append((engine, engine.attach_context(context)))

    def detach_engines(self, context: Context) -> None:
        while context.engine_tokens:
            engine, token = context.engine_tokens.pop()
            engine.detach_context(token)

    @property
    def mime_type(self) -> MimeTypes:
        """The MIME type registry, with the configured default applied."""
        if self.config.default_mime_type is not None:
            self._mime_types.default = self.config.default_mime_type
        else:
            self._mime_types.reset_default()
        return self._mime_types

    # -- Route handlers --

    def _init_route_handlers(self) -> None:
        file_handler = FileHandler(
            app=self,
            public_dir=self.config.public_dir,
            postponed_hooks=self.hook_registry,
        )
        self.route_handlers.append(("File", file_handler))
        self.route_handlers.append(
            ("AutoPage", AutoPageHandler(app=self, postponed_hooks=self.hook_registry))
        )

    def _route_handler(self, name: str) -> Hookable | None:
        for handler_name, handler in self.route_handlers:
            if handler_name == name:
                return handler
        return None

    def finish(self) -> None:
        """Complete setup before the first request.

        Thread-safe and idempotent: route handlers register their routes
        exactly once.
        """
        if self._finished:
            return
        with self._finish_lock:
            if self._finished:
                return
            for _, handler in self.route_handlers:
                register = getattr(handler, "register", None)
                if register is not None:
                    register(self)
            self._finished = True

    # -- Per-dispatch state --

    def _context(self, action: str) -> Context:
        context = context_var.get(None)
        if context is None or context.app is not self:
            msg = f"{action} requires an active dispatch of {self!r}"
            raise DispatchStateError(msg)
        return context

    @property
    def request(self) -> Request:
        return self._context("request").request

    @property
    def response(self) -> Response:
        return self._context("response").response

    def new_response(self) -> Response:
        return Response(serializer=self.engine("serializer"))

    @property
    def vars(self) -> dict[str, Any]:
        """Request-scoped variables; they survive ``pass_`` and ``forward``."""
        return self._context("vars").vars

    def var(self, name: str, value: Any = _MISSING) -> Any:
        if value is _MISSING:
            return self.vars.get(name)
        self.vars[name] = value
        return value

    # -- Control primitives --

    def halt(self, content: Any = None) -> NoReturn:
        """Deliver the current response as-is; remaining hooks are skipped."""
        context = self._context("halt")
        if content is not None:
            context.response.set_content(content)
        context.response.halt()
        escape(Halt(context.response))

    def redirect(self, destination: str, status: int | None = None) -> NoReturn:
        """Redirect to *destination*, made absolute against the request URI.

        The response is not halted: after-hooks still run.
        """
        context = self._context("redirect")
        if not _SCHEME.match(destination):
            destination = urljoin(context.request.uri, destination)
        context.response.redirect(destination, status)
        escape(Redirect(context.response))

    def pass_(self) -> NoReturn:
        """Give up on this route; the next matching route is tried."""
        self._context("pass")
        escape(Pass())

    def forward(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        *,
        method: str | None = None,
    ) -> NoReturn:
        """Dispatch *url* internally and deliver its response.

        *params* are merged over the current request's parameters.
        """
        context = self._context("forward")
        escape(Forward(context.request.forward_to(url, params, method=method)))

    def send_file(
        self,
        path: str | bytes,
        *,
        content_type: str | None = None,
        filename: str | None = None,
        system_path: bool = False,
    ) -> bytes:
        """Send a file, or in-memory *bytes*, as the response.

        A path is looked up under ``public_dir`` (or anywhere on disk with
        ``system_path=True``) and delivered immediately; a missing file is
        a 404. Bytes are returned for the handler to return as content.
        """
        context = self._context("send_file")
        response = context.response
        explicit_type: str | None = None
        if content_type is not None:
            explicit_type = content_type if "/" in content_type else self.mime_type.for_name(content_type)
            response.content_type = explicit_type
        if filename is not None:
            response.header("Content-Disposition", f'attachment; filename="{filename}"')

        if isinstance(path, bytes | bytearray):
            return bytes(path)

        if system_path:
            public_dir: str | Path = Path(path).anchor or Path.cwd()
        else:
            public_dir = self.config.public_dir or "public"
        handler = FileHandler(app=self, public_dir=public_dir)
        registered = self._route_handler("File")
        if registered is not None:
            handler.inherit_hooks(registered)

        context.request.path = path
        if not handler.serve(path, response, content_type=explicit_type):
            raise NotFound(f"File not found: {path}")
        escape(Respond(response))

    # -- Sessions --

    def session(self, key: str = _MISSING, value: Any = _MISSING) -> Any:
        """Read or write the session of the current request.

        - ``session()`` returns the Session, retrieving or creating it.
        - ``session(key)`` reads a key; returns None without creating a
          session when the request has none.
        - ``session(key, value)`` writes; a value of None deletes the key.

        Raises ``MissingEngineError`` if a session is needed and no
        session engine is configured.
        """
        context = self._context("session")
        if key is not _MISSING and value is _MISSING and not self._has_session(context):
            return None

        session = self._current_session(context)
        if key is _MISSING:
            return session
        if value is _MISSING:
            return session.read(key)
        if value is None:
            session.delete(key)
        else:
            session.write(key, value)
        return None

    def destroy_session(self) -> None:
        """Destroy the current session and expire its cookie."""
        context = self._context("destroy_session")
        engine = self._session_engine()
        session = self._current_session(context)
        engine.destroy(session)
        context.destroyed = session
        context.session = None

    def _session_engine(self) -> Any:
        engine = self.engine("session")
        if engine is None:
            msg = "No session available, a session engine needs to be set"
            raise MissingEngineError(msg)
        return engine

    def _has_session(self, context: Context) -> bool:
        if context.session is not None:
            return True
        engine = self.engine("session")
        return (
            engine is not None
            and context.destroyed is None
            and engine.has_cookie(context.request)
        )

    def _current_session(self, context: Context) -> Any:
        if context.session is None:
            context.session = self._session_engine().retrieve(context.request)
        return context.session

    def _flush_session(self, response: Response) -> None:
        engine = self._engines.get("session")
        context = context_var.get(None)
        if engine is None or context is None:
            return
        if context.session is not None:
            if context.session.is_dirty:
                engine.flush(context.session)
            engine.set_cookie_header(response, context.session)
        elif context.destroyed is not None:
            engine.set_cookie_header(response, context.destroyed, destroyed=True)

    # -- Cookies, templates, logging --

    def cookie(self, name: str, value: Any = _MISSING, **options: Any) -> str | None:
        """Read a request cookie, or set a response cookie.

        ``options`` are ``SetCookie`` fields: ``max_age``, ``expires``,
        ``path``, ``domain``, ``secure``, ``httponly``, ``samesite``.
        """
        context = self._context("cookie")
        if value is _MISSING:
            return context.request.cookies.get(name)
        cookie = SetCookie(name=name, value=str(value), **options)
        context.response.push_header("Set-Cookie", cookie.to_header_value())
        return None

    def template(self, view: str, tokens: dict[str, Any] | None = None, **options: Any) -> str:
        """Render *view* with the template engine."""
        engine = self.engine("template")
        if engine is None:
            msg = "No template engine configured"
            raise MissingEngineError(msg)
        return engine.process(view, tokens, **options)

    def log(self, level: str, *args: Any) -> None:
        logger = self.engine("logger")
        if logger is None:
            msg = "No logger defined"
            raise MissingEngineError(msg)
        logger.log(level, *args)

    def _log_core(self, message: str) -> None:
        logger = self.engine("logger")
        if logger is not None:
            logger.log("core", message)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self.finish()
        await handle_request(self, scope, receive, send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self.finish()
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
