"""The dispatcher: one request in, one response out.

For each route matching the request, in registration order::

    Matching -> BeforeHooks -> Handling -> AfterHooks -> Done

Every stage runs through ``run_stage``, so a control escape raised
anywhere inside it comes back as a signal value:

- ``Pass``: discard the attempt's response and try the next route.
  ``vars`` written by the passed-over route stay visible.
- ``Forward``: dispatch the cloned request again with the same
  Context, halt the result and deliver it.
- ``Halt``/``Redirect``/``Respond``: deliver the signal's response.
  After-hooks still run; they skip themselves on a halted response.

No matching route is a 404. A failure renders an error page unless
``AppConfig.propagate_exceptions`` is set. The ``route_exception`` and
``core.error.*`` hooks run through ``run_stage`` as well: a halt,
redirect or forward from one of them replaces the error page.
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from warble._internal.invoke import invoke
from warble.context import Context, context_var
from warble.control import Continue, Forward, Halt, Pass, Redirect, Respond, Signal, run_stage
from warble.errors import ForwardLoopError, HandlerError, HTTPError, NotFound
from warble.http.response import Response
from warble.server.errors import ErrorPage, fill_error_response, render_error

if TYPE_CHECKING:
    from warble.app import App
    from warble.http.request import Request
    from warble.routing.route import RouteMatch

logger = logging.getLogger("warble.dispatch")

_INJECTED = ("app", "request", "context", "response")


class Dispatcher:
    """Runs requests through an App's routes and hooks.

    Usage::

        response = await app.dispatcher.dispatch(Request.build("GET", "/"))
    """

    __slots__ = ("_app",)

    def __init__(self, app: App) -> None:
        self._app = app

    async def dispatch(self, request: Request) -> Response:
        """Dispatch *request* in a new Context and return the final response."""
        app = self._app
        app.finish()

        context = Context(app=app, request=request, response=app.new_response())
        token = context_var.set(context)
        try:
            app.attach_engines(context)
            self._deserialize_body(request)
            context.escape_open = True
            return await self._dispatch(context, request)
        finally:
            context.escape_open = False
            app.detach_engines(context)
            context_var.reset(token)

    # -- Dispatch loop --

    async def _dispatch(self, context: Context, request: Request) -> Response:
        app = self._app
        context.request = request
        try:
            for match in app.routes.candidates(request.method, request):
                context.response = app.new_response()
                request.route_params = dict(match.params)
                outcome = await self._attempt(context, match)
                if outcome is None:
                    logger.debug("Passed %s %s", request.method, match.route.spec_route)
                    continue
                return outcome
            raise NotFound(f"{request.method} {request.path}")
        except HTTPError as exc:
            return await self._error_response(context, exc)
        except Exception as exc:
            outcome = await run_stage(app.execute_hook_async, "core.app.route_exception", context, exc)
            settled = await self._settle(context, outcome)
            if settled is not None:
                return settled
            if app.config.propagate_exceptions:
                raise
            return await self._error_response(context, exc)

    async def _attempt(self, context: Context, match: RouteMatch) -> Response | None:
        """One route attempt. None means the route passed."""
        app = self._app
        outcome: Continue | Signal = await run_stage(
            app.execute_hook_async, "core.app.before_request", context
        )
        if isinstance(outcome, Continue):
            outcome = await run_stage(self._call_handler, context, match)

        if isinstance(outcome, Pass):
            return None
        if isinstance(outcome, Forward):
            return await self._forward(context, outcome.request)
        if isinstance(outcome, Continue):
            # serializer hooks run while the value is applied
            outcome = await run_stage(self._apply, context, outcome.value)
            if isinstance(outcome, Forward):
                return await self._forward(context, outcome.request)
        if isinstance(outcome, Halt | Redirect | Respond):
            context.response = outcome.response

        after = await run_stage(app.execute_hook_async, "core.app.after_request", context.response)
        if isinstance(after, Forward):
            return await self._forward(context, after.request)
        if isinstance(after, Halt | Redirect | Respond):
            context.response = after.response
        return context.response

    async def _forward(self, context: Context, request: Request) -> Response:
        """Re-dispatch *request* in *context*, then halt and adopt the result."""
        target = (request.method, request.path, _params_key(request.carried_params))
        if target in context.forward_trail:
            msg = f"forward loop: {request.method} {request.path} was already forwarded to"
            raise ForwardLoopError(msg)
        if len(context.forward_trail) >= self._app.config.max_forward_hops:
            msg = f"forward exceeded {self._app.config.max_forward_hops} hops at {request.path}"
            raise ForwardLoopError(msg)
        context.forward_trail.append(target)
        logger.debug("Forwarding to %s %s", request.method, request.path)

        response = await self._dispatch(context, request)
        response.halt()
        context.response = response
        return response

    async def _settle(self, context: Context, outcome: Continue | Signal) -> Response | None:
        """Response a signal from an error stage delivers, or None."""
        if isinstance(outcome, Forward):
            return await self._forward(context, outcome.request)
        if isinstance(outcome, Halt | Redirect | Respond):
            context.response = outcome.response
            return outcome.response
        return None

    async def _error_response(self, context: Context, exc: BaseException) -> Response:
        outcome = await run_stage(render_error, self._app, context, exc)
        if isinstance(outcome, Continue):
            return outcome.value
        settled = await self._settle(context, outcome)
        if settled is not None:
            return settled
        # a pass from an error hook serves the plain page
        response = self._app.new_response()
        fill_error_response(self._app, response, ErrorPage.for_exception(exc))
        context.response = response
        return response

    # -- Handlers --

    async def _call_handler(self, context: Context, match: RouteMatch) -> Any:
        handler = match.route.handler
        kwargs = _handler_kwargs(handler, context, match.params)
        try:
            return await invoke(handler, **kwargs)
        except HTTPError:
            raise
        except Exception as exc:
            raise HandlerError(match.route, exc) from exc

    def _apply(self, context: Context, value: Any) -> None:
        """Apply a handler's return value to the current response."""
        if isinstance(value, Response):
            context.response = value
            return
        context.response.set_content(value)

    def _deserialize_body(self, request: Request) -> None:
        serializer = self._app.engine("serializer")
        if serializer is None or request.body_params or not request.body:
            return
        if not serializer.accepts(request.content_type):
            return
        try:
            data = serializer.deserialize(request.body)
        except ValueError:
            logger.debug("Undecodable %s body ignored", serializer.content_type)
            return
        if isinstance(data, dict):
            request.body_params = data


def _params_key(params: dict[str, Any]) -> str:
    return json.dumps(params, sort_keys=True, default=str)


def _signature(handler: Callable[..., Any]) -> inspect.Signature:
    try:
        return inspect.signature(handler, eval_str=True)
    except NameError:
        # annotations referring to names only imported for type checking
        return inspect.signature(handler)


def _handler_kwargs(
    handler: Callable[..., Any], context: Context, params: dict[str, Any]
) -> dict[str, Any]:
    """Build handler kwargs from its signature.

    Resolution order:
    1. ``app``, ``request``, ``context``, ``response`` by name
    2. Route parameters (and ``splat``) by name, converted to the
       annotated type when one is given
    3. ``**kwargs`` receives every route parameter not yet bound
    """
    sig = _signature(handler)
    injected = {
        "app": context.app,
        "request": context.request,
        "context": context,
        "response": context.response,
    }
    kwargs: dict[str, Any] = {}
    var_keyword = False

    for name, param in sig.parameters.items():
        if param.kind is inspect.Parameter.VAR_KEYWORD:
            var_keyword = True
        elif name in _INJECTED:
            kwargs[name] = injected[name]
        elif name in params:
            value = params[name]
            annotation = param.annotation
            if isinstance(annotation, type) and annotation is not str and isinstance(value, str):
                try:
                    kwargs[name] = annotation(value)
                except (ValueError, TypeError):
                    kwargs[name] = value
            else:
                kwargs[name] = value

    if var_keyword:
        for name, value in params.items():
            kwargs.setdefault(name, value)
    return kwargs
