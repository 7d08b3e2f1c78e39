"""ASGI handler: translates an HTTP scope to a Request, dispatches it and
sends the Response back through ASGI ``send()``.

The only component besides the sender that touches raw ASGI directly.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from warble._internal.asgi import Receive, Scope, Send
from warble.http.request import Request
from warble.http.response import Response
from warble.server.sender import send_response

if TYPE_CHECKING:
    from warble.app import App

logger = logging.getLogger("warble.server")


async def handle_request(app: App, scope: Scope, receive: Receive, send: Send) -> None:
    """Process a single HTTP request through the dispatcher."""
    if scope["type"] != "http":
        return

    request = await Request.from_asgi(scope, receive)
    try:
        response = await app.dispatcher.dispatch(request)
    except Exception:
        if app.config.propagate_exceptions:
            raise
        # a failing error hook
        logger.exception("Unhandled error for %s %s", request.method, request.path)
        response = Response(
            body="Internal Server Error",
            status=500,
            content_type="text/plain; charset=utf-8",
        )

    await send_response(response, send, head=request.method == "HEAD")
