"""Error pages for warble dispatches.

Maps HTTPError exceptions and unexpected failures to Responses. The
``core.error.*`` hooks let the application inspect or rewrite an error
page before it is rendered and the resulting response after:

- ``core.error.init(page)`` when the page is created,
- ``core.error.before(page)`` right before rendering,
- ``core.error.after(response)`` once the response is built.
"""

from __future__ import annotations

import html
import logging
import traceback
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING

from warble.errors import HTTPError

if TYPE_CHECKING:
    from warble.app import App
    from warble.context import Context
    from warble.http.response import Response

logger = logging.getLogger("warble.dispatch")


@dataclass(slots=True, eq=False)
class ErrorPage:
    """An error about to be rendered.

    Hooks may change ``status``, ``title``, ``message`` or set
    ``content`` to replace the default body entirely.
    """

    status: int
    title: str
    message: str = ""
    exception: BaseException | None = None
    content: str | None = None

    @classmethod
    def for_exception(cls, exc: BaseException) -> ErrorPage:
        if isinstance(exc, HTTPError):
            return cls(status=exc.status, title=_reason(exc.status), message=exc.detail, exception=exc)
        return cls(status=500, title=_reason(500), message=str(exc), exception=exc)

    def render(self, *, debug: bool = False) -> str:
        """Minimal HTML body. Tracebacks only in debug mode."""
        parts = [
            "<!DOCTYPE html>",
            f"<html><head><title>Error {self.status}</title></head><body>",
            f"<h1>Error {self.status} - {html.escape(self.title)}</h1>",
        ]
        if self.message and (debug or self.status < 500):
            parts.append(f"<p>{html.escape(self.message)}</p>")
        if debug and self.exception is not None and self.status >= 500:
            trace = "".join(traceback.format_exception(self.exception))
            parts.append(f"<pre>{html.escape(trace)}</pre>")
        parts.append("</body></html>")
        return "\n".join(parts)


def _reason(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"


async def render_error(app: App, context: Context, exc: BaseException) -> Response:
    """Build the error response for *exc* and make it the current response.

    The response carries the error status while the hooks run, so a hook
    that halts delivers it with that status.
    """
    request = context.request
    if isinstance(exc, HTTPError):
        logger.debug("%d %s %s - %s", exc.status, request.method, request.path, exc.detail)
    else:
        logger.error("500 %s %s", request.method, request.path, exc_info=exc)

    page = ErrorPage.for_exception(exc)
    response = app.new_response()
    response.status = page.status
    context.response = response

    await app.execute_hook_async("core.error.init", page)
    await app.execute_hook_async("core.error.before", page)

    fill_error_response(app, response, page)
    await app.execute_hook_async("core.error.after", response)
    return response


def fill_error_response(app: App, response: Response, page: ErrorPage) -> None:
    """Write *page* into *response*. No hooks run."""
    response.status = page.status
    response.body = page.content if page.content is not None else page.render(debug=app.config.debug)
    response.content_type = "text/html; charset=utf-8"
    if isinstance(page.exception, HTTPError):
        for name, value in page.exception.headers:
            response.header(name, value)
