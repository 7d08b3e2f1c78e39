"""Automatic page route handler.

With ``AppConfig.auto_page`` set, a ``GET`` or ``HEAD`` for ``/about``
that no earlier route handled renders the ``about`` view through the
app's template engine. A path with no view behind it, or one inside
the layout directory, passes to the next route.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, ClassVar

from warble.hooks.hook import Hookable
from warble.routing.route import Route

if TYPE_CHECKING:
    from warble.app import App
    from warble.engines.template import TemplateEngine
    from warble.hooks.registry import HookRegistry
    from warble.http.request import Request


class AutoPageHandler(Hookable):
    """Render views named by the request path. Declares no hooks."""

    hook_type: ClassVar[str] = "handler"
    hook_candidate = "autopage"
    route_pattern: ClassVar[re.Pattern[str]] = re.compile(r"/.+")

    def __init__(self, *, app: App, postponed_hooks: HookRegistry | None = None) -> None:
        self.app = app
        super().__init__(postponed_hooks=postponed_hooks)

    def register(self, app: App) -> None:
        if not app.config.auto_page:
            return
        for method in ("GET", "HEAD"):
            if not app.route_exists(Route(method, self.route_pattern, self.handle)):
                app.add_route(method, self.route_pattern, self.handle)

    def handle(self, app: App, request: Request) -> str:
        engine = app.engine("template")
        page = request.path.lstrip("/")
        if engine is None or not self.has_page(engine, page):
            app.pass_()
        return app.template(page)

    @staticmethod
    def has_page(engine: TemplateEngine, page: str) -> bool:
        layouts = engine.layout_dir.strip("/")
        if page == layouts or page.startswith(f"{layouts}/"):
            return False
        return engine.view_exists(page)

    def __repr__(self) -> str:
        return f"<AutoPageHandler enabled={self.app.config.auto_page}>"
