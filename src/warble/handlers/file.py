"""Static file route handler.

Serves files from a public directory. Registered as a catch-all
``GET``/``HEAD`` route when the app finishes, so it only sees requests
no earlier route handled; a missing file passes to the next route.
``App.send_file`` reuses it to serve a single file from a handler.

Security: resolves symlinks and verifies the final path is within the
public directory to prevent path traversal.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from warble.hooks.hook import Hookable
from warble.http.request import Request
from warble.http.response import Response
from warble.routing.route import Route

if TYPE_CHECKING:
    from warble.app import App
    from warble.hooks.registry import HookRegistry


class FileHandler(Hookable):
    """Serve files under ``public_dir``.

    Hooks:

    - ``handler.file.before_render(file_path)``
    - ``handler.file.after_render(response)``
    """

    hook_type: ClassVar[str] = "handler"
    hook_candidate = "file"
    supported_hooks = ("handler.file.before_render", "handler.file.after_render")
    # any path, as a regex so a user "/**" route keeps its own identity
    route_pattern: ClassVar[re.Pattern[str]] = re.compile(r"/.*")

    def __init__(
        self,
        *,
        app: App,
        public_dir: str | Path | None = None,
        postponed_hooks: HookRegistry | None = None,
    ) -> None:
        self.app = app
        self.public_dir = Path(public_dir) if public_dir is not None else None
        super().__init__(postponed_hooks=postponed_hooks)

    def register(self, app: App) -> None:
        """Add the catch-all routes, if a public directory is configured."""
        if self.public_dir is None:
            return
        for method in ("GET", "HEAD"):
            if not app.route_exists(Route(method, self.route_pattern, self.handle)):
                app.add_route(method, self.route_pattern, self.handle)

    def handle(self, app: App, request: Request) -> Response | None:
        if not self.serve(request.path, app.response):
            app.pass_()
        return app.response

    # -- Serving --

    def resolve(self, path: str) -> Path | None:
        """The file *path* names under the public directory, or None."""
        if self.public_dir is None or "\0" in path:
            return None
        root = self.public_dir.resolve()
        relative = path.lstrip("/")
        file_path = (root / relative).resolve() if relative else root
        if not file_path.is_relative_to(root) or not file_path.is_file():
            return None
        return file_path

    def serve(self, path: str, response: Response, *, content_type: str | None = None) -> bool:
        """Load the file for *path* into *response*. False if there is none."""
        file_path = self.resolve(path)
        if file_path is None:
            return False

        self.execute_hook("handler.file.before_render", file_path)
        response.body = file_path.read_bytes()
        response.content_type = content_type or self.content_type_for(file_path)
        self.execute_hook("handler.file.after_render", response)
        return True

    def content_type_for(self, file_path: Path) -> str:
        content_type = self.app.mime_type.for_file(file_path)
        if content_type.startswith("text/"):
            return f"{content_type}; charset=utf-8"
        return content_type

    def inherit_hooks(self, other: Hookable) -> None:
        """Take over the hooks registered on another file handler."""
        for name in self.supported_hooks:
            if other.has_hook(name):
                self.replace_hook(name, other.hooks_for(name))

    def __repr__(self) -> str:
        return f"<FileHandler public_dir={self.public_dir!s}>"
