"""Template engines.

``process`` is what ``App.template()`` calls: it merges the default
tokens of the current dispatch with the caller's, renders the view,
then wraps the result in a layout when one is configured. Each step
fires its ``engine.template.*`` hooks.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, ClassVar

from kida import Environment, FileSystemLoader
from kida.template import Markup

from warble.engines.base import Engine

_DEFAULT = object()


class TemplateEngine(Engine):
    """Base template engine. Variants implement ``render``.

    Hooks and their arguments:

    - ``engine.template.before_render(tokens)``: may mutate *tokens*.
    - ``engine.template.after_render(content)``: a returned string
      replaces the content.
    - ``engine.template.before_layout_render(tokens, content)``
    - ``engine.template.after_layout_render(content)``: as after_render.
    """

    kind: ClassVar[str] = "template"
    default_extension: ClassVar[str] = ".html"
    supported_hooks = (
        "engine.template.before_render",
        "engine.template.after_render",
        "engine.template.before_layout_render",
        "engine.template.after_layout_render",
    )

    def __init__(
        self,
        *,
        views: str | Path = "views",
        layout: str | None = None,
        layout_dir: str = "layouts",
        extension: str | None = None,
        **options: Any,
    ) -> None:
        self.views = Path(views)
        self.layout = layout
        self.layout_dir = layout_dir
        self.extension = extension or self.default_extension
        super().__init__(**options)

    def view_pathname(self, view: str) -> str:
        """Template name for *view*, with the default extension added."""
        if Path(view).suffix:
            return view
        return f"{view}{self.extension}"

    def layout_pathname(self, layout: str) -> str:
        return f"{self.layout_dir}/{self.view_pathname(layout)}"

    def set_views(self, views: str | Path) -> None:
        self.views = Path(views)

    def view_exists(self, view: str) -> bool:
        """True if *view* is a file inside ``views``."""
        root = self.views.resolve()
        path = (root / self.view_pathname(view)).resolve()
        return path.is_relative_to(root) and path.is_file()

    def default_tokens(self) -> dict[str, Any]:
        """Tokens every view sees during a dispatch."""
        context = self.context
        tokens: dict[str, Any] = {}
        if self.app is not None:
            config = self.app.config
            tokens["settings"] = {f.name: getattr(config, f.name) for f in fields(config)}
        if context is not None:
            tokens["request"] = context.request
            tokens["params"] = context.request.params
            tokens["vars"] = context.vars
            if context.session is not None:
                tokens["session"] = context.session.data
        return tokens

    def process(
        self,
        view: str,
        tokens: dict[str, Any] | None = None,
        *,
        layout: Any = _DEFAULT,
    ) -> str:
        """Render *view*, then its layout.

        ``layout=None`` disables the configured layout for this call.
        """
        merged = self.default_tokens()
        merged.update(tokens or {})

        self.execute_hook("engine.template.before_render", merged)
        content = self.render(self.view_pathname(view), merged)
        content = _replace(content, self.execute_hook("engine.template.after_render", content))

        layout_name = self.layout if layout is _DEFAULT else layout
        if not layout_name:
            return content
        return self.apply_layout(content, merged, layout_name)

    def apply_layout(self, content: str, tokens: dict[str, Any], layout: str) -> str:
        self.execute_hook("engine.template.before_layout_render", tokens, content)
        full = self.render(self.layout_pathname(layout), {**tokens, "content": Markup(content)})
        return _replace(full, self.execute_hook("engine.template.after_layout_render", full))

    def render(self, template: str, tokens: dict[str, Any]) -> str:
        raise NotImplementedError


def _replace(content: str, results: list[Any]) -> str:
    for result in results:
        if isinstance(result, str):
            content = result
    return content


class KidaTemplateEngine(TemplateEngine):
    """Renders views with kida from the ``views`` directory.

    The kida Environment is created on first render and reused after.
    """

    name: ClassVar[str] = "kida"

    def __init__(self, *, autoescape: bool = True, **options: Any) -> None:
        super().__init__(**options)
        self.autoescape = autoescape
        self._env: Environment | None = None

    @property
    def environment(self) -> Environment:
        if self._env is None:
            self._env = Environment(
                loader=FileSystemLoader(str(self.views)),
                autoescape=self.autoescape,
                auto_reload=bool(self.app and self.app.config.debug),
            )
        return self._env

    def set_views(self, views: str | Path) -> None:
        super().set_views(views)
        self._env = None

    def render(self, template: str, tokens: dict[str, Any]) -> str:
        return self.environment.get_template(template).render(tokens)
