"""Plugin base class.

A plugin is a Hookable of type ``plugin`` that declares its own events.
Hooks for those events may be declared on the app before the plugin is
created; the plugin claims them when it is constructed with the app.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from warble.hooks.hook import Hookable

if TYPE_CHECKING:
    from warble.app import App


class Plugin(Hookable):
    """Base for plugins.

    Usage::

        class Database(Plugin):
            name = "database"
            events = ("before_connect", "after_connect")
            hook_aliases = {"db_connect": "plugin.database.before_connect"}

            def connect(self):
                self.execute_plugin_hook("before_connect", self)
                ...

        db = Database(app)
    """

    hook_type: ClassVar[str] = "plugin"
    name: ClassVar[str] = ""
    events: ClassVar[tuple[str, ...]] = ()
    hook_aliases: ClassVar[Mapping[str, str]] = {}

    def __init__(self, app: App | None = None, **options: Any) -> None:
        self.app = app
        self.options = options
        super().__init__(postponed_hooks=app.hook_registry if app is not None else None)
        if app is not None:
            app.register_plugin(self)

    @property
    def hook_candidate(self) -> str:  # type: ignore[override]
        return self.name

    @property
    def supported_hooks(self) -> tuple[str, ...]:  # type: ignore[override]
        return tuple(f"plugin.{self.name}.{event}" for event in self.events)

    def execute_plugin_hook(self, event: str, *args: Any) -> list[Any]:
        """Run the hooks for one of this plugin's own events."""
        return self.execute_hook(f"plugin.{self.name}.{event}", *args)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} plugin {self.name!r}>"
