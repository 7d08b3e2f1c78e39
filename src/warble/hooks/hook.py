"""Hooks and the Hookable base class.

Every object that can own hooks (the App, engines, route handlers,
plugins) is a ``Hookable``. It declares which fully-qualified events it
supports and keeps an ordered callback list per event.

Hook names have the form ``type.candidate.event``::

    engine.template.before_render
    plugin.database.before_connect
    core.app.after_request

``type`` is one of ``core``, ``engine``, ``handler``, ``plugin``;
``(type, candidate)`` identifies the owner.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from warble._internal.invoke import invoke
from warble._internal.types import HookCallback
from warble.errors import HookNameError

if TYPE_CHECKING:
    from warble.hooks.registry import HookRegistry

HOOK_TYPES: tuple[str, ...] = ("core", "engine", "handler", "plugin")


@dataclass(slots=True, eq=False)
class Hook:
    """A named callback bound to a lifecycle event.

    ``name`` is rewritten once, to its canonical form, when the hook is
    added through an App.
    """

    name: str
    code: HookCallback

    def __call__(self, *args: Any) -> Any:
        return self.code(*args)


def split_hook_name(name: str) -> tuple[str, str, str]:
    """Split ``type.candidate.event``; raise ``HookNameError`` if malformed."""
    parts = name.split(".")
    if len(parts) != 3 or not all(parts):
        msg = f"Invalid hook name {name!r}; expected 'type.candidate.event'"
        raise HookNameError(msg)
    hook_type, candidate, event = parts
    if hook_type not in HOOK_TYPES:
        msg = f"Unknown hook type {hook_type!r} in {name!r}; expected one of {HOOK_TYPES}"
        raise HookNameError(msg)
    return hook_type, candidate, event


class Hookable:
    """Base for objects that own hooks.

    Subclasses set ``hook_type``, ``hook_candidate`` and
    ``supported_hooks`` (either as class attributes or properties).
    Passing the app's ``HookRegistry`` at construction lets the new object
    claim hooks that were declared before it existed.
    """

    hook_type: ClassVar[str] = "core"
    hook_candidate: str = ""
    supported_hooks: tuple[str, ...] = ()
    hook_aliases: Mapping[str, str] = {}

    def __init__(self, *, postponed_hooks: HookRegistry | None = None) -> None:
        self.hooks: dict[str, list[Hook]] = {name: [] for name in self.supported_hooks}
        if postponed_hooks is not None:
            self.claim_postponed_hooks(postponed_hooks)

    def claim_postponed_hooks(self, registry: HookRegistry) -> None:
        """Register every hook postponed for this object's ``(type, candidate)``."""
        for pending in registry.claim(self.hook_type, self.hook_candidate):
            if not self.has_hook(pending.hook.name):
                msg = (
                    f"Hook {pending.hook.name!r} (added at {pending.caller}) "
                    f"is not supported by {self.hook_type}.{self.hook_candidate}"
                )
                raise HookNameError(msg)
            self.register_hook(pending.hook)

    def has_hook(self, name: str) -> bool:
        return name in self.hooks

    def register_hook(self, hook: Hook) -> None:
        """Append *hook* to its event list. The same Hook is never added twice."""
        if not self.has_hook(hook.name):
            msg = f"Unsupported hook {hook.name!r} for {type(self).__name__}"
            raise HookNameError(msg)
        bucket = self.hooks[hook.name]
        if not any(existing is hook for existing in bucket):
            bucket.append(hook)

    def add_hook(self, hook: Hook) -> None:
        self.register_hook(hook)

    def replace_hook(self, name: str, hooks: Iterable[Hook]) -> None:
        """Replace the callback list for *name* (used to hand hooks over)."""
        if not self.has_hook(name):
            msg = f"Unsupported hook {name!r} for {type(self).__name__}"
            raise HookNameError(msg)
        self.hooks[name] = list(hooks)

    def hooks_for(self, name: str) -> tuple[Hook, ...]:
        return tuple(self.hooks.get(name, ()))

    def execute_hook(self, name: str, *args: Any) -> list[Any]:
        """Run the hooks for *name* synchronously, in registration order.

        For events fired from synchronous code (rendering, logging,
        serialization). Callbacks for those events must be plain
        functions.
        """
        if not self.has_hook(name):
            msg = f"Unsupported hook {name!r} for {type(self).__name__}"
            raise HookNameError(msg)
        return [hook(*args) for hook in self.hooks_for(name)]

    async def execute_hook_async(self, name: str, *args: Any) -> list[Any]:
        """Run the hooks for *name*, awaiting coroutine callbacks."""
        if not self.has_hook(name):
            msg = f"Unsupported hook {name!r} for {type(self).__name__}"
            raise HookNameError(msg)
        return [await invoke(hook.code, *args) for hook in self.hooks_for(name)]
