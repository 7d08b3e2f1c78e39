"""Hook resolution across late-bound subsystems.

A hook may be declared before the object that owns its event exists
(``engine.template.before_render`` declared at import time, template
engine built on first render). The registry attaches the hook to every
live candidate that already supports it and also postpones it under its
``(type, candidate)`` key, so a candidate constructed later claims it
during its own initialization.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from warble._internal.invoke import invoke
from warble.errors import HookError, HTTPError
from warble.hooks.hook import Hook, Hookable, split_hook_name

logger = logging.getLogger("warble.hooks")


@dataclass(frozen=True, slots=True)
class PostponedHook:
    """A hook waiting for its owner, with the site that declared it."""

    hook: Hook
    caller: str


def caller_site() -> str:
    """``file:line`` of the first frame outside the warble package."""
    frame = inspect.currentframe()
    try:
        while frame is not None:
            module = frame.f_globals.get("__name__", "")
            if module != "warble" and not module.startswith("warble."):
                return f"{frame.f_code.co_filename}:{frame.f_lineno}"
            frame = frame.f_back
        return "<unknown>"
    finally:
        del frame


class HookRegistry:
    """Resolves hook declarations for one App.

    Args:
        owner: The App. Events in its ``supported_hooks`` are owned
            directly and run through the halt-aware wrapper.
        candidates: Returns the current hook candidates, in order.
        aliases: Returns the merged alias table (app + plugins).
        is_halted: True when the in-flight response has been halted.
    """

    __slots__ = ("_aliases", "_candidates", "_is_halted", "_owner", "_postponed")

    def __init__(
        self,
        owner: Hookable,
        *,
        candidates: Callable[[], Iterable[Hookable]],
        aliases: Callable[[], Mapping[str, str]],
        is_halted: Callable[[], bool],
    ) -> None:
        self._owner = owner
        self._candidates = candidates
        self._aliases = aliases
        self._is_halted = is_halted
        self._postponed: dict[tuple[str, str], list[PostponedHook]] = {}

    def resolve(self, name: str) -> str:
        """Canonical name for *name* after alias lookup."""
        return self._aliases().get(name, name)

    def add_hook(self, hook: Hook) -> None:
        """Attach *hook* to its owner(s), postponing it for future owners.

        Raises ``HookNameError`` for a malformed name or unknown type.
        """
        caller = caller_site()
        hook.name = self.resolve(hook.name)

        if self._owner.has_hook(hook.name):
            self._owner.register_hook(hook)
            return

        hook_type, candidate, _ = split_hook_name(hook.name)

        for hookable in self._candidates():
            if hookable.has_hook(hook.name):
                hookable.register_hook(hook)

        self._postponed.setdefault((hook_type, candidate), []).append(
            PostponedHook(hook=hook, caller=caller)
        )
        logger.debug("Postponed hook %s declared at %s", hook.name, caller)

    def claim(self, hook_type: str, candidate: str) -> list[PostponedHook]:
        """Drain and return the hooks postponed for ``(hook_type, candidate)``."""
        return self._postponed.pop((hook_type, candidate), [])

    def pending(self, hook_type: str, candidate: str) -> tuple[PostponedHook, ...]:
        """Hooks still waiting for ``(hook_type, candidate)``, without draining."""
        return tuple(self._postponed.get((hook_type, candidate), ()))

    async def execute_hook(self, name: str, *args: Any) -> list[Any]:
        """Run the hooks for *name*.

        Owned events run here; any other event is delegated to the first
        candidate that declares it. An event nobody declares yet (its
        engine was never built) runs nothing.
        """
        name = self.resolve(name)
        if self._owner.has_hook(name):
            return await self._run_owned(name, args)

        split_hook_name(name)
        for hookable in self._candidates():
            if hookable.has_hook(name):
                return await hookable.execute_hook_async(name, *args)
        return []

    async def _run_owned(self, name: str, args: tuple[Any, ...]) -> list[Any]:
        results: list[Any] = []
        for hook in self._owner.hooks_for(name):
            # don't run the filter if halt has been used
            if self._is_halted():
                break
            try:
                results.append(await invoke(hook.code, *args))
            except HTTPError:
                raise
            except Exception as exc:
                raise HookError(name, exc) from exc
        return results
