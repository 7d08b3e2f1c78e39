"""Hooks: named callbacks, their owners, and late-bound resolution."""

from warble.hooks.hook import HOOK_TYPES, Hook, Hookable, split_hook_name
from warble.hooks.registry import HookRegistry, PostponedHook

__all__ = [
    "HOOK_TYPES",
    "Hook",
    "HookRegistry",
    "Hookable",
    "PostponedHook",
    "split_hook_name",
]
