"""Shared type aliases used across warble modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: user-defined function with variable signature
Handler: TypeAlias = Callable[..., Any]

# Hook callback: receives the arguments of the event it is bound to
HookCallback: TypeAlias = Callable[..., Any]
