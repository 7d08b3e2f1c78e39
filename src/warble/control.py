"""Non-local control flow for one dispatch.

``halt``, ``redirect``, ``pass_``, ``forward`` and ``send_file`` have to
abandon whatever hook or handler is running and hand control straight
back to the dispatcher. They do it by raising ``ControlSignal`` with an
explicit signal value. ``run_stage`` is the only place that catches it:
every dispatch stage runs through it and receives either
``Continue(value)`` or the signal value, then decides what to do next.

``ControlSignal`` derives from ``BaseException`` so that an ``except
Exception`` in application code never swallows a control escape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NoReturn, TypeAlias

from warble._internal.invoke import invoke
from warble.context import context_var
from warble.errors import DispatchStateError

if TYPE_CHECKING:
    from warble.http.request import Request
    from warble.http.response import Response


# -- Signal values --


@dataclass(frozen=True, slots=True)
class Continue:
    """The stage returned normally with *value*."""

    value: Any = None


@dataclass(frozen=True, slots=True)
class Halt:
    """Deliver *response* as-is; remaining hooks are skipped."""

    response: Response


@dataclass(frozen=True, slots=True)
class Redirect:
    """Deliver the redirect *response*; after-hooks still run."""

    response: Response


@dataclass(frozen=True, slots=True)
class Respond:
    """Deliver *response* produced outside the handler (e.g. ``send_file``)."""

    response: Response


@dataclass(frozen=True, slots=True)
class Pass:
    """Try the next matching route."""


@dataclass(frozen=True, slots=True)
class Forward:
    """Re-dispatch *request* internally with the same Context."""

    request: Request


Signal: TypeAlias = Halt | Redirect | Respond | Pass | Forward


class ControlSignal(BaseException):
    """Carries a signal value from a control primitive to ``run_stage``."""

    def __init__(self, value: Signal) -> None:
        self.value = value
        super().__init__(value)


def escape(value: Signal) -> NoReturn:
    """Raise *value* as a control escape.

    Only valid while the current dispatch has its escape window open.
    """
    context = context_var.get(None)
    if context is None or not context.escape_open:
        msg = f"{type(value).__name__.lower()} used outside of an active dispatch"
        raise DispatchStateError(msg)
    raise ControlSignal(value)


async def run_stage(func: Any, *args: Any, **kwargs: Any) -> Continue | Signal:
    """Run one dispatch stage, turning a control escape into its value."""
    try:
        value = await invoke(func, *args, **kwargs)
    except ControlSignal as signal:
        return signal.value
    return Continue(value)
