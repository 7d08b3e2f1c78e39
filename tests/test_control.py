"""Tests for warble.control: signal values and run_stage."""

import pytest

from warble.app import App
from warble.context import Context, context_var
from warble.control import Continue, ControlSignal, Halt, Pass, escape, run_stage
from warble.errors import DispatchStateError
from warble.http.request import Request
from warble.http.response import Response


def _open_context(app: App, *, escape_open: bool = True) -> Context:
    context = Context(app=app, request=Request.build("GET", "/"), response=Response())
    context.escape_open = escape_open
    return context


class TestRunStage:
    async def test_normal_return_is_continue(self) -> None:
        assert await run_stage(lambda: 42) == Continue(42)

    async def test_async_callable(self) -> None:
        async def stage(value: str) -> str:
            return value * 2

        assert await run_stage(stage, "ab") == Continue("abab")

    async def test_signal_becomes_value(self) -> None:
        response = Response()

        def stage() -> None:
            raise ControlSignal(Halt(response))

        assert await run_stage(stage) == Halt(response)

    async def test_errors_propagate(self) -> None:
        def stage() -> None:
            raise KeyError("x")

        with pytest.raises(KeyError):
            await run_stage(stage)

    def test_signal_is_not_an_exception(self) -> None:
        assert not issubclass(ControlSignal, Exception)


class TestEscape:
    def test_outside_dispatch(self) -> None:
        with pytest.raises(DispatchStateError):
            escape(Pass())

    def test_closed_window(self) -> None:
        token = context_var.set(_open_context(App(), escape_open=False))
        try:
            with pytest.raises(DispatchStateError):
                escape(Pass())
        finally:
            context_var.reset(token)

    def test_open_window(self) -> None:
        token = context_var.set(_open_context(App()))
        try:
            with pytest.raises(ControlSignal) as exc_info:
                escape(Pass())
            assert exc_info.value.value == Pass()
        finally:
            context_var.reset(token)

    def test_app_primitives_outside_dispatch(self) -> None:
        app = App()
        with pytest.raises(DispatchStateError):
            app.halt()
        with pytest.raises(DispatchStateError):
            app.redirect("/")
        with pytest.raises(DispatchStateError):
            app.pass_()
        with pytest.raises(DispatchStateError):
            app.forward("/")
