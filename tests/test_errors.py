"""Tests for warble.errors and the error pages rendered for them."""

import pytest

from warble.app import App
from warble.config import AppConfig
from warble.errors import (
    ConfigurationError,
    DuplicateRouteError,
    HookError,
    HookNameError,
    HTTPError,
    MissingEngineError,
    NotFound,
    UnsupportedEngineError,
    WarbleError,
)
from warble.server.errors import ErrorPage
from warble.testing import TestClient


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [ConfigurationError, HookNameError, UnsupportedEngineError, DuplicateRouteError],
    )
    def test_configuration_errors(self, error: type[Exception]) -> None:
        assert issubclass(error, ConfigurationError)

    def test_missing_engine_is_not_configuration_error(self) -> None:
        assert issubclass(MissingEngineError, WarbleError)
        assert not issubclass(MissingEngineError, ConfigurationError)

    def test_not_found(self) -> None:
        exc = NotFound()
        assert exc.status == 404
        assert str(exc) == "404: Not Found"
        assert isinstance(exc, HTTPError)

    def test_http_error_without_detail(self) -> None:
        assert str(HTTPError(503)) == "503"

    def test_hook_error_message(self) -> None:
        exc = HookError("core.app.before_request", ValueError("bad"))
        assert exc.position == "core.app.before_request"
        assert str(exc) == "Exception caught in 'core.app.before_request' filter: bad"


class TestErrorPage:
    def test_http_error_page(self) -> None:
        page = ErrorPage.for_exception(HTTPError(403, "Members only"))
        assert page.status == 403
        assert page.title == "Forbidden"
        html = page.render()
        assert "<h1>Error 403 - Forbidden</h1>" in html
        assert "<p>Members only</p>" in html

    def test_unknown_status_title(self) -> None:
        assert ErrorPage.for_exception(HTTPError(599)).title == "Error"

    def test_server_error_hides_details(self) -> None:
        page = ErrorPage.for_exception(RuntimeError("db password wrong"))
        assert page.status == 500
        assert "db password" not in page.render()

    def test_debug_shows_traceback(self) -> None:
        try:
            raise RuntimeError("kaput")
        except RuntimeError as exc:
            page = ErrorPage.for_exception(exc)
        html = page.render(debug=True)
        assert "<p>kaput</p>" in html
        assert "Traceback" in html

    def test_message_is_escaped(self) -> None:
        html = ErrorPage.for_exception(HTTPError(400, "<script>")).render()
        assert "&lt;script&gt;" in html


class TestErrorHooks:
    async def test_hooks_can_rewrite_page(self) -> None:
        app = App(AppConfig(logger="null"))

        @app.hook("init_error")
        def init(page):
            page.title = "Lost"

        @app.hook("before_error")
        def before(page):
            if page.status == 404:
                page.content = f"<p>{page.title}: nothing here</p>"

        async with TestClient(app) as client:
            response = await client.get("/nowhere")
        assert response.status == 404
        assert response.text == "<p>Lost: nothing here</p>"

    async def test_after_error_sees_response(self) -> None:
        app = App(AppConfig(logger="null"))
        app.hook("after_error")(lambda response: response.header("X-Error", str(response.status)))

        async with TestClient(app) as client:
            response = await client.get("/nowhere")
        assert response.get_header("x-error") == "404"

    async def test_failing_error_hook_is_plain_500(self) -> None:
        app = App(AppConfig(logger="null"))

        @app.hook("before_error")
        def broken(page):
            raise RuntimeError("hook failed")

        async with TestClient(app) as client:
            response = await client.get("/nowhere")
        assert response.status == 500
        assert response.text == "Internal Server Error"
