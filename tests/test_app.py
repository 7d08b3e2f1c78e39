"""Tests for the App: registration, cookies, send_file, static files, ASGI."""

from pathlib import Path

import pytest

from warble.app import App
from warble.config import AppConfig
from warble.errors import DispatchStateError, DuplicateRouteError
from warble.hooks.hook import Hook
from warble.http.request import Request
from warble.testing import TestClient


def _app(**config: object) -> App:
    return App(AppConfig(logger="null", **config))


class TestRegistration:
    def test_get_also_registers_head(self) -> None:
        app = _app()

        @app.route("/")
        def index():
            return "hi"

        assert len(app.routes.routes("GET")) == 1
        assert len(app.routes.routes("HEAD")) == 1

    def test_explicit_methods(self) -> None:
        app = _app()

        @app.route("/items", methods=["post", "put"])
        def items():
            return "ok"

        assert len(app.routes.routes("POST")) == 1
        assert len(app.routes.routes("PUT")) == 1
        assert app.routes.routes("GET") == ()

    def test_duplicate_route(self) -> None:
        app = _app()
        app.add_route("GET", "/x", lambda: "a")
        with pytest.raises(DuplicateRouteError):
            app.add_route("GET", "/x", lambda: "b")

    def test_routes_for_returns_patterns(self) -> None:
        app = _app()
        route = app.add_route("GET", "/users/:id", lambda: "")
        assert app.routes_for("GET") == (route.regexp,)
        assert app.route_exists(route)

    def test_prefix_scope(self) -> None:
        app = _app()
        with app.prefix_scope("/blog"):
            assert app.prefix == "/blog"
            route = app.add_route("GET", "/:slug", lambda: "")
        assert app.prefix is None
        assert route.spec_route == "/blog/:slug"

    def test_with_prefix(self) -> None:
        app = _app()
        routes = app.with_prefix("/api", lambda: app.add_route("GET", "/ping", lambda: "pong"))
        assert routes.spec_route == "/api/ping"

    def test_repr(self) -> None:
        assert repr(_app(name="shop")) == "<App 'shop' routes=0>"


class TestRequestState:
    def test_request_outside_dispatch(self) -> None:
        app = _app()
        with pytest.raises(DispatchStateError):
            app.request
        with pytest.raises(DispatchStateError):
            app.halt()

    async def test_state_bound_to_app(self) -> None:
        app = _app()
        other = _app()
        errors: list[Exception] = []

        @app.route("/")
        def index():
            try:
                other.var("x", 1)
            except DispatchStateError as exc:
                errors.append(exc)
            return "ok"

        async with TestClient(app) as client:
            await client.get("/")
        assert len(errors) == 1

    async def test_vars(self) -> None:
        app = _app()

        @app.hook("before")
        def remember(context):
            app.var("user", "ann")

        @app.route("/")
        def index():
            return f"{app.var('user')} {app.var('missing')}"

        async with TestClient(app) as client:
            assert (await client.get("/")).text == "ann None"

    async def test_dispatch_directly(self) -> None:
        app = _app()

        @app.route("/direct")
        def direct(request):
            return request.host

        response = await app.dispatcher.dispatch(Request.build("GET", "/direct"))
        assert response.text == "localhost"


class TestBodies:
    async def test_form_body_params(self) -> None:
        app = _app()

        @app.route("/form", methods=["POST"])
        def form(request):
            return request.param("name")

        async with TestClient(app) as client:
            response = await client.post("/form", form={"name": "ann"})
        assert response.text == "ann"

    async def test_json_body_params(self) -> None:
        app = _app()

        @app.route("/json", methods=["POST"])
        def json_body(request):
            return str(request.params["count"] + 1)

        async with TestClient(app) as client:
            response = await client.post("/json", json={"count": 41})
        assert response.text == "42"

    async def test_serializer_encodes_results(self) -> None:
        app = _app(serializer="json", engines={"serializer": {"json": {"sort_keys": True}}})

        @app.route("/data")
        def data():
            return {"b": 1, "a": [1, 2]}

        async with TestClient(app) as client:
            response = await client.get("/data")
        assert response.text == '{"a": [1, 2], "b": 1}'
        assert response.content_type == "application/json"


class TestCookies:
    async def test_set_and_read(self) -> None:
        app = _app()

        @app.route("/set")
        def set_cookie():
            app.cookie("flavour", "oat", max_age=60, httponly=False)
            return "set"

        @app.route("/get")
        def get_cookie():
            return str(app.cookie("flavour"))

        async with TestClient(app) as client:
            response = await client.get("/set")
            assert response.get_header("set-cookie") == "flavour=oat; Max-Age=60; Path=/; SameSite=lax"
            assert (await client.get("/get")).text == "oat"

    async def test_missing_cookie(self) -> None:
        app = _app()

        @app.route("/get")
        def get_cookie():
            return str(app.cookie("nope"))

        async with TestClient(app) as client:
            assert (await client.get("/get")).text == "None"

    async def test_several_cookies(self) -> None:
        app = _app()

        @app.route("/")
        def index():
            app.cookie("a", 1)
            app.cookie("b", 2)
            return "ok"

        async with TestClient(app) as client:
            await client.get("/")
            assert client.cookies == {"a": "1", "b": "2"}


class TestSendFile:
    async def test_bytes_are_returned(self) -> None:
        app = _app()

        @app.route("/report")
        def report():
            return app.send_file(b"a,b\n1,2\n", content_type="text/csv", filename="report.csv")

        async with TestClient(app) as client:
            response = await client.get("/report")
        assert response.body == b"a,b\n1,2\n"
        assert response.content_type == "text/csv"
        assert response.get_header("content-disposition") == 'attachment; filename="report.csv"'

    async def test_content_type_alias(self) -> None:
        app = _app()

        @app.route("/data")
        def data():
            return app.send_file(b"{}", content_type="json")

        async with TestClient(app) as client:
            response = await client.get("/data")
        assert response.content_type == "application/json"

    async def test_file_from_public_dir(self, tmp_path: Path) -> None:
        (tmp_path / "notes.txt").write_text("remember")
        app = _app(public_dir=tmp_path)
        after: list[str] = []

        @app.route("/notes")
        def notes():
            app.send_file("/notes.txt")
            after.append("unreachable")

        async with TestClient(app) as client:
            response = await client.get("/notes")
        assert response.text == "remember"
        assert response.content_type == "text/plain; charset=utf-8"
        assert after == []

    async def test_missing_file_is_404(self, tmp_path: Path) -> None:
        app = _app(public_dir=tmp_path)

        @app.route("/gone")
        def gone():
            app.send_file("/nothing.txt")

        async with TestClient(app) as client:
            response = await client.get("/gone")
        assert response.status == 404

    async def test_system_path(self, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere.json"
        target.write_text('{"ok": true}')
        app = _app()

        @app.route("/system")
        def system():
            app.send_file(str(target), system_path=True)

        async with TestClient(app) as client:
            response = await client.get("/system")
        assert response.text == '{"ok": true}'
        assert response.content_type == "application/json"

    async def test_send_file_uses_file_hooks(self, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("a")
        app = _app(public_dir=tmp_path)
        seen: list[str] = []
        app.add_hook(Hook("before_file_render", lambda path: seen.append(path.name)))

        @app.route("/a")
        def a():
            app.send_file("/a.txt")

        async with TestClient(app) as client:
            await client.get("/a")
        assert seen == ["a.txt"]

    async def test_send_file_leaves_declared_hooks_in_place(self, tmp_path: Path) -> None:
        (tmp_path / "a.txt").write_text("a")
        app = _app(public_dir=tmp_path)
        seen: list[str] = []
        app.add_hook(Hook("before_file_render", lambda path: seen.append(path.name)))

        @app.route("/a")
        def a():
            app.send_file("/a.txt")

        async with TestClient(app) as client:
            await client.get("/a")
            await client.get("/a")
        assert seen == ["a.txt", "a.txt"]
        assert len(app.hook_registry.pending("handler", "file")) == 1


class TestStaticFiles:
    async def test_public_file_served(self, tmp_path: Path) -> None:
        (tmp_path / "css").mkdir()
        (tmp_path / "css" / "site.css").write_text("body {}")
        app = _app(public_dir=tmp_path)

        async with TestClient(app) as client:
            response = await client.get("/css/site.css")
        assert response.status == 200
        assert response.text == "body {}"
        assert response.content_type == "text/css; charset=utf-8"

    async def test_routes_win_over_files(self, tmp_path: Path) -> None:
        (tmp_path / "hello").write_text("file")
        app = _app(public_dir=tmp_path)

        @app.route("/hello")
        def hello():
            return "route"

        async with TestClient(app) as client:
            assert (await client.get("/hello")).text == "route"

    async def test_missing_file_passes_to_404(self, tmp_path: Path) -> None:
        app = _app(public_dir=tmp_path)
        async with TestClient(app) as client:
            assert (await client.get("/missing.png")).status == 404

    async def test_traversal_blocked(self, tmp_path: Path) -> None:
        public = tmp_path / "public"
        public.mkdir()
        (tmp_path / "secret.txt").write_text("secret")
        app = _app(public_dir=public)
        async with TestClient(app) as client:
            response = await client.get("/../secret.txt")
        assert response.status == 404

    async def test_default_mime_type(self, tmp_path: Path) -> None:
        (tmp_path / "blob.zzz").write_bytes(b"\x00")
        app = _app(public_dir=tmp_path, default_mime_type="application/x-blob")
        async with TestClient(app) as client:
            response = await client.get("/blob.zzz")
        assert response.content_type == "application/x-blob"

    def test_mime_type_default_resets(self) -> None:
        assert _app().mime_type.default == "application/data"

    def test_no_public_dir_no_routes(self) -> None:
        app = _app()
        app.finish()
        assert app.routes.routes("GET") == ()

    def test_finish_is_idempotent(self, tmp_path: Path) -> None:
        app = _app(public_dir=tmp_path)
        app.finish()
        app.finish()
        assert len(app.routes.routes("GET")) == 1

    async def test_user_catch_all_with_public_dir(self, tmp_path: Path) -> None:
        (tmp_path / "site.css").write_text("body {}")
        app = _app(public_dir=tmp_path)

        @app.route("/**")
        def fallback(request):
            if request.path.endswith(".css"):
                app.pass_()
            return "fallback"

        app.finish()
        assert len(app.routes.routes("GET")) == 2
        async with TestClient(app) as client:
            assert (await client.get("/site.css")).text == "body {}"
            assert (await client.get("/anything/else")).text == "fallback"


class TestASGI:
    async def test_lifespan(self) -> None:
        app = _app()
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict] = []

        async def receive():
            return next(messages)

        async def send(message):
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_content_length(self) -> None:
        app = _app()

        @app.route("/")
        def index():
            return "héllo"

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.body == "héllo".encode()

    async def test_propagated_error_reaches_server(self) -> None:
        app = _app(propagate_exceptions=True)

        @app.route("/boom")
        def boom():
            raise RuntimeError("boom")

        async with TestClient(app) as client:
            with pytest.raises(Exception, match="boom"):
                await client.get("/boom")
