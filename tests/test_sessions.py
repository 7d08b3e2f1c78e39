"""Tests for sessions through App.session() and the session engines."""

import pytest

from warble.app import App
from warble.config import AppConfig
from warble.engines.session import CookieSessionEngine, Session, SimpleSessionEngine
from warble.errors import ConfigurationError, MissingEngineError
from warble.testing import TestClient


def _app(session: str = "simple", **options: object) -> App:
    engines = {"session": {session: options}} if options else {}
    return App(AppConfig(logger="null", session=session, engines=engines))


def _counter(app: App) -> None:
    @app.route("/count")
    def count():
        value = (app.session("count") or 0) + 1
        app.session("count", value)
        return str(value)


class TestSessionObject:
    def test_write_marks_dirty(self) -> None:
        session = Session(id="abc")
        session.write("user", "bob")
        assert session.is_dirty
        assert "user" in session
        assert session.read("user") == "bob"

    def test_delete_missing_key_is_clean(self) -> None:
        session = Session(id="abc")
        session.delete("nope")
        assert not session.is_dirty

    def test_read_default(self) -> None:
        assert Session(id="abc").read("x", 3) == 3


class TestSimpleSessions:
    async def test_session_persists_across_requests(self) -> None:
        app = _app()
        _counter(app)
        async with TestClient(app) as client:
            assert (await client.get("/count")).text == "1"
            assert (await client.get("/count")).text == "2"
            assert (await client.get("/count")).text == "3"
        assert len(app.engine("session")) == 1

    async def test_cookie_name_and_attributes(self) -> None:
        app = _app(cookie_name="sid", cookie_duration=60)
        _counter(app)
        async with TestClient(app) as client:
            response = await client.get("/count")
        header = response.get_header("set-cookie")
        assert header.startswith("sid=")
        assert "Max-Age=60" in header
        assert "HttpOnly" in header

    async def test_read_without_session_returns_none(self) -> None:
        app = _app()

        @app.route("/peek")
        def peek():
            return repr(app.session("user"))

        async with TestClient(app) as client:
            response = await client.get("/peek")
        assert response.text == "None"
        assert response.get_header("set-cookie") is None

    async def test_none_deletes_key(self) -> None:
        app = _app()

        @app.route("/login")
        def login():
            app.session("user", "bob")
            return "in"

        @app.route("/logout")
        def logout():
            app.session("user", None)
            return "out"

        @app.route("/whoami")
        def whoami():
            return str(app.session("user"))

        async with TestClient(app) as client:
            await client.get("/login")
            assert (await client.get("/whoami")).text == "bob"
            await client.get("/logout")
            assert (await client.get("/whoami")).text == "None"

    async def test_session_object(self) -> None:
        app = _app()

        @app.route("/")
        def index():
            session = app.session()
            return type(session).__name__

        async with TestClient(app) as client:
            assert (await client.get("/")).text == "Session"

    async def test_unknown_cookie_starts_new_session(self) -> None:
        app = _app()
        _counter(app)
        async with TestClient(app) as client:
            client.cookies["warble.session"] = "stale"
            assert (await client.get("/count")).text == "1"
            assert client.cookies["warble.session"] != "stale"

    async def test_destroy_expires_cookie(self) -> None:
        app = _app()
        _counter(app)

        @app.route("/logout")
        def logout():
            app.destroy_session()
            return "bye"

        async with TestClient(app) as client:
            await client.get("/count")
            response = await client.get("/logout")
            header = response.get_header("set-cookie")
            assert "Max-Age=0" in header
            assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in header
            assert "warble.session" not in client.cookies
            assert (await client.get("/count")).text == "1"
        assert len(app.engine("session")) == 1

    async def test_read_after_destroy_returns_none(self) -> None:
        app = _app()
        _counter(app)

        @app.route("/reset")
        def reset():
            app.destroy_session()
            return repr(app.session("count"))

        async with TestClient(app) as client:
            await client.get("/count")
            assert (await client.get("/reset")).text == "None"

    async def test_session_hooks(self) -> None:
        app = _app()
        _counter(app)
        created: list[str] = []
        flushed: list[int] = []
        app.hook("engine.session.after_create")(lambda session: created.append(session.id))
        app.hook("engine.session.after_flush")(lambda session: flushed.append(session.read("count")))

        async with TestClient(app) as client:
            await client.get("/count")
            await client.get("/count")
        assert len(created) == 1
        assert flushed == [1, 2]

    async def test_session_in_template_tokens(self) -> None:
        app = _app()
        seen: list[object] = []

        @app.route("/")
        def index():
            app.session("user", "bob")
            seen.append(app.engine("template").default_tokens()["session"])
            return "ok"

        async with TestClient(app) as client:
            await client.get("/")
        assert seen == [{"user": "bob"}]


class TestNoSessionEngine:
    async def test_write_without_engine(self) -> None:
        app = App(AppConfig(logger="null"))
        errors: list[Exception] = []

        @app.route("/")
        def index():
            try:
                app.session("user", "bob")
            except MissingEngineError as exc:
                errors.append(exc)
            return "ok"

        async with TestClient(app) as client:
            await client.get("/")
        assert len(errors) == 1
        assert "session engine" in str(errors[0])

    async def test_read_without_engine_returns_none(self) -> None:
        app = App(AppConfig(logger="null"))

        @app.route("/")
        def index():
            return repr(app.session("user"))

        async with TestClient(app) as client:
            assert (await client.get("/")).text == "None"


class TestCookieSessions:
    def test_requires_secret_key(self) -> None:
        with pytest.raises(ConfigurationError, match="secret_key"):
            CookieSessionEngine()

    def test_missing_secret_from_config(self) -> None:
        app = _app("cookie")
        with pytest.raises(ConfigurationError):
            app.engine("session")

    async def test_data_travels_in_cookie(self) -> None:
        app = _app("cookie", secret_key="s3cr3t")
        _counter(app)
        async with TestClient(app) as client:
            await client.get("/count")
            first = client.cookies["warble.session"]
            assert (await client.get("/count")).text == "2"
            assert client.cookies["warble.session"] != first

    async def test_tampered_cookie_is_ignored(self) -> None:
        app = _app("cookie", secret_key="s3cr3t")
        _counter(app)
        async with TestClient(app) as client:
            await client.get("/count")
            client.cookies["warble.session"] = client.cookies["warble.session"][:-2] + "xx"
            assert (await client.get("/count")).text == "1"

    async def test_other_key_cannot_read(self) -> None:
        writer = _app("cookie", secret_key="one")
        reader = _app("cookie", secret_key="two")
        _counter(writer)
        _counter(reader)
        async with TestClient(writer) as client:
            await client.get("/count")
            cookie = client.cookies["warble.session"]
        async with TestClient(reader) as client:
            client.cookies["warble.session"] = cookie
            assert (await client.get("/count")).text == "1"

    def test_flush_changes_id(self) -> None:
        engine = CookieSessionEngine(secret_key="k")
        session = engine.create()
        original = session.id
        session.write("a", 1)
        engine.flush(session)
        assert session.id != original
        assert not session.is_dirty


class TestSimpleEngineDirect:
    def test_round_trip_store(self) -> None:
        engine = SimpleSessionEngine()
        session = engine.create()
        session.write("k", "v")
        engine.flush(session)
        assert engine._retrieve(session.id) == {"k": "v"}
        engine.destroy(session)
        assert engine._retrieve(session.id) is None
