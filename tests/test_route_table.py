"""Tests for warble.routing.table: ordered per-method route storage."""

import pytest

from warble.errors import ConfigurationError, DuplicateRouteError
from warble.http.request import Request
from warble.routing.route import Route
from warble.routing.table import RouteTable


def first() -> str:
    return "first"


def second() -> str:
    return "second"


class TestRouteTable:
    def test_add_and_list(self) -> None:
        table = RouteTable()
        route = table.add(Route("GET", "/", first))
        assert table.routes("GET") == (route,)
        assert table.routes("POST") == ()
        assert len(table) == 1

    def test_duplicate_rejected(self) -> None:
        table = RouteTable()
        table.add(Route("GET", "/users/:id", first))
        with pytest.raises(DuplicateRouteError) as exc_info:
            table.add(Route("GET", "/users/:id", second))
        assert exc_info.value.spec_route == "/users/:id"
        assert isinstance(exc_info.value, ConfigurationError)

    def test_same_spec_other_method_allowed(self) -> None:
        table = RouteTable()
        table.add(Route("GET", "/users", first))
        table.add(Route("POST", "/users", second))
        assert len(table) == 2

    def test_duplicate_through_prefix(self) -> None:
        table = RouteTable()
        table.add(Route("GET", "/blog/:slug", first))
        with pytest.raises(DuplicateRouteError):
            table.add(Route("GET", "/:slug", second, prefix="/blog"))

    def test_route_exists(self) -> None:
        table = RouteTable()
        table.add(Route("GET", "/a", first))
        assert table.route_exists(Route("GET", "/a", second))
        assert not table.route_exists(Route("GET", "/b", second))

    def test_routes_for_keeps_order(self) -> None:
        table = RouteTable()
        table.add(Route("GET", "/b", first))
        table.add(Route("GET", "/a", second))
        patterns = table.routes_for("get")
        assert [p.match("/b") is not None for p in patterns] == [True, False]

    def test_candidates_in_registration_order(self) -> None:
        table = RouteTable()
        table.add(Route("GET", "/user/**", first))
        table.add(Route("GET", "/user/*/home", second))
        table.add(Route("GET", "/other", second))

        request = Request.build("GET", "/user/bob/home")
        matches = list(table.candidates("GET", request))
        assert [m.route.handler for m in matches] == [first, second]
