"""Per-method ordered route table.

Guarantees stable insertion order and duplicate-free registration per
method. Turning an incoming path into the selected route is left to the
dispatcher, which walks ``candidates()`` and may fall through to the
next one when a handler calls ``pass_()``.
"""

import re
from collections.abc import Iterator

from warble.errors import DuplicateRouteError
from warble.http.request import Request
from warble.routing.route import METHODS, Route, RouteMatch


class RouteTable:
    """Routes grouped by HTTP method, in registration order.

    Usage::

        table = RouteTable()
        table.add(Route("GET", "/users/:id", show_user))
        for match in table.candidates("GET", request):
            ...
    """

    __slots__ = ("_routes",)

    def __init__(self) -> None:
        self._routes: dict[str, list[Route]] = {method: [] for method in sorted(METHODS)}

    def add(self, route: Route) -> Route:
        """Append *route*. Raises ``DuplicateRouteError`` if already present."""
        if self.route_exists(route):
            raise DuplicateRouteError(route.method, route.spec_route)
        self._routes[route.method].append(route)
        return route

    def route_exists(self, route: Route) -> bool:
        """True if a route with the same method and prefixed spec exists."""
        return any(
            existing.spec_route == route.spec_route for existing in self._routes[route.method]
        )

    def routes(self, method: str) -> tuple[Route, ...]:
        """All routes for *method*, in registration order."""
        return tuple(self._routes.get(method.upper(), ()))

    def routes_for(self, method: str) -> tuple[re.Pattern[str], ...]:
        """Compiled match patterns for *method*, in registration order."""
        return tuple(route.regexp for route in self.routes(method))

    def candidates(self, method: str, request: Request) -> Iterator[RouteMatch]:
        """Yield every route for *method* that matches *request*, in order.

        Lazy on purpose: the dispatcher stops consuming as soon as a
        handler produces a response, and routes added to the table
        while iterating are not seen by the current dispatch.
        """
        for route in self.routes(method):
            match = route.match(request)
            if match is not None:
                yield match

    def __len__(self) -> int:
        return sum(len(routes) for routes in self._routes.values())
