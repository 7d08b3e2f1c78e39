"""Route and RouteMatch frozen dataclasses, plus pattern compilation.

Supported string patterns::

    "/users"              literal
    "/users/:id"          named parameter (one segment)
    "/files/*.*"          splat, one segment each, collected in ``splat``
    "/user/**"            megasplat, rest of the path as a list of segments

A compiled ``re.Pattern`` may be used instead of a string. Its named
groups become named parameters and its unnamed groups go to ``splat``.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from warble._internal.types import Handler
from warble.errors import ConfigurationError

METHODS: frozenset[str] = frozenset({"GET", "HEAD", "POST", "PUT", "DELETE", "OPTIONS"})

_TOKEN = re.compile(r":(?P<name>[A-Za-z_]\w*)|\*\*|\*")
_SPLAT_GROUP = "__splat"
_MEGA_GROUP = "__mega"


def compile_spec(spec: str) -> re.Pattern[str]:
    """Compile a string route pattern into an anchored regex.

    Raises ``ConfigurationError`` for parameter names reserved by the
    splat machinery or repeated within one pattern.
    """
    parts: list[str] = ["^"]
    seen: set[str] = set()
    pos = 0
    for index, token in enumerate(_TOKEN.finditer(spec)):
        parts.append(re.escape(spec[pos : token.start()]))
        name = token.group("name")
        if name is not None:
            if name.startswith("__") or name in seen:
                msg = f"Invalid parameter name {name!r} in route {spec!r}"
                raise ConfigurationError(msg)
            seen.add(name)
            parts.append(f"(?P<{name}>[^/]+)")
        elif token.group(0) == "**":
            parts.append(f"(?P<{_MEGA_GROUP}{index}>.*)")
        else:
            parts.append(f"(?P<{_SPLAT_GROUP}{index}>[^/]+)")
        pos = token.end()
    parts.append(re.escape(spec[pos:]))
    parts.append("$")
    return re.compile("".join(parts))


def _anchor(prefix: str, pattern: re.Pattern[str]) -> re.Pattern[str]:
    body = pattern.pattern.removeprefix("^").removesuffix("$")
    return re.compile(f"^{re.escape(prefix)}(?:{body})$", pattern.flags)


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    Created once by ``App.add_route`` with the prefix in effect at that
    moment, then owned by the app's ``RouteTable``.
    """

    method: str
    spec: str | re.Pattern[str]
    handler: Handler
    prefix: str | None = None
    conditions: Mapping[str, str | re.Pattern[str]] = field(default_factory=dict)
    regexp: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        method = self.method.upper()
        if method not in METHODS:
            msg = f"Unsupported HTTP method {self.method!r}; expected one of {sorted(METHODS)}"
            raise ConfigurationError(msg)
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "conditions", MappingProxyType(dict(self.conditions)))
        if isinstance(self.spec, re.Pattern):
            regexp = _anchor(self.prefix or "", self.spec)
        else:
            regexp = compile_spec(self.spec_route)
        object.__setattr__(self, "regexp", regexp)

    @property
    def spec_route(self) -> str:
        """Fully-prefixed match spec, the identity used for duplicate checks."""
        spec = self.spec.pattern if isinstance(self.spec, re.Pattern) else self.spec
        return f"{self.prefix or ''}{spec}"

    def match(self, request: Any) -> "RouteMatch | None":
        """Match *request* path and conditions; return params or None."""
        found = self.regexp.match(request.path)
        if found is None:
            return None
        if not self._conditions_hold(request):
            return None
        return RouteMatch(route=self, params=_extract_params(found, self.regexp))

    def _conditions_hold(self, request: Any) -> bool:
        for name, expected in self.conditions.items():
            actual = request.headers.get(name.replace("_", "-"))
            if actual is None:
                return False
            if isinstance(expected, re.Pattern):
                if not expected.search(actual):
                    return False
            elif actual != expected:
                return False
        return True


def _extract_params(found: re.Match[str], regexp: re.Pattern[str]) -> dict[str, Any]:
    params: dict[str, Any] = {}
    splat: list[Any] = []
    named_positions = set(regexp.groupindex.values())
    for name, position in sorted(regexp.groupindex.items(), key=lambda item: item[1]):
        value = found.group(position)
        if name.startswith(_MEGA_GROUP):
            splat.append([segment for segment in (value or "").split("/") if segment])
        elif name.startswith(_SPLAT_GROUP):
            splat.append(value)
        else:
            params[name] = value
    # unnamed groups of user-supplied regex routes
    for position in range(1, regexp.groups + 1):
        if position not in named_positions:
            splat.append(found.group(position))
    if splat:
        params["splat"] = splat
    return params


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    params: dict[str, Any]
