"""HTTP request.

Unlike a plain wire-level request, this object is mutable in the two
places the dispatch core needs: ``path`` (rewritten by ``forward`` and
``send_file``) and ``route_params`` (set by the dispatcher for each
matched route). Everything else is parsed once and shared with any
request cloned from it.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import quote

from warble._internal.asgi import Receive, Scope
from warble.http.cookies import parse_cookies
from warble.http.headers import Headers
from warble.http.query import decode_params


@dataclass(slots=True, eq=False)
class Request:
    """An HTTP request as seen by the dispatch core.

    Parameter sources, lowest to highest precedence in ``params``:
    query string, parsed body, parameters carried over by ``forward``,
    route parameters of the currently matched route. A query or form
    field sent more than once is a list of its values.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query_string: str = ""
    query: dict[str, Any] = field(default_factory=dict)
    body: bytes = b""
    body_params: dict[str, Any] = field(default_factory=dict)
    route_params: dict[str, Any] = field(default_factory=dict)
    carried_params: dict[str, Any] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    scheme: str = "http"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None
    script_name: str = ""
    http_version: str = "1.1"

    # -- Computed properties --

    @property
    def params(self) -> dict[str, Any]:
        """All parameters merged into one dict."""
        merged: dict[str, Any] = dict(self.query)
        merged.update(self.body_params)
        merged.update(self.carried_params)
        merged.update(self.route_params)
        return merged

    def param(self, name: str, default: Any = None) -> Any:
        """Return a single parameter by name."""
        return self.params.get(name, default)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def host(self) -> str:
        """Host (with port when non-default) from the Host header or server."""
        header = self.headers.get("host")
        if header:
            return header
        if self.server is None:
            return "localhost"
        name, port = self.server
        if (self.scheme, port) in (("http", 80), ("https", 443)):
            return name
        return f"{name}:{port}"

    @property
    def base(self) -> str:
        """Absolute base URI of the application (scheme, host, mount point)."""
        return f"{self.scheme}://{self.host}{self.script_name}"

    @property
    def uri(self) -> str:
        """Absolute URI of this request, including the query string."""
        uri = f"{self.base}{self.path}"
        if self.query_string:
            uri = f"{uri}?{self.query_string}"
        return uri

    def uri_for(self, path: str, params: Mapping[str, Any] | None = None) -> str:
        """Build an absolute URI for *path* under the application base."""
        uri = self.base.rstrip("/") + "/" + path.lstrip("/")
        if params:
            pairs = "&".join(
                f"{quote(str(k), safe='')}={quote(str(v), safe='')}" for k, v in params.items()
            )
            uri = f"{uri}?{pairs}"
        return uri

    # -- Cloning --

    def forward_to(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        method: str | None = None,
    ) -> Request:
        """Clone this request for an internal re-dispatch to *path*.

        The clone shares headers, body, query and parsed parameters.
        Current ``params`` merged with *params* (which win on collision)
        are carried over so they stay visible after the new route match
        replaces ``route_params``.
        """
        carried = {**self.params, **(params or {})}
        return replace(
            self,
            path=path,
            method=(method or self.method).upper(),
            route_params=dict(self.route_params),
            carried_params=carried,
        )

    # -- Factories --

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        query_string: str = "",
        body: bytes = b"",
        scheme: str = "http",
        server: tuple[str, int] | None = ("localhost", 80),
    ) -> Request:
        """Create a request without going through ASGI.

        Used by the test suite and by embedders that drive the
        ``Dispatcher`` directly.
        """
        if "?" in path and not query_string:
            path, query_string = path.split("?", 1)
        hdrs = Headers((headers or {}).items())
        request = cls(
            method=method.upper(),
            path=path,
            headers=hdrs,
            query_string=query_string,
            query=decode_params(query_string),
            body=body,
            cookies=parse_cookies(hdrs.get("cookie", "")),
            scheme=scheme,
            server=server,
        )
        request.body_params = parse_body(body, request.content_type)
        return request

    @classmethod
    async def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI HTTP scope, reading the full body."""
        chunks: list[bytes] = []
        while True:
            message = await receive()
            chunk = message.get("body", b"")
            if chunk:
                chunks.append(chunk)
            if not message.get("more_body", False):
                break
        body = b"".join(chunks)

        headers = Headers(scope.get("headers", ()))
        query_string = scope.get("query_string", b"").decode("latin-1")
        server = scope.get("server")
        client = scope.get("client")
        request = cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=headers,
            query_string=query_string,
            query=decode_params(query_string),
            body=body,
            cookies=parse_cookies(headers.get("cookie", "")),
            scheme=scope.get("scheme", "http"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            script_name=scope.get("root_path", ""),
            http_version=scope.get("http_version", "1.1"),
        )
        request.body_params = parse_body(body, request.content_type)
        return request


def parse_body(body: bytes, content_type: str | None) -> dict[str, Any]:
    """Parse a urlencoded or JSON body into a dict.

    Anything else (including a JSON document that is not an object) is
    left for a serializer engine to decode. Bytes that are not valid
    UTF-8 in a form body decode to U+FFFD.
    """
    if not body or not content_type:
        return {}
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type == "application/x-www-form-urlencoded":
        return decode_params(body.decode("utf-8", errors="replace"))
    if media_type == "application/json":
        try:
            data = json_module.loads(body)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    return {}
