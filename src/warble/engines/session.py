"""Session engines.

A session engine retrieves a ``Session`` for the current request from
its cookie, creates one when there is none, persists it on ``flush``
and writes the session cookie onto the response.

Two variants ship with warble:

- ``simple``: data kept in process memory, cookie holds a random id.
- ``cookie``: data signed with ``itsdangerous`` and carried in the
  cookie itself; the cookie value (the session id) changes on every
  flush.
"""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from itsdangerous import BadData, URLSafeTimedSerializer

from warble.engines.base import Engine
from warble.errors import ConfigurationError
from warble.http.cookies import SetCookie

if TYPE_CHECKING:
    from warble.http.request import Request
    from warble.http.response import Response


@dataclass(slots=True, eq=False)
class Session:
    """Session data plus the id it is stored under.

    ``is_dirty`` is set by every write or delete and cleared by a flush.
    """

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    is_dirty: bool = False

    def read(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def write(self, key: str, value: Any) -> None:
        self.data[key] = value
        self.is_dirty = True

    def delete(self, key: str) -> None:
        if key in self.data:
            del self.data[key]
            self.is_dirty = True

    def __contains__(self, key: object) -> bool:
        return key in self.data


class SessionEngine(Engine):
    """Base session engine. Variants implement the storage primitives."""

    kind: ClassVar[str] = "session"
    supported_hooks = (
        "engine.session.before_retrieve",
        "engine.session.after_retrieve",
        "engine.session.before_create",
        "engine.session.after_create",
        "engine.session.before_destroy",
        "engine.session.after_destroy",
        "engine.session.before_flush",
        "engine.session.after_flush",
    )

    def __init__(
        self,
        *,
        cookie_name: str = "warble.session",
        cookie_path: str = "/",
        cookie_domain: str | None = None,
        cookie_duration: int | None = None,
        is_secure: bool = False,
        is_http_only: bool = True,
        samesite: str | None = "lax",
        **options: Any,
    ) -> None:
        self.cookie_name = cookie_name
        self.cookie_path = cookie_path
        self.cookie_domain = cookie_domain
        self.cookie_duration = cookie_duration
        self.is_secure = is_secure
        self.is_http_only = is_http_only
        self.samesite = samesite
        super().__init__(**options)

    # -- Lifecycle --

    def has_cookie(self, request: Request) -> bool:
        return bool(request.cookies.get(self.cookie_name))

    def retrieve(self, request: Request) -> Session:
        """The session named by *request*'s cookie, or a new one."""
        session_id = request.cookies.get(self.cookie_name)
        if session_id:
            self.execute_hook("engine.session.before_retrieve", session_id)
            data = self._retrieve(session_id)
            if data is not None:
                session = Session(id=session_id, data=data)
                self.execute_hook("engine.session.after_retrieve", session)
                return session
        return self.create()

    def create(self) -> Session:
        self.execute_hook("engine.session.before_create")
        session = Session(id=self.generate_id())
        self.execute_hook("engine.session.after_create", session)
        return session

    def flush(self, session: Session) -> None:
        self.execute_hook("engine.session.before_flush", session)
        self._flush(session)
        session.is_dirty = False
        self.execute_hook("engine.session.after_flush", session)

    def destroy(self, session: Session) -> None:
        self.execute_hook("engine.session.before_destroy", session)
        self._destroy(session.id)
        self.execute_hook("engine.session.after_destroy", session)

    def set_cookie_header(
        self, response: Response, session: Session, *, destroyed: bool = False
    ) -> None:
        """Append the session cookie (or its expiry) to *response*."""
        if destroyed:
            cookie = SetCookie(
                name=self.cookie_name,
                value="",
                max_age=0,
                expires=0,
                path=self.cookie_path,
                domain=self.cookie_domain,
                secure=self.is_secure,
                httponly=self.is_http_only,
                samesite=self.samesite,
            )
        else:
            cookie = SetCookie(
                name=self.cookie_name,
                value=session.id,
                max_age=self.cookie_duration,
                path=self.cookie_path,
                domain=self.cookie_domain,
                secure=self.is_secure,
                httponly=self.is_http_only,
                samesite=self.samesite,
            )
        response.push_header("Set-Cookie", cookie.to_header_value())

    def generate_id(self) -> str:
        return secrets.token_urlsafe(24)

    # -- Storage primitives --

    def _retrieve(self, session_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def _flush(self, session: Session) -> None:
        raise NotImplementedError

    def _destroy(self, session_id: str) -> None:
        raise NotImplementedError


class SimpleSessionEngine(SessionEngine):
    """In-memory sessions. Lost on restart, not shared between processes."""

    name: ClassVar[str] = "simple"

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        self._store: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _retrieve(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            data = self._store.get(session_id)
        return dict(data) if data is not None else None

    def _flush(self, session: Session) -> None:
        with self._lock:
            self._store[session.id] = dict(session.data)

    def _destroy(self, session_id: str) -> None:
        with self._lock:
            self._store.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._store)


class CookieSessionEngine(SessionEngine):
    """Signed client-side sessions.

    Session data is serialized as JSON and signed using ``itsdangerous``;
    ``secret_key`` is required. Sessions are signed, not encrypted.
    """

    name: ClassVar[str] = "cookie"

    def __init__(self, *, secret_key: str = "", max_age: int | None = 86400, **options: Any) -> None:
        if not secret_key:
            msg = "The cookie session engine requires a non-empty secret_key."
            raise ConfigurationError(msg)
        super().__init__(**options)
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key, salt="warble.session")

    def generate_id(self) -> str:
        return self._serializer.dumps({})

    def _retrieve(self, session_id: str) -> dict[str, Any] | None:
        try:
            data = self._serializer.loads(session_id, max_age=self.max_age)
        except BadData:
            return None
        return data if isinstance(data, dict) else None

    def _flush(self, session: Session) -> None:
        session.id = self._serializer.dumps(session.data)

    def _destroy(self, session_id: str) -> None:
        pass
