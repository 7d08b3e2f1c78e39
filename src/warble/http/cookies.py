"""Reading the ``Cookie`` header and writing ``Set-Cookie`` directives.

Values are percent-encoded on the way out and decoded on the way in,
so any string an application stores in a cookie comes back unchanged.
Signed session values are URL-safe already and pass through as-is.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime, formatdate
from urllib.parse import quote, unquote

# cookie-octet characters besides the ones quote() never escapes
_COOKIE_SAFE = "!#$&'()*+/:<=>?@[]^`{|}"


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header into a name-value dict. Last duplicate wins."""
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        name, sep, value = pair.partition("=")
        if sep:
            cookies[name.strip()] = unquote(value.strip())
    return cookies


def http_date(when: int | float | datetime | str) -> str:
    """Format *when* (epoch seconds or a datetime) as an HTTP date.

    Strings are assumed to be formatted already. Naive datetimes are
    taken as local time.
    """
    if isinstance(when, str):
        return when
    if isinstance(when, datetime):
        return format_datetime(when.astimezone(timezone.utc), usegmt=True)
    return formatdate(when, usegmt=True)


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A cookie the response asks the client to store.

    ``expires`` takes epoch seconds, a datetime or a preformatted date;
    ``expires=0`` together with ``max_age=0`` deletes the cookie.
    """

    name: str
    value: str
    max_age: int | None = None
    expires: int | float | datetime | str | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str | None = "lax"

    def to_header_value(self) -> str:
        attributes = {
            "Max-Age": self.max_age,
            "Expires": None if self.expires is None else http_date(self.expires),
            "Path": self.path or None,
            "Domain": self.domain,
        }
        parts = [f"{self.name}={quote(self.value, safe=_COOKIE_SAFE)}"]
        parts.extend(f"{key}={value}" for key, value in attributes.items() if value is not None)
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)
