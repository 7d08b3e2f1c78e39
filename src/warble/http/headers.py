"""Request headers, folded once when the request is parsed.

A field sent more than once becomes a single comma-separated value
(``Cookie`` lines are joined with ``"; "``). Route conditions and the
request properties only ever need one value per name, and a forwarded
request shares the same folded object with its original.
"""

from collections.abc import Iterable, Iterator, Mapping


def _text(value: str | bytes) -> str:
    return value.decode("latin-1") if isinstance(value, bytes) else value


class Headers(Mapping[str, str]):
    """Case-insensitive, read-only view of the request's header fields.

    Accepts ASGI byte pairs or ``str`` pairs::

        Headers(scope["headers"])
        Headers({"Accept": "text/html"}.items())
    """

    __slots__ = ("_fields",)

    def __init__(self, pairs: Iterable[tuple[str | bytes, str | bytes]] = ()) -> None:
        fields: dict[str, str] = {}
        for raw_name, raw_value in pairs:
            name = _text(raw_name).lower()
            value = _text(raw_value)
            if name in fields:
                separator = "; " if name == "cookie" else ", "
                value = f"{fields[name]}{separator}{value}"
            fields[name] = value
        self._fields = fields

    def __getitem__(self, name: str) -> str:
        return self._fields[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Headers({self._fields!r})"
