"""Decoding of query strings and urlencoded form bodies."""

from typing import Any
from urllib.parse import parse_qsl


def decode_params(text: str) -> dict[str, Any]:
    """Decode ``a=1&b=2&b=3`` into ``{"a": "1", "b": ["2", "3"]}``.

    A name given more than once maps to the list of its values in
    order of appearance. Blank values are kept. Percent-escapes that are
    not valid UTF-8 decode to U+FFFD.
    """
    params: dict[str, Any] = {}
    for name, value in parse_qsl(text, keep_blank_values=True, errors="replace"):
        if name not in params:
            params[name] = value
        elif isinstance(params[name], list):
            params[name].append(value)
        else:
            params[name] = [params[name], value]
    return params
