"""Invoke helpers: call sync or async callables uniformly.

Route handlers and hook callbacks can be ``def`` or ``async def``. Any
code that calls user-provided code must handle both cases. This module
keeps the sync/async check in exactly one place.

Usage::

    from warble._internal.invoke import invoke

    result = await invoke(handler, *args, **kwargs)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable.

    Works with both sync and async callables::

        # sync, returns immediately
        @app.route("/")
        def index():
            return "hello"

        # async, coroutine awaited automatically
        @app.route("/slow")
        async def slow():
            await asyncio.sleep(0.1)
            return "done"
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
