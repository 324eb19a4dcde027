"""
Token source functions.

A source reads one candidate token from one channel of an inbound request
and returns an empty string when the channel does not carry a token. Sources
may be plain functions or coroutine functions.
"""

from typing import Any, Awaitable, Callable, Union

from fastapi import Request
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

DEFAULT_HEADER_NAME = "X-CSRF-Token"
CONTEXT_STATE_KEY = "csrf_token"

TokenSource = Callable[[Request], Union[str, Awaitable[str]]]


def set_context_token(request: Request, token: str) -> None:
    """Store a request-scoped token for :func:`context_token_source`."""
    setattr(request.state, CONTEXT_STATE_KEY, token)


def context_token_source(request: Request) -> str:
    """Return the request-scoped token or an empty string."""
    value = getattr(request.state, CONTEXT_STATE_KEY, None)
    return value if isinstance(value, str) else ""


def header_source(name: str) -> TokenSource:
    """Build a source reading the header ``name``."""
    def source(request: Request) -> str:
        return request.headers.get(name) or ""

    source.__name__ = f"header_source[{name}]"
    return source


header_token_source = header_source(DEFAULT_HEADER_NAME)


def form_token_source(field: str) -> TokenSource:
    """Build a source reading the decoded form field ``field``."""
    async def source(request: Request) -> str:
        # Cache the body first so handlers behind a middleware can read it again
        await request.body()
        try:
            form = await request.form()
        except (HTTPException, MultiPartException):
            # Unparsable body, another source may still carry the token
            return ""
        value: Any = form.get(field)
        # File uploads are never tokens
        return value if isinstance(value, str) else ""

    source.__name__ = f"form_token_source[{field}]"
    return source
