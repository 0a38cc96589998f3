"""X-Request-ID propagation.

The ID of the request being served lives in a context variable so that
error bodies and log records can quote it without it being passed
around. Clients may supply their own ID; it is reused when usable.
"""

import uuid
from collections.abc import Callable
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

_current_request_id: ContextVar[str | None] = ContextVar("soochna_request_id", default=None)


def get_request_id() -> str | None:
    """ID of the request being served, or None outside a request."""
    return _current_request_id.get()


def choose_request_id(supplied: str | None) -> str:
    """Reuse a client-supplied ID if it is non-blank and short enough."""
    candidate = (supplied or "").strip()
    if candidate and len(candidate) <= MAX_REQUEST_ID_LENGTH:
        return candidate
    return uuid.uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request ID for the duration of the request and echo it back."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        request_id = choose_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = _current_request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _current_request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
