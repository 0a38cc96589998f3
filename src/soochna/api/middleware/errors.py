"""JSON error bodies for the notice board API.

Every failure leaves the API as

    {"error": "<code>", "message": "<text>", "detail": {...}, "request_id": "..."}

with `detail` and `request_id` present only when known. Handlers signal
failures by raising one of the APIError subclasses below; anything else
that escapes a handler is logged and reported as a bare 500.
"""

import logging
from collections.abc import Callable
from typing import Any, ClassVar

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from soochna.api.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)


class APIError(Exception):
    """A failure with a fixed HTTP status and machine-readable code.

    Subclasses set `status_code` and `error`; instances carry the message
    and optional detail for one occurrence.
    """

    status_code: ClassVar[int] = 400
    error: ClassVar[str] = "bad_request"
    headers: ClassVar[dict[str, str] | None] = None

    def __init__(self, message: str, detail: dict[str, Any] | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_response(self) -> JSONResponse:
        return error_response(self.status_code, self.error, self.message, self.detail, self.headers)


class ValidationAPIError(APIError):
    """Missing or invalid input (400). `detail.field` names the input when known."""

    error = "validation_error"


class AuthenticationError(APIError):
    """No usable bearer token (401)."""

    status_code = 401
    error = "unauthorized"
    headers = {"WWW-Authenticate": "Bearer"}

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class AuthorizationError(APIError):
    """Authenticated, but the role or ownership check failed (403)."""

    status_code = 403
    error = "forbidden"


class NotFoundError(APIError):
    """Unknown or deleted resource (404)."""

    status_code = 404
    error = "not_found"

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(f"{resource} not found: {identifier}")


class ServiceError(APIError):
    """Server-side failure reported with a message safe to show callers (500)."""

    status_code = 500
    error = "internal_error"


def error_response(
    status_code: int,
    error: str,
    message: str,
    detail: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render the standard error body, tagged with the current request ID."""
    body: dict[str, Any] = {"error": error, "message": message}
    if detail:
        body["detail"] = detail
    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _validation_response(errors: list[Any]) -> JSONResponse:
    encoded = jsonable_encoder(errors)
    detail: dict[str, Any] = {"errors": encoded}
    # Body and form fields are reported by name, like ValidationAPIError
    if encoded and encoded[0].get("loc"):
        detail["field"] = str(encoded[0]["loc"][-1])
    return error_response(400, "validation_error", "Request validation failed", detail)


async def request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report FastAPI's own request validation failures as 400."""
    return _validation_response(exc.errors())


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn exceptions escaping route handlers into the standard error body."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        try:
            return await call_next(request)
        except APIError as exc:
            if exc.status_code >= 500:
                logger.error(
                    "%s %s failed: %s",
                    request.method,
                    request.url.path,
                    exc.message,
                    exc_info=exc.__cause__ is not None,
                )
            return exc.to_response()
        except HTTPException as exc:
            return error_response(
                exc.status_code, "http_error", str(exc.detail), headers=exc.headers
            )
        except ValidationError as exc:
            return _validation_response(exc.errors())
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return error_response(500, "internal_error", "An internal error occurred")
