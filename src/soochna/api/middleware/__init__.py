"""Request IDs, JSON error bodies and bearer token dependencies."""

from soochna.api.middleware.auth import (
    AuthenticatedUser,
    optional_authenticated_user,
    require_authenticated_user,
    require_role,
)
from soochna.api.middleware.errors import (
    APIError,
    AuthenticationError,
    AuthorizationError,
    ErrorHandlerMiddleware,
    NotFoundError,
    ServiceError,
    ValidationAPIError,
    request_validation_handler,
)
from soochna.api.middleware.request_id import RequestIDMiddleware, get_request_id

__all__ = [
    "APIError",
    "AuthenticatedUser",
    "AuthenticationError",
    "AuthorizationError",
    "ErrorHandlerMiddleware",
    "NotFoundError",
    "RequestIDMiddleware",
    "ServiceError",
    "ValidationAPIError",
    "get_request_id",
    "optional_authenticated_user",
    "request_validation_handler",
    "require_authenticated_user",
    "require_role",
]
