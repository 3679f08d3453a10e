from typing import cast

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from keyward.errors import (
    AccessDeniedError,
    AuthenticationError,
    LinkError,
    LinkFailure,
    NotFoundError,
    SessionError,
    SessionFailure,
    ValidationError,
)

logger = structlog.get_logger(__name__)

SESSION_STATUS: dict[SessionFailure, int] = {
    SessionFailure.NOT_FOUND: 401,
    SessionFailure.EXPIRED: 401,
    SessionFailure.IP_MISMATCH: 403,
}

LINK_STATUS: dict[LinkFailure, int] = {
    LinkFailure.NOT_FOUND: 404,
    LinkFailure.EXPIRED: 410,
    LinkFailure.INVALID_TYPE: 400,
    LinkFailure.ALREADY_EXISTS: 409,
}


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, AuthenticationError):
        status_code = 401
        error_type = "authentication_error"
    elif isinstance(exc, AccessDeniedError):
        status_code = 403
        error_type = "access_denied"
    elif isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    else:
        # Default for any other UserError subclass
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def session_error_handler(_: Request, exc: Exception) -> Response:
    """Expired or unknown sessions ask the client to sign in again."""
    error = cast(SessionError, exc)
    status_code = SESSION_STATUS.get(error.kind)
    if status_code is None:
        logger.error("session_operation_failed", kind=error.kind.name, exc_info=error)
        return create_json_error_response(500, "An unexpected error occurred.", "internal_server_error")
    return create_json_error_response(status_code, str(error), f"session_{error.kind.name.lower()}")


async def link_error_handler(_: Request, exc: Exception) -> Response:
    error = cast(LinkError, exc)
    return create_json_error_response(LINK_STATUS[error.kind], str(error), f"link_{error.kind.name.lower()}")


async def internal_error_handler(_: Request, exc: Exception) -> Response:
    """Storage and notification failures: logged, never described to the client."""
    logger.error("internal_error", error_class=type(exc).__name__, exc_info=exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("unexpected_error", exc_info=exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
