"""
Error envelope middleware - Standardize all error responses.

Provides consistent error response format:
{
    "error": {
        "code": "CONFLICT",
        "message": "Candidate is rejected, expected pending",
        "requestId": "uuid"
    }
}

Service results are converted with error_from_result(); their kind becomes
the code and the HTTP status comes from HTTP_STATUS_BY_KIND.
"""

import logging
from flask import Flask, jsonify, g
from werkzeug.exceptions import HTTPException

from services.result import HTTP_STATUS_BY_KIND, ServiceError


logger = logging.getLogger('api.middleware.error')


def setup_error_handlers(app: Flask) -> None:
    """
    Set up standardized error handlers on Flask app.

    Handles:
    - HTTP exceptions (400, 404, 500, etc.)
    - Unhandled Python exceptions

    Args:
        app: Flask application instance
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        """Handle Flask/Werkzeug HTTP exceptions."""
        # "Method Not Allowed" -> "METHOD_NOT_ALLOWED"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        """Handle unhandled Python exceptions."""
        request_id = getattr(g, 'request_id', None)

        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": request_id,
                "error_type": type(error).__name__,
            }
        )

        return make_error_response("INTERNAL_ERROR", "An unexpected error occurred", 500)


# Error codes reference
ERROR_CODES = {
    # Client errors (4xx)
    "BAD_REQUEST": 400,
    "VALIDATION_ERROR": 400,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "CONFLICT": 409,
    "UNSUPPORTED_MEDIA_TYPE": 415,

    # Upstream / storage errors
    "UPSTREAM_FAILURE": 502,
    "PERSISTENCE_ERROR": 503,

    # Server errors (5xx)
    "INTERNAL_ERROR": 500,
    "SERVICE_UNAVAILABLE": 503,
}


def make_error_response(
    code: str,
    message: str,
    status_code: int = None,
    field: str = None,
    details: dict = None,
    hint: str = None,
    retryable: bool = None,
):
    """
    Create a standardized error response.

    Args:
        code: Error code (e.g., "VALIDATION_ERROR")
        message: Human-readable error message
        status_code: HTTP status code (defaults based on error code)
        field: Optional field name that caused the error
        details: Optional additional details dict
        hint: Optional hint for fixing the error
        retryable: Set for failures the caller may retry as-is

    Returns:
        Tuple of (response, status_code)
    """
    request_id = getattr(g, 'request_id', None)

    if status_code is None:
        status_code = ERROR_CODES.get(code, 500)

    error = {
        "error": {
            "code": code,
            "message": message,
            "requestId": request_id,
        }
    }

    if field:
        error["error"]["field"] = field
    if details:
        error["error"]["details"] = details
    if hint:
        error["error"]["hint"] = hint
    if retryable is not None:
        error["error"]["retryable"] = retryable

    response = jsonify(error)
    if request_id:
        response.headers['X-Request-ID'] = request_id

    return response, status_code


def error_from_result(error: ServiceError):
    """Envelope for a failed service Result."""
    context = dict(error.context)
    field = context.pop("field", None)
    return make_error_response(
        error.kind.value,
        error.message,
        HTTP_STATUS_BY_KIND[error.kind],
        field=field,
        details=context or None,
        retryable=True if error.retryable else None,
    )
