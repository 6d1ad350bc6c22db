"""
Global middleware for API requests.

Provides:
- Request ID and acting-admin injection (X-Request-ID, X-Admin-Id)
- Error envelope standardization
- Request logging (admin writes always, other requests sampled)
"""

from .request_id import setup_request_id_middleware, get_actor
from .error_envelope import setup_error_handlers, make_error_response, error_from_result
from .request_logging import setup_request_logging_middleware

__all__ = [
    'setup_request_id_middleware',
    'get_actor',
    'setup_error_handlers',
    'make_error_response',
    'error_from_result',
    'setup_request_logging_middleware',
]
