"""
Request context middleware - Request ID and acting admin.

Provides:
- X-Request-ID injection on every request (echoed in the response)
- g.actor from X-Admin-Id, the reviewer recorded on candidate decisions

Authorization happens upstream; the admin id is trusted as given.
"""

import uuid
from flask import Flask, request, g


DEFAULT_ACTOR = "admin"
MAX_ACTOR_LENGTH = 100


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Injects into Flask's g object:
    - g.request_id (also returned as X-Request-ID)
    - g.actor

    Args:
        app: Flask application instance
    """

    @app.before_request
    def inject_request_context():
        """Inject request ID and actor before each request."""
        request_id = request.headers.get('X-Request-ID')
        if not request_id:
            request_id = str(uuid.uuid4())
        g.request_id = request_id

        actor = (request.headers.get('X-Admin-Id') or '').strip()
        g.actor = actor[:MAX_ACTOR_LENGTH] or DEFAULT_ACTOR

    @app.after_request
    def add_request_id_header(response):
        """Add request ID to response headers."""
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id
        return response


def get_actor() -> str:
    """Acting admin for the current request, or the default outside one."""
    return getattr(g, 'actor', DEFAULT_ACTOR)
