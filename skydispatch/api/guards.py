"""
Request helpers shared by the blueprints: service lookup and auth guards.
"""

from functools import wraps

from flask import current_app, g, request

from skydispatch.errors import ForbiddenError

EXTENSION_KEY = 'skydispatch'


def services():
    """The Services bundle registered by the application factory."""
    return current_app.extensions[EXTENSION_KEY]


def bearer_token():
    header = request.headers.get('Authorization', '')
    return header[7:] if header.startswith('Bearer ') else None


def json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def require_auth(view):
    """Resolve the bearer token into ``g.user`` or fail with 401/403."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        g.user = services().auth.authenticate(bearer_token())
        return view(*args, **kwargs)
    return wrapper


def require_admin(view):
    """Must be stacked under ``require_auth``."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not g.user.is_admin:
            raise ForbiddenError('forbidden')
        return view(*args, **kwargs)
    return wrapper
