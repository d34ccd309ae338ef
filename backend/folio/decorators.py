# Overview: Request decorators for API routes; identity resolution and role gates.

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import db
from .models import User
from .services import identity_service
from .services.identity_service import InvalidTokenError


def require_auth(f):
    """
    Resolve the bearer token and load the caller's role row.

    Sets the following Flask g attributes:
    - g.identity: Identity{id, email} from the identity provider
    - g.current_user: the User row, or None when no profile exists

    SECURITY: Returns 401 if:
    - No Authorization header, or not "Bearer <token>"
    - Token does not verify against the identity provider
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            identity = identity_service.resolve(request.headers.get("Authorization"))
        except InvalidTokenError as e:
            current_app.logger.warning("Unauthorized request to %s: %s", request.path, e)
            return jsonify({"error": str(e)}), 401

        g.identity = identity
        g.current_user = db.session.get(User, identity.id)

        return f(*args, **kwargs)

    return decorated_function


def require_active(f):
    """Require a profile row with is_active=True (403 {"error": "inactive"})."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, 'identity'):
            return jsonify({"error": "Authentication required"}), 401

        user = g.current_user
        if user is None or not user.is_active:
            current_app.logger.warning("Inactive or unknown user %s denied %s", g.identity.id, request.path)
            return jsonify({"error": "inactive"}), 403

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Require an active admin.

    The role row is re-read on every request, so a revoked admin flag takes
    effect immediately.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, 'identity'):
            return jsonify({"error": "Authentication required"}), 401

        user = g.current_user
        if user is None or not user.is_admin or not user.is_active:
            current_app.logger.warning(
                "Access denied - not admin: user=%s path=%s", g.identity.id, request.path
            )
            return jsonify({"error": "Forbidden: admin only"}), 403

        return f(*args, **kwargs)

    return decorated_function
