# Overview: Flask API routes for sign-in, sign-out, password change and optional sign-up.

"""
Authentication routes backed by the configured identity provider.

SECURITY:
- Tokens are returned once, at login; only their hash is stored
- Inactive or profile-less accounts cannot hold a session
- Self sign-up is disabled unless SELF_SIGNUP_ENABLED is set
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_active
from ..extensions import db
from ..models import User
from ..permissions import AuditAction
from ..services import audit_service, identity_service, user_service
from ..services.identity_service import InvalidCredentialsError, PasswordValidationError
from ..validation import ConflictError, CreateUserRequest, ValidationError

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Exchange email + password for a bearer token.

    Returns {token, user, must_change_password}. Inactive users get 403
    {"error": "inactive"} and no session.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email") if isinstance(data, dict) else None
    password = data.get("password") if isinstance(data, dict) else None
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        return jsonify({"error": "validation_error", "message": "email and password required"}), 400

    provider = identity_service.get_provider()
    try:
        identity, token = provider.sign_in(email, password)
    except InvalidCredentialsError:
        db.session.rollback()
        current_app.logger.warning("Failed login for %s from %s", email, request.remote_addr)
        return jsonify({"error": "Invalid credentials"}), 401

    user = db.session.get(User, identity.id)
    if user is None or not user.is_active:
        provider.sign_out(token)
        db.session.commit()
        current_app.logger.warning("Login refused for inactive account %s", identity.id)
        return jsonify({"error": "inactive"}), 403

    db.session.commit()
    return jsonify({
        "token": token,
        "user": user.to_dict(),
        "must_change_password": bool(user.must_change_password),
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the presented token."""
    token = identity_service.extract_bearer_token(request.headers.get("Authorization"))
    identity_service.get_provider().sign_out(token)
    db.session.commit()
    return jsonify({"ok": True})


@auth_bp.post("/change-password")
@require_auth
@require_active
def change_password_route():
    """
    Set a new password for the caller.

    Request body:
    - new_password: str (required)

    Pair with POST /api/self/complete-first-login to clear the
    must_change_password flag.
    """
    data = request.get_json(silent=True) or {}
    new_password = data.get("new_password") if isinstance(data, dict) else None
    if not isinstance(new_password, str) or not new_password:
        return jsonify({"error": "validation_error", "message": "new_password required"}), 400

    try:
        identity_service.get_provider().update_password(g.current_user.id, new_password)
        db.session.commit()
    except PasswordValidationError as e:
        db.session.rollback()
        return jsonify({"error": "validation_error", "message": str(e)}), 400

    current_app.logger.info("Password changed by %s", g.current_user.id)
    return jsonify({"ok": True})


@auth_bp.post("/signup")
def signup_route():
    """
    Self-service account creation.

    Disabled (403) unless SELF_SIGNUP_ENABLED. Creates the identity account
    and a non-admin, active profile in one step.
    """
    if not current_app.config.get("SELF_SIGNUP_ENABLED"):
        return jsonify({
            "error": "Self-registration is disabled. Contact an administrator to create an account."
        }), 403

    try:
        body = CreateUserRequest.from_payload(request.get_json(silent=True))
        user = user_service.sign_up(body.email, body.password, full_name=body.full_name)
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409

    audit_service.record_action(
        "users",
        AuditAction.USER_SIGNED_UP,
        actor_id=user.id,
        target_user_id=user.id,
    )
    return jsonify({"ok": True, "user_id": user.id}), 201
