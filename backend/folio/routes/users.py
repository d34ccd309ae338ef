# Overview: Flask API routes for admin user management; parses input and returns JSON responses.

"""
Admin routes for user accounts.

Provides endpoints for:
- Listing users
- Provisioning, soft delete, hard delete
- Activation toggling and password reset

All endpoints require an active admin. Every successful mutation appends an
audit record naming the acting admin and the target user.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_admin
from ..permissions import AuditAction
from ..services import audit_service, user_service
from ..services.identity_service import IdentityProviderError, PasswordValidationError
from ..validation import (
    ConflictError,
    CreateUserRequest,
    ResetPasswordRequest,
    SetActiveRequest,
    UserIdRequest,
    ValidationError,
)

users_bp = Blueprint("users", __name__, url_prefix="/api")


def _bad_request(e: Exception):
    return jsonify({"error": "validation_error", "message": str(e)}), 400


@users_bp.get("/users")
@require_auth
@require_admin
def list_users():
    """All users: [{id, email, is_admin, is_active, full_name}]."""
    users = user_service.list_users(include_inactive=True)
    return jsonify([user.to_dict() for user in users])


@users_bp.post("/admin/users/create")
@require_auth
@require_admin
def create_user():
    """
    Provision an account.

    Request body:
    - email: str (required)
    - password: str (required)
    - is_admin: bool (optional)
    - full_name: str (optional)
    """
    try:
        body = CreateUserRequest.from_payload(request.get_json(silent=True))
        user = user_service.create_user(
            body.email,
            body.password,
            is_admin=body.is_admin,
            full_name=body.full_name,
        )
    except (ValidationError, PasswordValidationError) as e:
        return _bad_request(e)
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409

    audit_service.record_action(
        "users",
        AuditAction.USER_CREATED,
        actor_id=g.current_user.id,
        target_user_id=user.id,
        details=f"is_admin={user.is_admin}",
    )
    return jsonify({"ok": True, "user_id": user.id}), 201


@users_bp.post("/admin/users/delete")
@require_auth
@require_admin
def hard_delete_user():
    """
    Irreversibly delete a user, their data, grants, permissions, audit
    entries and identity account.

    A failing identity provider rolls the whole operation back (502); the
    request can simply be retried.
    """
    try:
        body = UserIdRequest.from_payload(request.get_json(silent=True))
        result = user_service.hard_delete(body.user_id, acting_user_id=g.current_user.id)
    except ValidationError as e:
        return _bad_request(e)
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409
    except IdentityProviderError:
        return jsonify({
            "error": "identity_provider_error",
            "message": "Identity provider failed; nothing was deleted. Retry the request.",
        }), 502

    audit_service.record_action(
        "users",
        AuditAction.USER_HARD_DELETED,
        actor_id=g.current_user.id,
        details=f"user_id={result.user_id} existed={result.existed} "
                + " ".join(f"{k}={v}" for k, v in sorted(result.removed.items())),
    )
    return jsonify({"ok": True, "mode": "hard_delete", "already_deleted": not result.existed})


@users_bp.post("/admin/users/soft-delete")
@require_auth
@require_admin
def soft_delete_user():
    """Deactivate, mask email and drop every grant the user is party to."""
    try:
        body = UserIdRequest.from_payload(request.get_json(silent=True))
        user, purged = user_service.soft_delete(body.user_id, acting_user_id=g.current_user.id)
    except ValidationError as e:
        return _bad_request(e)
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409

    audit_service.record_action(
        "users",
        AuditAction.USER_SOFT_DELETED,
        actor_id=g.current_user.id,
        target_user_id=user.id,
        details=f"grants_purged={purged}",
    )
    return jsonify({"ok": True, "mode": "soft_delete", "grants_purged": purged})


@users_bp.post("/admin/users/set-active")
@require_auth
@require_admin
def set_user_active():
    """
    Toggle is_active.

    Request body:
    - user_id: str (required)
    - is_active: bool (required)

    Deactivation deletes every grant where the user is owner or grantee.
    """
    try:
        body = SetActiveRequest.from_payload(request.get_json(silent=True))
        user, purged = user_service.set_active(
            body.user_id, body.is_active, acting_user_id=g.current_user.id
        )
    except ValidationError as e:
        return _bad_request(e)
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409

    audit_service.record_action(
        "users",
        AuditAction.USER_ACTIVATED if body.is_active else AuditAction.USER_DEACTIVATED,
        actor_id=g.current_user.id,
        target_user_id=user.id,
        details=None if body.is_active else f"grants_purged={purged}",
    )
    return jsonify({"ok": True, "is_active": user.is_active, "grants_purged": purged})


@users_bp.post("/admin/users/reset-password")
@require_auth
@require_admin
def reset_user_password():
    """
    Set a new password for a user.

    Request body:
    - user_id: str (required)
    - new_password: str (required)

    Existing sessions are revoked and the user must change the password
    at next login.
    """
    try:
        body = ResetPasswordRequest.from_payload(request.get_json(silent=True))
        user = user_service.reset_password(body.user_id, body.new_password)
    except (ValidationError, PasswordValidationError) as e:
        return _bad_request(e)
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404

    current_app.logger.info("Password reset for %s by %s", user.id, g.current_user.id)
    audit_service.record_action(
        "users",
        AuditAction.PASSWORD_RESET,
        actor_id=g.current_user.id,
        target_user_id=user.id,
    )
    return jsonify({"ok": True})
