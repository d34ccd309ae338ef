# Overview: Flask API routes for global permissions and point grants; admin only.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..permissions import AuditAction, GLOBAL_PERMISSION_FLAGS
from ..services import audit_service, grant_service, user_service
from ..services.grant_service import InactiveUserError
from ..validation import GrantRequest, PermissionRequest, ValidationError

permissions_bp = Blueprint("permissions", __name__, url_prefix="/api")


def _grant_details(body: GrantRequest) -> str:
    return f"{body.resource}:{body.mode} owner={body.owner_id} grantee={body.grantee_id}"


@permissions_bp.get("/permissions")
@require_auth
@require_admin
def list_permissions():
    """Everything the admin permission screens need in one round trip."""
    return jsonify({
        "user_permissions": [p.to_dict() for p in grant_service.list_all_permissions()],
        "user_grants": [grant.to_dict() for grant in grant_service.list_all_grants()],
        "users": [user.to_dict() for user in user_service.list_users()],
    })


@permissions_bp.post("/permissions")
@require_auth
@require_admin
def upsert_permissions():
    """
    Set a user's global flags (and optionally is_admin).

    Request body:
    - user_id: str (required)
    - can_view_all, can_edit_all, can_edit_dictionaries, is_admin: bool (optional)

    Omitted flags keep their stored values. Inactive targets are rejected (403).
    """
    try:
        body = PermissionRequest.from_payload(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400

    current = grant_service.get_global_permission(body.user_id)
    merged = {}
    for flag in GLOBAL_PERMISSION_FLAGS:
        requested = getattr(body, flag)
        if requested is None:
            requested = bool(getattr(current, flag)) if current is not None else False
        merged[flag] = requested

    if body.is_admin is False and body.user_id == g.current_user.id:
        return jsonify({"error": "conflict", "message": "Cannot revoke your own admin flag"}), 409

    try:
        permission = grant_service.upsert_global_permission(
            body.user_id, is_admin=body.is_admin, **merged
        )
    except InactiveUserError as e:
        return jsonify({"error": "inactive_user", "message": str(e)}), 403
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404

    details = " ".join(f"{flag}={value}" for flag, value in merged.items())
    if body.is_admin is not None:
        details += f" is_admin={body.is_admin}"
    audit_service.record_action(
        "user_permissions",
        AuditAction.PERMISSIONS_UPDATED,
        actor_id=g.current_user.id,
        target_user_id=body.user_id,
        details=details,
    )
    return jsonify({"ok": True, "permission": permission.to_dict()})


@permissions_bp.post("/grant")
@require_auth
@require_admin
def upsert_grant():
    """
    Grant {resource, owner_id?, grantee_id, mode}.

    Idempotent. 403 when the owner or grantee is inactive.
    """
    try:
        body = GrantRequest.from_payload(request.get_json(silent=True))
        grant = grant_service.upsert_grant(body.resource, body.owner_id, body.grantee_id, body.mode)
    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except InactiveUserError as e:
        return jsonify({"error": "inactive_user", "message": str(e)}), 403
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404

    audit_service.record_action(
        "user_grants",
        AuditAction.GRANT_UPSERTED,
        actor_id=g.current_user.id,
        target_user_id=body.grantee_id,
        details=_grant_details(body),
    )
    return jsonify({"ok": True, "grant": grant.to_dict()})


@permissions_bp.delete("/grant")
@require_auth
@require_admin
def delete_grant():
    """Delete the exact tuple; a missing tuple is not an error."""
    try:
        body = GrantRequest.from_payload(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400

    deleted = grant_service.delete_grant(body.resource, body.owner_id, body.grantee_id, body.mode)

    if deleted:
        audit_service.record_action(
            "user_grants",
            AuditAction.GRANT_DELETED,
            actor_id=g.current_user.id,
            target_user_id=body.grantee_id,
            details=_grant_details(body),
        )
    return jsonify({"ok": True, "deleted": deleted})
