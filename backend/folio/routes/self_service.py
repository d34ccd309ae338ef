# Overview: Flask API routes a signed-in user calls about their own account.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_active
from ..permissions import AuditAction
from ..services import audit_service, user_service
from ..services.access_service import AccessDeniedError

self_bp = Blueprint("self_service", __name__, url_prefix="/api/self")


@self_bp.get("/status")
@require_auth
@require_active
def status():
    """
    Login-time check.

    403 {"error": "inactive"} for inactive or profile-less callers, so the
    client can sign out; otherwise whether a password change is pending.
    """
    return jsonify({
        "ok": True,
        "must_change_password": bool(g.current_user.must_change_password),
    })


@self_bp.post("/complete-first-login")
@require_auth
@require_active
def complete_first_login():
    """
    Clear must_change_password for the caller.

    An optional body user_id must be the caller's own id (403 otherwise).
    """
    data = request.get_json(silent=True) or {}
    target = data.get("user_id") if isinstance(data, dict) else None

    try:
        user = user_service.complete_first_login(g.current_user, target_user_id=target)
    except AccessDeniedError as e:
        return jsonify({"error": "forbidden", "message": str(e)}), 403

    audit_service.record_action(
        "users",
        AuditAction.FIRST_LOGIN_COMPLETED,
        actor_id=user.id,
        target_user_id=user.id,
    )
    return jsonify({"ok": True})
