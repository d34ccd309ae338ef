# Overview: Flask API route for the admin audit feed.

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_admin
from ..services import audit_service

audit_bp = Blueprint("audit", __name__, url_prefix="/api")


@audit_bp.get("/audit")
@require_auth
@require_admin
def list_audit():
    """
    Recent audit records, newest first.

    Query params:
    - limit: clamped to [1, AUDIT_MAX_LIMIT]; default AUDIT_DEFAULT_LIMIT
    - table: exact table_name filter
    - user_id: matches actor or target
    """
    limit = audit_service.clamp_limit(request.args.get("limit"))
    records = audit_service.list_recent(
        limit,
        table_name=request.args.get("table") or None,
        user_id=request.args.get("user_id") or None,
    )
    return jsonify([record.to_dict() for record in records])
