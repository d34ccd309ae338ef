# Overview: Flask API route for the dashboard view model.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_active
from ..services import dashboard_service
from ..services.access_service import AccessDeniedError

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")


@dashboard_bp.get("/dashboard")
@require_auth
@require_active
def dashboard():
    """
    Reachable portfolios and the tabs visible for the selected one.

    Query params:
    - owner_id: portfolio to show (defaults to the caller's own)

    Returns 403 when owner_id is not among the caller's reachable portfolios.
    """
    owner_id = request.args.get("owner_id") or None
    try:
        view = dashboard_service.build_dashboard(g.current_user, owner_id)
    except AccessDeniedError as e:
        return jsonify({"error": "forbidden", "message": str(e)}), 403
    return jsonify(view)
