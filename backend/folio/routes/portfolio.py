# Overview: Flask API routes for owner-scoped trades, dividends and the portfolio report.

"""
Portfolio routes.

Every request re-derives the caller's effective access for the owner in the
URL; nothing from an earlier request (or from the dashboard) is trusted.

- read on trades:     list trades, report
- write on trades:    create / delete trades
- read on dividends:  list dividends, dividend figures in the report
- write on dividends: create / delete dividends
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_active
from ..permissions import AccessLevel, AuditAction, Resource
from ..services import access_service, audit_service, portfolio_service
from ..services.access_service import AccessDeniedError
from ..validation import ConflictError, DividendRequest, TradeRequest, ValidationError
from folio.time_utils import parse_iso_date

portfolio_bp = Blueprint("portfolio", __name__, url_prefix="/api/portfolios")


def _forbidden(e: Exception):
    current_app.logger.warning("Portfolio access denied: user=%s path=%s", g.current_user.id, request.path)
    return jsonify({"error": "forbidden", "message": str(e)}), 403


def _filters() -> dict:
    """date_from / date_to / ticker query params; raises ValidationError on bad dates."""
    try:
        date_from = parse_iso_date(request.args.get("date_from"))
        date_to = parse_iso_date(request.args.get("date_to"))
    except ValueError:
        raise ValidationError("date_from/date_to must be ISO-8601 dates")
    return {
        "date_from": date_from,
        "date_to": date_to,
        "ticker": (request.args.get("ticker") or "").strip() or None,
    }


# =============================================================================
# TRADES
# =============================================================================

@portfolio_bp.get("/<owner_id>/trades")
@require_auth
@require_active
def list_trades(owner_id):
    try:
        level = access_service.require_access(g.current_user, Resource.TRADES, owner_id, AccessLevel.READ)
        trades = portfolio_service.list_trades(owner_id, **_filters())
    except AccessDeniedError as e:
        return _forbidden(e)
    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404

    return jsonify({
        "owner_id": owner_id,
        "read_only": level != AccessLevel.WRITE,
        "trades": [trade.to_dict() for trade in trades],
    })


@portfolio_bp.post("/<owner_id>/trades")
@require_auth
@require_active
def create_trade(owner_id):
    """
    Record a BUY or SELL.

    Request body:
    - stock_id: int (required)
    - trade_type: "BUY" | "SELL" (required)
    - trade_date: ISO date (required)
    - quantity: positive int (required)
    - price_per_share: positive number (required)
    """
    try:
        access_service.require_access(g.current_user, Resource.TRADES, owner_id, AccessLevel.WRITE)
        body = TradeRequest.from_payload(request.get_json(silent=True))
        trade = portfolio_service.create_trade(owner_id, body)
    except AccessDeniedError as e:
        return _forbidden(e)
    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404

    audit_service.record_action(
        "trades",
        AuditAction.INSERT,
        actor_id=g.current_user.id,
        target_user_id=owner_id,
        ticker=trade.stock.ticker,
        details=f"{trade.trade_type} {trade.quantity} @ {trade.price_per_share}",
    )
    return jsonify({"ok": True, "trade": trade.to_dict()}), 201


@portfolio_bp.delete("/<owner_id>/trades/<int:trade_id>")
@require_auth
@require_active
def delete_trade(owner_id, trade_id):
    try:
        access_service.require_access(g.current_user, Resource.TRADES, owner_id, AccessLevel.WRITE)
    except AccessDeniedError as e:
        return _forbidden(e)

    try:
        removed = portfolio_service.delete_trade(owner_id, trade_id)
    except ConflictError as e:
        return jsonify({"error": "conflict", "message": str(e)}), 409
    if removed is None:
        return jsonify({"error": "not_found", "message": "Trade not found"}), 404

    audit_service.record_action(
        "trades",
        AuditAction.DELETE,
        actor_id=g.current_user.id,
        target_user_id=owner_id,
        ticker=removed["ticker"],
        details=f"trade_id={trade_id}",
    )
    return jsonify({"ok": True})


# =============================================================================
# DIVIDENDS
# =============================================================================

@portfolio_bp.get("/<owner_id>/dividends")
@require_auth
@require_active
def list_dividends(owner_id):
    try:
        level = access_service.require_access(g.current_user, Resource.DIVIDENDS, owner_id, AccessLevel.READ)
        dividends = portfolio_service.list_dividends(owner_id, **_filters())
    except AccessDeniedError as e:
        return _forbidden(e)
    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404

    return jsonify({
        "owner_id": owner_id,
        "read_only": level != AccessLevel.WRITE,
        "dividends": [dividend.to_dict() for dividend in dividends],
    })


@portfolio_bp.post("/<owner_id>/dividends")
@require_auth
@require_active
def create_dividend(owner_id):
    try:
        access_service.require_access(g.current_user, Resource.DIVIDENDS, owner_id, AccessLevel.WRITE)
        body = DividendRequest.from_payload(request.get_json(silent=True))
        dividend = portfolio_service.create_dividend(owner_id, body)
    except AccessDeniedError as e:
        return _forbidden(e)
    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404

    audit_service.record_action(
        "dividends",
        AuditAction.INSERT,
        actor_id=g.current_user.id,
        target_user_id=owner_id,
        ticker=dividend.stock.ticker,
        details=f"{dividend.quantity} x {dividend.amount_per_share}",
    )
    return jsonify({"ok": True, "dividend": dividend.to_dict()}), 201


@portfolio_bp.delete("/<owner_id>/dividends/<int:dividend_id>")
@require_auth
@require_active
def delete_dividend(owner_id, dividend_id):
    try:
        access_service.require_access(g.current_user, Resource.DIVIDENDS, owner_id, AccessLevel.WRITE)
    except AccessDeniedError as e:
        return _forbidden(e)

    removed = portfolio_service.delete_dividend(owner_id, dividend_id)
    if removed is None:
        return jsonify({"error": "not_found", "message": "Dividend not found"}), 404

    audit_service.record_action(
        "dividends",
        AuditAction.DELETE,
        actor_id=g.current_user.id,
        target_user_id=owner_id,
        ticker=removed["ticker"],
        details=f"dividend_id={dividend_id}",
    )
    return jsonify({"ok": True})


# =============================================================================
# REPORT
# =============================================================================

@portfolio_bp.get("/<owner_id>/report")
@require_auth
@require_active
def report(owner_id):
    """
    Positions, average buy price, realized profit and dividends per ticker.

    Requires read on trades. Dividend figures are included only when the
    caller can also read dividends.
    """
    try:
        access_service.require_access(g.current_user, Resource.TRADES, owner_id, AccessLevel.READ)
        include_dividends = access_service.can_read(g.current_user, Resource.DIVIDENDS, owner_id)
        data = portfolio_service.build_report(
            owner_id, include_dividends=include_dividends, **_filters()
        )
    except AccessDeniedError as e:
        return _forbidden(e)
    except ValidationError as e:
        return jsonify({"error": "validation_error", "message": str(e)}), 400
    except LookupError as e:
        return jsonify({"error": "not_found", "message": str(e)}), 404

    return jsonify(data)
