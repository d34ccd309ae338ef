# Overview: Flask API routes for the global stock and exchange dictionaries.

"""
Dictionary routes.

Any active user may list stocks and exchanges. Mutations need write on the
ownerless "dictionaries" resource (admin, can_edit_all,
can_edit_dictionaries, or a write grant on dictionaries).
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_active
from ..permissions import AccessLevel, AuditAction, Resource
from ..services import access_service, audit_service, dictionary_service
from ..services.access_service import AccessDeniedError
from ..services.dictionary_service import DictionaryNotFoundError
from ..validation import ConflictError, ExchangeRequest, StockRequest, ValidationError

dictionaries_bp = Blueprint("dictionaries", __name__, url_prefix="/api")


def _require_dictionary_write():
    access_service.require_access(g.current_user, Resource.DICTIONARIES, None, AccessLevel.WRITE)


def _error_response(e: Exception):
    if isinstance(e, AccessDeniedError):
        return jsonify({"error": "forbidden", "message": str(e)}), 403
    if isinstance(e, DictionaryNotFoundError):
        return jsonify({"error": "not_found", "message": str(e)}), 404
    if isinstance(e, ConflictError):
        return jsonify({"error": "conflict", "message": str(e)}), 409
    return jsonify({"error": "validation_error", "message": str(e)}), 400


# =============================================================================
# EXCHANGES
# =============================================================================

@dictionaries_bp.get("/exchanges")
@require_auth
@require_active
def list_exchanges():
    return jsonify([exchange.to_dict() for exchange in dictionary_service.list_exchanges()])


@dictionaries_bp.post("/exchanges")
@require_auth
@require_active
def create_exchange():
    """Body: {code, name, currency}."""
    try:
        _require_dictionary_write()
        body = ExchangeRequest.from_payload(request.get_json(silent=True))
        exchange = dictionary_service.create_exchange(body)
    except (AccessDeniedError, ValidationError, ConflictError) as e:
        return _error_response(e)

    audit_service.record_action(
        "exchanges", AuditAction.INSERT, actor_id=g.current_user.id, details=f"code={exchange.code}"
    )
    return jsonify({"ok": True, "exchange": exchange.to_dict()}), 201


@dictionaries_bp.put("/exchanges/<int:exchange_id>")
@require_auth
@require_active
def update_exchange(exchange_id):
    try:
        _require_dictionary_write()
        body = ExchangeRequest.from_payload(request.get_json(silent=True))
        exchange = dictionary_service.update_exchange(exchange_id, body)
    except (AccessDeniedError, ValidationError, ConflictError, DictionaryNotFoundError) as e:
        return _error_response(e)

    audit_service.record_action(
        "exchanges", AuditAction.UPDATE, actor_id=g.current_user.id, details=f"code={exchange.code}"
    )
    return jsonify({"ok": True, "exchange": exchange.to_dict()})


@dictionaries_bp.delete("/exchanges/<int:exchange_id>")
@require_auth
@require_active
def delete_exchange(exchange_id):
    try:
        _require_dictionary_write()
        dictionary_service.delete_exchange(exchange_id)
    except (AccessDeniedError, ConflictError, DictionaryNotFoundError) as e:
        return _error_response(e)

    audit_service.record_action(
        "exchanges", AuditAction.DELETE, actor_id=g.current_user.id, details=f"exchange_id={exchange_id}"
    )
    return jsonify({"ok": True})


# =============================================================================
# STOCKS
# =============================================================================

@dictionaries_bp.get("/stocks")
@require_auth
@require_active
def list_stocks():
    """Optional ?exchange_id= filter."""
    exchange_id = request.args.get("exchange_id", type=int)
    return jsonify([stock.to_dict() for stock in dictionary_service.list_stocks(exchange_id)])


@dictionaries_bp.post("/stocks")
@require_auth
@require_active
def create_stock():
    """Body: {ticker, name, exchange_id, isin?, sector?}."""
    try:
        _require_dictionary_write()
        body = StockRequest.from_payload(request.get_json(silent=True))
        stock = dictionary_service.create_stock(body)
    except (AccessDeniedError, ValidationError, ConflictError) as e:
        return _error_response(e)

    audit_service.record_action("stocks", AuditAction.INSERT, actor_id=g.current_user.id, ticker=stock.ticker)
    return jsonify({"ok": True, "stock": stock.to_dict()}), 201


@dictionaries_bp.put("/stocks/<int:stock_id>")
@require_auth
@require_active
def update_stock(stock_id):
    try:
        _require_dictionary_write()
        body = StockRequest.from_payload(request.get_json(silent=True))
        stock = dictionary_service.update_stock(stock_id, body)
    except (AccessDeniedError, ValidationError, ConflictError, DictionaryNotFoundError) as e:
        return _error_response(e)

    audit_service.record_action("stocks", AuditAction.UPDATE, actor_id=g.current_user.id, ticker=stock.ticker)
    return jsonify({"ok": True, "stock": stock.to_dict()})


@dictionaries_bp.delete("/stocks/<int:stock_id>")
@require_auth
@require_active
def delete_stock(stock_id):
    try:
        _require_dictionary_write()
        ticker = dictionary_service.delete_stock(stock_id)
    except (AccessDeniedError, ConflictError, DictionaryNotFoundError) as e:
        return _error_response(e)

    audit_service.record_action("stocks", AuditAction.DELETE, actor_id=g.current_user.id, ticker=ticker)
    return jsonify({"ok": True})
