# Overview: Service-layer operations for the global stock and exchange dictionaries.

from __future__ import annotations

from ..extensions import db
from ..models import Exchange, Stock, Trade, Dividend
from ..validation import ConflictError, ExchangeRequest, StockRequest, ValidationError


class DictionaryNotFoundError(LookupError):
    pass


# =============================================================================
# EXCHANGES
# =============================================================================

def list_exchanges() -> list[Exchange]:
    return db.session.query(Exchange).order_by(Exchange.code).all()


def get_exchange(exchange_id: int) -> Exchange:
    exchange = db.session.get(Exchange, exchange_id)
    if not exchange:
        raise DictionaryNotFoundError("Exchange not found")
    return exchange


def _check_exchange_code(code: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Exchange).filter(Exchange.code == code)
    if exclude_id is not None:
        query = query.filter(Exchange.id != exclude_id)
    if query.first():
        raise ConflictError(f"Exchange code {code} already exists")


def create_exchange(request: ExchangeRequest) -> Exchange:
    _check_exchange_code(request.code)
    exchange = Exchange(code=request.code, name=request.name, currency=request.currency)
    db.session.add(exchange)
    db.session.commit()
    return exchange


def update_exchange(exchange_id: int, request: ExchangeRequest) -> Exchange:
    exchange = get_exchange(exchange_id)
    _check_exchange_code(request.code, exclude_id=exchange_id)
    exchange.code = request.code
    exchange.name = request.name
    exchange.currency = request.currency
    db.session.commit()
    return exchange


def delete_exchange(exchange_id: int) -> None:
    exchange = get_exchange(exchange_id)
    if db.session.query(Stock).filter_by(exchange_id=exchange_id).first():
        raise ConflictError("Exchange still has listed stocks")
    db.session.delete(exchange)
    db.session.commit()


# =============================================================================
# STOCKS
# =============================================================================

def list_stocks(exchange_id: int | None = None) -> list[Stock]:
    query = db.session.query(Stock)
    if exchange_id is not None:
        query = query.filter(Stock.exchange_id == exchange_id)
    return query.order_by(Stock.ticker).all()


def get_stock(stock_id: int) -> Stock:
    stock = db.session.get(Stock, stock_id)
    if not stock:
        raise DictionaryNotFoundError("Stock not found")
    return stock


def _check_stock(request: StockRequest, exclude_id: int | None = None) -> None:
    if not db.session.get(Exchange, request.exchange_id):
        raise ValidationError("Unknown exchange_id")
    query = db.session.query(Stock).filter(Stock.ticker == request.ticker)
    if exclude_id is not None:
        query = query.filter(Stock.id != exclude_id)
    if query.first():
        raise ConflictError(f"Ticker {request.ticker} already exists")


def create_stock(request: StockRequest) -> Stock:
    _check_stock(request)
    stock = Stock(
        ticker=request.ticker,
        name=request.name,
        isin=request.isin,
        sector=request.sector,
        exchange_id=request.exchange_id,
    )
    db.session.add(stock)
    db.session.commit()
    return stock


def update_stock(stock_id: int, request: StockRequest) -> Stock:
    stock = get_stock(stock_id)
    _check_stock(request, exclude_id=stock_id)
    stock.ticker = request.ticker
    stock.name = request.name
    stock.isin = request.isin
    stock.sector = request.sector
    stock.exchange_id = request.exchange_id
    db.session.commit()
    return stock


def delete_stock(stock_id: int) -> str:
    """Delete an unused stock; returns its ticker."""
    stock = get_stock(stock_id)
    in_use = (
        db.session.query(Trade.id).filter_by(stock_id=stock_id).first()
        or db.session.query(Dividend.id).filter_by(stock_id=stock_id).first()
    )
    if in_use:
        raise ConflictError("Stock is referenced by trades or dividends")
    ticker = stock.ticker
    db.session.delete(stock)
    db.session.commit()
    return ticker
