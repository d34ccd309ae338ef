# Overview: Service-layer operations for owner-scoped trades, dividends and the portfolio report.

"""
Portfolio Bookkeeping

Trades and dividends always belong to one owner (user_id). Callers check
effective access before calling in here; these functions only ever filter
by the owner they are given.

Report math follows the average-cost method:
- average buy price = sum(buy price * qty) / sum(buy qty)
- open position value = average buy price * open quantity
- realized profit = sell proceeds - average buy price * sold quantity
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func

from ..extensions import db
from ..models import User, Stock, Trade, Dividend
from ..validation import ConflictError, DividendRequest, TradeRequest, ValidationError
from folio.time_utils import utcnow


CENT = Decimal("0.01")
ZERO = Decimal("0")


def _q(value: Decimal) -> str:
    return format(value.quantize(CENT, rounding=ROUND_HALF_UP), "f")


def _require_owner(owner_id: str) -> User:
    owner = db.session.get(User, owner_id)
    if not owner:
        raise LookupError("Portfolio owner not found")
    return owner


def _require_stock(stock_id: int) -> Stock:
    stock = db.session.get(Stock, stock_id)
    if not stock:
        raise ValidationError("Unknown stock_id")
    return stock


# =============================================================================
# TRADES
# =============================================================================

def list_trades(
    owner_id: str,
    date_from: date | None = None,
    date_to: date | None = None,
    ticker: str | None = None,
) -> list[Trade]:
    _require_owner(owner_id)
    query = db.session.query(Trade).filter(Trade.user_id == owner_id)
    if date_from:
        query = query.filter(Trade.trade_date >= date_from)
    if date_to:
        query = query.filter(Trade.trade_date <= date_to)
    if ticker:
        query = query.join(Stock, Stock.id == Trade.stock_id).filter(Stock.ticker == ticker.upper())
    return query.order_by(Trade.trade_date.desc(), Trade.id.desc()).all()


def open_position(owner_id: str, stock_id: int) -> int:
    """Shares held: bought minus sold."""
    rows = (
        db.session.query(Trade.trade_type, func.coalesce(func.sum(Trade.quantity), 0))
        .filter(Trade.user_id == owner_id, Trade.stock_id == stock_id)
        .group_by(Trade.trade_type)
        .all()
    )
    totals = {trade_type: int(qty) for trade_type, qty in rows}
    return totals.get("BUY", 0) - totals.get("SELL", 0)


def create_trade(owner_id: str, request: TradeRequest) -> Trade:
    _require_owner(owner_id)
    _require_stock(request.stock_id)

    if request.trade_type == "SELL":
        held = open_position(owner_id, request.stock_id)
        if request.quantity > held:
            raise ValidationError(f"Cannot sell {request.quantity}; position is {held}")

    trade = Trade(
        user_id=owner_id,
        stock_id=request.stock_id,
        trade_type=request.trade_type,
        trade_date=request.trade_date,
        quantity=request.quantity,
        price_per_share=request.price_per_share,
        total_amount=request.price_per_share * request.quantity,
        created_at=utcnow(),
    )
    db.session.add(trade)
    db.session.commit()
    return trade


def delete_trade(owner_id: str, trade_id: int) -> dict | None:
    """
    Delete by (owner, id). Returns a snapshot of the removed trade, or None if absent.

    Raises ConflictError when removing a BUY would leave the position below zero.
    """
    trade = db.session.query(Trade).filter_by(id=trade_id, user_id=owner_id).first()
    if not trade:
        return None
    if trade.trade_type == "BUY" and open_position(owner_id, trade.stock_id) - trade.quantity < 0:
        raise ConflictError("Cannot delete a buy that later sells depend on")
    snapshot = trade.to_dict()
    db.session.delete(trade)
    db.session.commit()
    return snapshot


# =============================================================================
# DIVIDENDS
# =============================================================================

def list_dividends(
    owner_id: str,
    date_from: date | None = None,
    date_to: date | None = None,
    ticker: str | None = None,
) -> list[Dividend]:
    _require_owner(owner_id)
    query = db.session.query(Dividend).filter(Dividend.user_id == owner_id)
    if date_from:
        query = query.filter(Dividend.payment_date >= date_from)
    if date_to:
        query = query.filter(Dividend.payment_date <= date_to)
    if ticker:
        query = query.join(Stock, Stock.id == Dividend.stock_id).filter(Stock.ticker == ticker.upper())
    return query.order_by(Dividend.payment_date.desc(), Dividend.id.desc()).all()


def create_dividend(owner_id: str, request: DividendRequest) -> Dividend:
    _require_owner(owner_id)
    _require_stock(request.stock_id)

    dividend = Dividend(
        user_id=owner_id,
        stock_id=request.stock_id,
        payment_date=request.payment_date,
        quantity=request.quantity,
        amount_per_share=request.amount_per_share,
        total_amount=request.amount_per_share * request.quantity,
        created_at=utcnow(),
    )
    db.session.add(dividend)
    db.session.commit()
    return dividend


def delete_dividend(owner_id: str, dividend_id: int) -> dict | None:
    dividend = db.session.query(Dividend).filter_by(id=dividend_id, user_id=owner_id).first()
    if not dividend:
        return None
    snapshot = dividend.to_dict()
    db.session.delete(dividend)
    db.session.commit()
    return snapshot


# =============================================================================
# REPORT
# =============================================================================

@dataclass
class _Position:
    ticker: str
    currency: str
    bought_qty: int = 0
    bought_cost: Decimal = ZERO
    sold_qty: int = 0
    sell_proceeds: Decimal = ZERO
    dividends: Decimal = ZERO

    @property
    def quantity(self) -> int:
        return self.bought_qty - self.sold_qty

    @property
    def avg_buy_price(self) -> Decimal:
        if self.bought_qty == 0:
            return ZERO
        return self.bought_cost / self.bought_qty

    @property
    def position_value(self) -> Decimal:
        if self.quantity <= 0:
            return ZERO
        return self.avg_buy_price * self.quantity

    @property
    def realized_profit(self) -> Decimal:
        return self.sell_proceeds - self.avg_buy_price * self.sold_qty


@dataclass
class _Totals:
    position_value: Decimal = ZERO
    realized_profit: Decimal = ZERO
    dividends: Decimal = ZERO


def _position_for(positions: dict, stock: Stock) -> _Position:
    if stock.id not in positions:
        currency = stock.exchange.currency if stock.exchange else ""
        positions[stock.id] = _Position(ticker=stock.ticker, currency=currency)
    return positions[stock.id]


def build_report(
    owner_id: str,
    include_dividends: bool = True,
    date_from: date | None = None,
    date_to: date | None = None,
    ticker: str | None = None,
) -> dict:
    """
    Portfolio report for one owner.

    include_dividends=False omits the dividend figures entirely (the caller
    may read trades but not dividends).
    """
    _require_owner(owner_id)

    positions: dict[int, _Position] = {}

    for trade in list_trades(owner_id, date_from, date_to, ticker):
        position = _position_for(positions, trade.stock)
        amount = Decimal(trade.price_per_share) * trade.quantity
        if trade.trade_type == "BUY":
            position.bought_qty += trade.quantity
            position.bought_cost += amount
        else:
            position.sold_qty += trade.quantity
            position.sell_proceeds += amount

    if include_dividends:
        for dividend in list_dividends(owner_id, date_from, date_to, ticker):
            position = _position_for(positions, dividend.stock)
            position.dividends += Decimal(dividend.total_amount)

    totals: dict[str, _Totals] = defaultdict(_Totals)
    rows = []
    for position in sorted(positions.values(), key=lambda p: p.ticker):
        row = {
            "ticker": position.ticker,
            "currency": position.currency,
            "quantity": position.quantity,
            "avg_buy_price": _q(position.avg_buy_price),
            "position_value": _q(position.position_value),
            "realized_profit": _q(position.realized_profit),
        }
        bucket = totals[position.currency]
        bucket.position_value += position.position_value
        bucket.realized_profit += position.realized_profit
        if include_dividends:
            row["dividends"] = _q(position.dividends)
            bucket.dividends += position.dividends
        rows.append(row)

    totals_out = {}
    for currency, bucket in sorted(totals.items()):
        entry = {
            "position_value": _q(bucket.position_value),
            "realized_profit": _q(bucket.realized_profit),
        }
        if include_dividends:
            entry["dividends"] = _q(bucket.dividends)
        totals_out[currency] = entry

    return {
        "owner_id": owner_id,
        "positions": rows,
        "totals_by_currency": totals_out,
        "includes_dividends": include_dividends,
    }
