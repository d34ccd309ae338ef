from __future__ import annotations

from ..extensions import db
from folio.time_utils import to_utc_z


def _money(value) -> str | None:
    return None if value is None else format(value, "f")


class Exchange(db.Model):
    """Stock exchange reference data (global, ownerless)."""
    __tablename__ = "exchanges"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), nullable=False, unique=True, index=True)
    name = db.Column(db.String(128), nullable=False)
    currency = db.Column(db.String(8), nullable=False, default="KZT")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "currency": self.currency,
        }


class Stock(db.Model):
    """Listed security reference data (global, ownerless)."""
    __tablename__ = "stocks"

    id = db.Column(db.Integer, primary_key=True)
    ticker = db.Column(db.String(32), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    isin = db.Column(db.String(12), nullable=True)
    sector = db.Column(db.String(128), nullable=True)
    exchange_id = db.Column(db.Integer, db.ForeignKey("exchanges.id"), nullable=False, index=True)

    exchange = db.relationship("Exchange", backref=db.backref("stocks", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticker": self.ticker,
            "name": self.name,
            "isin": self.isin,
            "sector": self.sector,
            "exchange_id": self.exchange_id,
        }


class Trade(db.Model):
    """
    A BUY or SELL of one stock in one user's portfolio.

    total_amount is always price_per_share * quantity, computed server-side.
    """
    __tablename__ = "trades"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_trades_quantity_positive"),
        db.Index("ix_trades_user_date", "user_id", "trade_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    stock_id = db.Column(db.Integer, db.ForeignKey("stocks.id"), nullable=False, index=True)
    trade_type = db.Column(db.String(4), nullable=False)  # BUY, SELL
    trade_date = db.Column(db.Date, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_per_share = db.Column(db.Numeric(18, 6), nullable=False)
    total_amount = db.Column(db.Numeric(18, 6), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    stock = db.relationship("Stock")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "stock_id": self.stock_id,
            "ticker": self.stock.ticker if self.stock else None,
            "trade_type": self.trade_type,
            "trade_date": self.trade_date.isoformat(),
            "quantity": self.quantity,
            "price_per_share": _money(self.price_per_share),
            "total_amount": _money(self.total_amount),
            "created_at": to_utc_z(self.created_at),
        }


class Dividend(db.Model):
    """A dividend payment received on a holding."""
    __tablename__ = "dividends"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_dividends_quantity_positive"),
        db.Index("ix_dividends_user_date", "user_id", "payment_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    stock_id = db.Column(db.Integer, db.ForeignKey("stocks.id"), nullable=False, index=True)
    payment_date = db.Column(db.Date, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    amount_per_share = db.Column(db.Numeric(18, 6), nullable=False)
    total_amount = db.Column(db.Numeric(18, 6), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    stock = db.relationship("Stock")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "stock_id": self.stock_id,
            "ticker": self.stock.ticker if self.stock else None,
            "payment_date": self.payment_date.isoformat(),
            "quantity": self.quantity,
            "amount_per_share": _money(self.amount_per_share),
            "total_amount": _money(self.total_amount),
            "created_at": to_utc_z(self.created_at),
        }
