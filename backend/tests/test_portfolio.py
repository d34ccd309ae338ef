"""
Portfolio data tests: trades, dividends and the report, gated by effective access.
"""

from datetime import date
from decimal import Decimal

import pytest

from folio.models import AuditRecord, Trade
from folio.services import portfolio_service
from folio.validation import TradeRequest, ValidationError


def trade_body(stock, trade_type="BUY", quantity=10, price="100.50", on="2024-02-01"):
    return {
        "stock_id": stock.id,
        "trade_type": trade_type,
        "trade_date": on,
        "quantity": quantity,
        "price_per_share": price,
    }


class TestReport:

    def test_average_cost_and_realized_profit(self, alice, stock, add_trade, add_dividend):
        add_trade(alice, stock, "BUY", 10, "100")
        add_trade(alice, stock, "BUY", 10, "200")
        add_trade(alice, stock, "SELL", 5, "300")
        add_dividend(alice, stock, 15, "2.5")

        report = portfolio_service.build_report(alice.id)

        position = report["positions"][0]
        assert position["ticker"] == "KZTO"
        assert position["currency"] == "KZT"
        assert position["quantity"] == 15
        assert position["avg_buy_price"] == "150.00"
        assert position["position_value"] == "2250.00"
        # 5 * 300 - 5 * 150
        assert position["realized_profit"] == "750.00"
        assert position["dividends"] == "37.50"
        assert report["totals_by_currency"]["KZT"]["dividends"] == "37.50"

    def test_without_dividends(self, alice, stock, add_trade, add_dividend):
        add_trade(alice, stock, "BUY", 1, "10")
        add_dividend(alice, stock, 1, "1")

        report = portfolio_service.build_report(alice.id, include_dividends=False)

        assert report["includes_dividends"] is False
        assert "dividends" not in report["positions"][0]
        assert "dividends" not in report["totals_by_currency"]["KZT"]

    def test_date_filter(self, alice, stock, add_trade):
        add_trade(alice, stock, "BUY", 1, "10", on=date(2023, 1, 1))
        add_trade(alice, stock, "BUY", 3, "20", on=date(2024, 1, 1))

        report = portfolio_service.build_report(alice.id, date_from=date(2023, 6, 1))

        assert report["positions"][0]["quantity"] == 3

    def test_empty_portfolio(self, alice):
        report = portfolio_service.build_report(alice.id)
        assert report["positions"] == []
        assert report["totals_by_currency"] == {}


class TestTradeService:

    def test_cannot_oversell(self, alice, stock, add_trade):
        add_trade(alice, stock, "BUY", 2, "10")
        body = TradeRequest.from_payload(trade_body(stock, "SELL", quantity=3))

        with pytest.raises(ValidationError):
            portfolio_service.create_trade(alice.id, body)

    def test_total_amount_computed(self, alice, stock):
        trade = portfolio_service.create_trade(alice.id, TradeRequest.from_payload(trade_body(stock, quantity=4)))
        assert Decimal(trade.to_dict()["total_amount"]) == Decimal("402")

    @pytest.mark.parametrize("field,value", [
        ("quantity", 0), ("quantity", "1.5"), ("price_per_share", "-1"),
        ("trade_type", "HOLD"), ("trade_date", "yesterday"),
    ])
    def test_request_validation(self, stock, field, value):
        body = trade_body(stock)
        body[field] = value
        with pytest.raises(ValidationError):
            TradeRequest.from_payload(body)


class TestTradeRoutes:

    def test_owner_creates_and_lists(self, client, db_session, alice, alice_headers, stock):
        resp = client.post(f"/api/portfolios/{alice.id}/trades", json=trade_body(stock), headers=alice_headers)
        assert resp.status_code == 201

        resp = client.get(f"/api/portfolios/{alice.id}/trades", headers=alice_headers)
        assert resp.status_code == 200
        assert resp.json["read_only"] is False
        assert len(resp.json["trades"]) == 1

        record = db_session.query(AuditRecord).filter_by(table_name="trades").one()
        assert record.action == "INSERT"
        assert record.ticker == "KZTO"

    def test_stranger_denied(self, client, alice, bob_headers, stock):
        assert client.get(f"/api/portfolios/{alice.id}/trades", headers=bob_headers).status_code == 403
        resp = client.post(f"/api/portfolios/{alice.id}/trades", json=trade_body(stock), headers=bob_headers)
        assert resp.status_code == 403

    def test_read_grant_cannot_write(self, client, alice, bob, bob_headers, stock, grant):
        grant("trades", alice, bob, "read")

        resp = client.get(f"/api/portfolios/{alice.id}/trades", headers=bob_headers)
        assert resp.status_code == 200
        assert resp.json["read_only"] is True

        resp = client.post(f"/api/portfolios/{alice.id}/trades", json=trade_body(stock), headers=bob_headers)
        assert resp.status_code == 403

    def test_write_grant_can_write_for_owner(self, client, db_session, alice, bob, bob_headers, stock, grant):
        grant("trades", alice, bob, "write")

        resp = client.post(f"/api/portfolios/{alice.id}/trades", json=trade_body(stock), headers=bob_headers)

        assert resp.status_code == 201
        assert resp.json["trade"]["user_id"] == alice.id
        record = db_session.query(AuditRecord).filter_by(table_name="trades").one()
        assert record.actor_id == bob.id and record.target_user_id == alice.id

    def test_delete_is_owner_scoped(self, client, db_session, alice, bob, alice_headers, stock, add_trade):
        bobs = add_trade(bob, stock, "BUY", 1, "10")

        resp = client.delete(f"/api/portfolios/{alice.id}/trades/{bobs.id}", headers=alice_headers)

        assert resp.status_code == 404
        assert db_session.query(Trade).count() == 1

    def test_delete_own(self, client, db_session, alice, alice_headers, stock, add_trade):
        mine = add_trade(alice, stock, "BUY", 1, "10")

        resp = client.delete(f"/api/portfolios/{alice.id}/trades/{mine.id}", headers=alice_headers)

        assert resp.status_code == 200
        db_session.expire_all()
        assert db_session.query(Trade).count() == 0

    def test_cannot_delete_buy_backing_a_sell(self, client, db_session, alice, alice_headers, stock, add_trade):
        buy = add_trade(alice, stock, "BUY", 10, "100")
        add_trade(alice, stock, "SELL", 10, "120")
        buy_id = buy.id

        resp = client.delete(f"/api/portfolios/{alice.id}/trades/{buy_id}", headers=alice_headers)

        assert resp.status_code == 409
        assert resp.json["error"] == "conflict"
        db_session.expire_all()
        assert db_session.query(Trade).count() == 2
        assert portfolio_service.open_position(alice.id, stock.id) == 0

    def test_can_delete_buy_not_needed_by_sells(self, client, db_session, alice, alice_headers, stock, add_trade):
        add_trade(alice, stock, "BUY", 10, "100")
        extra = add_trade(alice, stock, "BUY", 5, "110")
        add_trade(alice, stock, "SELL", 10, "120")

        resp = client.delete(f"/api/portfolios/{alice.id}/trades/{extra.id}", headers=alice_headers)

        assert resp.status_code == 200
        assert portfolio_service.open_position(alice.id, stock.id) == 0

    @pytest.mark.parametrize("path", ["trades", "dividends", "report"])
    def test_unknown_owner_is_404(self, client, admin_headers, path):
        resp = client.get(f"/api/portfolios/no-such-user/{path}", headers=admin_headers)
        assert resp.status_code == 404

    def test_inactive_caller_blocked(self, client, db_session, alice, alice_headers):
        alice.is_active = False
        db_session.commit()
        assert client.get(f"/api/portfolios/{alice.id}/trades", headers=alice_headers).status_code == 403


class TestDividendAndReportRoutes:

    def test_dividend_write_grant(self, client, alice, bob, bob_headers, stock, grant):
        grant("dividends", alice, bob, "write")

        resp = client.post(f"/api/portfolios/{alice.id}/dividends", json={
            "stock_id": stock.id, "payment_date": "2024-05-01", "quantity": 10, "amount_per_share": "3",
        }, headers=bob_headers)
        assert resp.status_code == 201

        # No trades access from a dividends grant
        assert client.get(f"/api/portfolios/{alice.id}/trades", headers=bob_headers).status_code == 403

    def test_report_hides_dividends_without_access(
        self, client, alice, bob, bob_headers, stock, add_trade, add_dividend, grant
    ):
        add_trade(alice, stock, "BUY", 10, "5")
        add_dividend(alice, stock, 10, "1")
        grant("trades", alice, bob, "read")

        resp = client.get(f"/api/portfolios/{alice.id}/report", headers=bob_headers)

        assert resp.status_code == 200
        assert resp.json["includes_dividends"] is False

    def test_report_with_dividend_access(
        self, client, alice, bob, bob_headers, stock, add_trade, add_dividend, grant
    ):
        add_trade(alice, stock, "BUY", 10, "5")
        add_dividend(alice, stock, 10, "1")
        grant("trades", alice, bob, "read")
        grant("dividends", alice, bob, "read")

        resp = client.get(f"/api/portfolios/{alice.id}/report", headers=bob_headers)

        assert resp.json["positions"][0]["dividends"] == "10.00"

    def test_report_bad_date(self, client, alice, alice_headers):
        resp = client.get(f"/api/portfolios/{alice.id}/report?date_from=nope", headers=alice_headers)
        assert resp.status_code == 400
