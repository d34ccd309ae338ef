"""
Dashboard view model tests.

Verifies:
- Reachable portfolios: admin sees everyone, others see self + grant owners
- Tab visibility and read-only state per effective access
- Unreachable owner_id is rejected
"""

from folio.services import dashboard_service, grant_service


def tabs_by_key(view):
    return {tab["key"]: tab["read_only"] for tab in view["tabs"]}


class TestReachablePortfolios:

    def test_admin_reaches_everyone_self_first(self, admin, alice, bob):
        ids = [u.id for u in dashboard_service.reachable_portfolios(admin)]
        assert ids[0] == admin.id
        assert set(ids) == {admin.id, alice.id, bob.id}

    def test_user_reaches_grant_owners_once(self, alice, bob, carol, grant):
        grant("trades", bob, alice, "read")
        grant("dividends", bob, alice, "write")

        ids = [u.id for u in dashboard_service.reachable_portfolios(alice)]

        assert ids == [alice.id, bob.id]
        assert carol.id not in ids

    def test_dictionary_grant_adds_no_portfolio(self, alice, grant):
        grant("dictionaries", None, alice, "write")
        assert [u.id for u in dashboard_service.reachable_portfolios(alice)] == [alice.id]


class TestVisibleTabs:

    def test_own_portfolio_all_tabs_dictionaries_read_only(self, alice):
        view = dashboard_service.build_dashboard(alice)

        assert view["active_owner_id"] == alice.id
        tabs = tabs_by_key(view)
        assert list(tabs) == ["buy", "sell", "dividends", "stocks", "exchanges", "report"]
        assert tabs["buy"] is False
        assert tabs["stocks"] is True and tabs["exchanges"] is True

    def test_dictionary_editor_gets_writable_dictionary_tabs(self, alice):
        grant_service.upsert_global_permission(
            alice.id, can_view_all=False, can_edit_all=False, can_edit_dictionaries=True
        )
        tabs = tabs_by_key(dashboard_service.build_dashboard(alice))
        assert tabs["stocks"] is False

    def test_read_grant_on_trades_only(self, alice, bob, grant):
        grant("trades", bob, alice, "read")

        tabs = tabs_by_key(dashboard_service.build_dashboard(alice, bob.id))

        assert tabs == {"buy": True, "sell": True, "report": True}

    def test_write_grant_on_dividends_only(self, alice, bob, grant):
        grant("dividends", bob, alice, "write")

        tabs = tabs_by_key(dashboard_service.build_dashboard(alice, bob.id))

        assert tabs == {"dividends": False}

    def test_admin_viewing_other_sees_everything_writable(self, admin, bob):
        tabs = tabs_by_key(dashboard_service.build_dashboard(admin, bob.id))
        assert len(tabs) == 6
        assert not any(tabs.values())


class TestDashboardRoute:

    def test_default_owner(self, client, alice, alice_headers):
        resp = client.get("/api/dashboard", headers=alice_headers)

        assert resp.status_code == 200
        assert resp.json["active_owner_id"] == alice.id
        assert resp.json["portfolios"] == [{"id": alice.id, "label": "Alice", "is_self": True}]

    def test_unreachable_owner(self, client, alice_headers, bob):
        resp = client.get(f"/api/dashboard?owner_id={bob.id}", headers=alice_headers)
        assert resp.status_code == 403

    def test_reachable_after_grant(self, client, alice, alice_headers, bob, grant):
        grant("trades", bob, alice, "write")

        resp = client.get(f"/api/dashboard?owner_id={bob.id}", headers=alice_headers)

        assert resp.status_code == 200
        assert tabs_by_key(resp.json) == {"buy": False, "sell": False, "report": False}

    def test_grant_revocation_takes_effect_next_request(self, client, alice, alice_headers, bob, grant):
        grant("trades", bob, alice, "read")
        assert client.get(f"/api/dashboard?owner_id={bob.id}", headers=alice_headers).status_code == 200

        grant_service.delete_grant("trades", bob.id, alice.id, "read")

        assert client.get(f"/api/dashboard?owner_id={bob.id}", headers=alice_headers).status_code == 403
