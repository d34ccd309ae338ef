"""
Effective access tests.

Verifies:
- Admin and own-data short circuits always yield write
- Global flags (can_edit_all, can_edit_dictionaries, can_view_all)
- Point grants per (resource, owner), with NULL owner matched exactly
- Deactivation removes access derived from grants
"""

import pytest

from folio.models import Grant
from folio.permissions import AccessLevel, Resource
from folio.services import access_service, grant_service, user_service
from folio.services.access_service import AccessDeniedError, effective_access


def set_flags(user, **flags):
    values = {"can_view_all": False, "can_edit_all": False, "can_edit_dictionaries": False}
    values.update(flags)
    grant_service.upsert_global_permission(user.id, **values)


class TestShortCircuits:

    @pytest.mark.parametrize("resource", [Resource.TRADES, Resource.DIVIDENDS])
    def test_admin_has_write_everywhere(self, admin, alice, resource):
        assert effective_access(admin, resource, alice.id) == AccessLevel.WRITE

    def test_admin_has_write_on_dictionaries(self, admin):
        assert effective_access(admin, Resource.DICTIONARIES, None) == AccessLevel.WRITE

    @pytest.mark.parametrize("resource", [Resource.TRADES, Resource.DIVIDENDS])
    def test_owner_has_write_on_own_data(self, alice, resource):
        assert effective_access(alice, resource, alice.id) == AccessLevel.WRITE

    def test_admin_is_not_downgraded_by_read_grant(self, admin, alice, grant):
        grant(Resource.TRADES, alice, admin, "read")
        assert effective_access(admin, Resource.TRADES, alice.id) == AccessLevel.WRITE

    def test_stranger_has_no_access(self, alice, bob):
        assert effective_access(bob, Resource.TRADES, alice.id) == AccessLevel.NONE
        assert effective_access(bob, Resource.DICTIONARIES, None) == AccessLevel.NONE


class TestGlobalPermissions:

    def test_view_all_gives_read_to_any_owner(self, alice, bob, carol):
        set_flags(alice, can_view_all=True)
        assert effective_access(alice, Resource.TRADES, bob.id) == AccessLevel.READ
        assert effective_access(alice, Resource.TRADES, carol.id) == AccessLevel.READ
        assert effective_access(alice, Resource.DIVIDENDS, bob.id) == AccessLevel.READ

    def test_edit_all_gives_write(self, alice, bob):
        set_flags(alice, can_edit_all=True)
        assert effective_access(alice, Resource.DIVIDENDS, bob.id) == AccessLevel.WRITE
        assert effective_access(alice, Resource.DICTIONARIES, None) == AccessLevel.WRITE

    def test_edit_dictionaries_only_covers_dictionaries(self, alice, bob):
        set_flags(alice, can_edit_dictionaries=True)
        assert effective_access(alice, Resource.DICTIONARIES, None) == AccessLevel.WRITE
        assert effective_access(alice, Resource.TRADES, bob.id) == AccessLevel.NONE

    def test_view_all_is_upgraded_by_write_flag_not_grant(self, alice, bob, grant):
        # can_view_all matches before grants are consulted
        set_flags(alice, can_view_all=True)
        grant(Resource.TRADES, bob, alice, "write")
        assert effective_access(alice, Resource.TRADES, bob.id) == AccessLevel.READ


class TestGrants:

    def test_read_grant(self, alice, bob, grant):
        grant(Resource.TRADES, bob, alice, "read")
        assert effective_access(alice, Resource.TRADES, bob.id) == AccessLevel.READ
        assert access_service.can_read(alice, Resource.TRADES, bob.id)
        assert not access_service.can_write(alice, Resource.TRADES, bob.id)

    def test_write_wins_over_read(self, alice, bob, grant):
        grant(Resource.TRADES, bob, alice, "read")
        grant(Resource.TRADES, bob, alice, "write")
        assert effective_access(alice, Resource.TRADES, bob.id) == AccessLevel.WRITE

    def test_grant_is_scoped_to_owner(self, alice, bob, carol, grant):
        grant(Resource.TRADES, bob, alice, "write")
        assert effective_access(alice, Resource.TRADES, carol.id) == AccessLevel.NONE

    def test_dictionary_grant_matches_null_owner(self, alice, grant):
        grant(Resource.DICTIONARIES, None, alice, "write")
        assert effective_access(alice, Resource.DICTIONARIES, None) == AccessLevel.WRITE

    def test_require_access_raises_and_returns_level(self, alice, bob, grant):
        grant(Resource.DIVIDENDS, bob, alice, "read")
        level = access_service.require_access(alice, Resource.DIVIDENDS, bob.id, AccessLevel.READ)
        assert level == AccessLevel.READ
        with pytest.raises(AccessDeniedError):
            access_service.require_access(alice, Resource.DIVIDENDS, bob.id, AccessLevel.WRITE)


class TestScenarios:

    def test_view_all_without_edit_is_read(self, alice, bob, carol):
        set_flags(alice, can_view_all=True, can_edit_all=False)
        for other in (bob, carol):
            assert effective_access(alice, Resource.TRADES, other.id) == AccessLevel.READ

    def test_dividend_write_grant_does_not_leak_to_trades(self, alice, bob, grant):
        grant(Resource.DIVIDENDS, bob, alice, "write")
        assert effective_access(alice, Resource.DIVIDENDS, bob.id) == AccessLevel.WRITE
        assert effective_access(alice, Resource.TRADES, bob.id) == AccessLevel.NONE

    def test_deactivating_owner_revokes_grantee_access(self, db_session, admin, alice, bob, grant):
        grant(Resource.TRADES, bob, alice, "read")
        assert effective_access(alice, Resource.TRADES, bob.id) == AccessLevel.READ

        user_service.set_active(bob.id, False, acting_user_id=admin.id)

        assert effective_access(alice, Resource.TRADES, bob.id) == AccessLevel.NONE
        remaining = db_session.query(Grant).filter(
            (Grant.owner_id == bob.id) | (Grant.grantee_id == bob.id)
        ).count()
        assert remaining == 0
