"""
Identity gate and local identity provider tests.
"""

from datetime import timedelta

import pytest

from folio.models import IdentitySession
from folio.services import identity_service
from folio.services.identity_service import (
    InvalidCredentialsError,
    InvalidTokenError,
    PasswordValidationError,
    validate_password_strength,
)
from folio.time_utils import utcnow


class TestPasswordStrength:

    @pytest.mark.parametrize("password", ["Short1", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    def test_rejects_weak(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_accepts_strong(self):
        validate_password_strength("Password123")


class TestResolve:

    def test_resolves_valid_token(self, app, db_session, alice):
        _, token = identity_service.get_provider().sign_in(alice.email, "Password123")
        db_session.commit()

        identity = identity_service.resolve(f"Bearer {token}")

        assert identity.id == alice.id
        assert identity.email == alice.email

    @pytest.mark.parametrize("header", [None, "", "Bearer ", "Token abc", "Bearer unknown"])
    def test_rejects_bad_headers(self, app, db_session, header):
        with pytest.raises(InvalidTokenError):
            identity_service.resolve(header)

    def test_expired_token(self, db_session, alice):
        _, token = identity_service.get_provider().sign_in(alice.email, "Password123")
        session = db_session.query(IdentitySession).filter_by(token_hash=identity_service.hash_token(token)).one()
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        with pytest.raises(InvalidTokenError):
            identity_service.resolve(f"Bearer {token}")

    def test_only_hash_is_stored(self, db_session, alice):
        _, token = identity_service.get_provider().sign_in(alice.email, "Password123")
        db_session.commit()
        assert db_session.query(IdentitySession).filter_by(token_hash=token).count() == 0


class TestLocalProvider:

    def test_sign_in_wrong_password(self, alice):
        with pytest.raises(InvalidCredentialsError):
            identity_service.get_provider().sign_in(alice.email, "Nope12345")

    def test_delete_unknown_account_is_noop(self, db_session):
        identity_service.get_provider().delete_account("does-not-exist")
        db_session.commit()

    def test_duplicate_account(self, alice):
        with pytest.raises(ValueError):
            identity_service.get_provider().create_account(alice.email, "Password123")

    def test_unknown_provider_name(self):
        with pytest.raises(ValueError):
            identity_service.build_provider({"IDENTITY_PROVIDER": "ldap"})
