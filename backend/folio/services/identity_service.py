# Overview: Identity gate; resolves bearer tokens to identities through the configured identity provider.

"""
Identity Gate and Identity Providers

Authentication lives outside the access model. Every protected request
carries "Authorization: Bearer <token>"; the gate asks the identity provider
to verify the token and yields an Identity{id, email}. Nothing is cached
across requests.

The provider is pluggable (app.extensions["identity_provider"]). The bundled
LocalIdentityProvider stores bcrypt password hashes and SHA-256 hashed
session tokens in the application database.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Tokens are 32 random bytes; only their SHA-256 hash is stored
- Absolute session expiry (SESSION_TTL_HOURS)
- Provider methods flush but never commit; callers own the transaction
"""

from __future__ import annotations

import hashlib
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta

import bcrypt
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import IdentityAccount, IdentitySession
from folio.time_utils import utcnow


EXTENSION_KEY = "identity_provider"


class InvalidTokenError(Exception):
    """Missing, malformed or unverifiable bearer credential (401)."""
    pass


class InvalidCredentialsError(Exception):
    """Email/password pair rejected at sign-in."""
    pass


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class IdentityProviderError(Exception):
    """The identity provider call itself failed (upstream error)."""
    pass


@dataclass(frozen=True)
class Identity:
    id: str
    email: str | None


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


# =============================================================================
# PROVIDER INTERFACE
# =============================================================================

class IdentityProvider:
    """Operations the application needs from an identity provider."""

    def create_account(self, email: str, password: str) -> str:
        raise NotImplementedError

    def delete_account(self, account_id: str) -> None:
        """Remove the account. Unknown ids are treated as already removed."""
        raise NotImplementedError

    def verify_token(self, token: str) -> Identity | None:
        raise NotImplementedError

    def update_password(self, account_id: str, new_password: str) -> None:
        raise NotImplementedError

    def revoke_sessions(self, account_id: str, reason: str | None = None) -> int:
        raise NotImplementedError

    def sign_in(self, email: str, password: str) -> tuple[Identity, str]:
        raise NotImplementedError

    def sign_out(self, token: str) -> bool:
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    """Identity provider backed by the identity_accounts/identity_sessions tables."""

    def __init__(self, bcrypt_rounds: int = 12, session_ttl: timedelta = timedelta(hours=24)):
        self.bcrypt_rounds = bcrypt_rounds
        self.session_ttl = session_ttl

    def _hash_password(self, password: str) -> str:
        validate_password_strength(password)
        salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def create_account(self, email: str, password: str) -> str:
        password_hash = self._hash_password(password)
        existing = db.session.query(IdentityAccount).filter_by(email=email).first()
        if existing:
            raise ValueError("An account with this email already exists")

        account = IdentityAccount(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            created_at=utcnow(),
        )
        try:
            db.session.add(account)
            db.session.flush()
        except SQLAlchemyError as exc:
            raise IdentityProviderError("Failed to create identity account") from exc
        return account.id

    def delete_account(self, account_id: str) -> None:
        try:
            db.session.query(IdentitySession).filter_by(account_id=account_id).delete(
                synchronize_session=False
            )
            db.session.query(IdentityAccount).filter_by(id=account_id).delete(
                synchronize_session=False
            )
            db.session.flush()
        except SQLAlchemyError as exc:
            raise IdentityProviderError("Failed to delete identity account") from exc

    def verify_token(self, token: str) -> Identity | None:
        session = db.session.query(IdentitySession).filter_by(
            token_hash=hash_token(token),
            is_revoked=False,
        ).first()
        if not session:
            return None
        if session.expires_at < utcnow():
            return None
        account = session.account
        if not account:
            return None
        return Identity(id=account.id, email=account.email)

    def update_password(self, account_id: str, new_password: str) -> None:
        account = db.session.query(IdentityAccount).filter_by(id=account_id).first()
        if not account:
            raise LookupError("Identity account not found")
        account.password_hash = self._hash_password(new_password)
        account.password_changed_at = utcnow()
        db.session.flush()

    def revoke_sessions(self, account_id: str, reason: str | None = None) -> int:
        sessions = db.session.query(IdentitySession).filter_by(
            account_id=account_id,
            is_revoked=False,
        ).all()
        now = utcnow()
        for session in sessions:
            session.is_revoked = True
            session.revoked_at = now
            session.revoked_reason = reason
        db.session.flush()
        return len(sessions)

    def sign_in(self, email: str, password: str) -> tuple[Identity, str]:
        account = db.session.query(IdentityAccount).filter_by(email=email.strip().lower()).first()
        if not account:
            raise InvalidCredentialsError("Invalid email or password")
        try:
            valid = bcrypt.checkpw(password.encode('utf-8'), account.password_hash.encode('utf-8'))
        except ValueError:
            valid = False
        if not valid:
            raise InvalidCredentialsError("Invalid email or password")

        token = secrets.token_hex(32)
        now = utcnow()
        db.session.add(IdentitySession(
            account_id=account.id,
            token_hash=hash_token(token),
            created_at=now,
            expires_at=now + self.session_ttl,
        ))
        db.session.flush()
        return Identity(id=account.id, email=account.email), token

    def sign_out(self, token: str) -> bool:
        session = db.session.query(IdentitySession).filter_by(
            token_hash=hash_token(token),
            is_revoked=False,
        ).first()
        if not session:
            return False
        session.is_revoked = True
        session.revoked_at = utcnow()
        session.revoked_reason = "Logout"
        db.session.flush()
        return True


# =============================================================================
# GATE
# =============================================================================

def build_provider(config) -> IdentityProvider:
    name = config.get("IDENTITY_PROVIDER", "local")
    if name == "local":
        return LocalIdentityProvider(
            bcrypt_rounds=config.get("BCRYPT_ROUNDS", 12),
            session_ttl=timedelta(hours=config.get("SESSION_TTL_HOURS", 24)),
        )
    raise ValueError(f"Unknown identity provider: {name}")


def get_provider() -> IdentityProvider:
    return current_app.extensions[EXTENSION_KEY]


def extract_bearer_token(auth_header: str | None) -> str:
    if not auth_header or not auth_header.startswith("Bearer "):
        raise InvalidTokenError("No bearer token")
    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise InvalidTokenError("No bearer token")
    return token


def resolve(auth_header: str | None) -> Identity:
    """
    Resolve an Authorization header value to an Identity.

    Raises InvalidTokenError if the header is absent or malformed, or the
    token does not verify against the identity provider.
    """
    token = extract_bearer_token(auth_header)
    identity = get_provider().verify_token(token)
    if identity is None:
        raise InvalidTokenError("Invalid token")
    return identity
