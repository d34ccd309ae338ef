from __future__ import annotations

from ..extensions import db
from folio.time_utils import to_utc_z


class IdentityAccount(db.Model):
    """
    Credential store of the bundled local identity provider.

    Kept apart from User on purpose: the profile/role row and the credential
    row are created and removed together by user_service, never one alone.
    """
    __tablename__ = "identity_accounts"

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    password_changed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }


class IdentitySession(db.Model):
    """
    Bearer token issued by the local identity provider.

    SECURITY NOTES:
    - Only the SHA-256 hash of the token is stored
    - Absolute expiry, revocable on logout, password reset and deactivation
    """
    __tablename__ = "identity_sessions"
    __table_args__ = (
        db.Index("ix_identity_sessions_account_active", "account_id", "is_revoked"),
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.String(64), db.ForeignKey("identity_accounts.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    account = db.relationship("IdentityAccount")
