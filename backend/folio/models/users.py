from __future__ import annotations

from ..extensions import db
from folio.time_utils import to_utc_z


class User(db.Model):
    """
    User profile and role flags (the Role Store).

    id is the identity provider's opaque account id and the join key for
    every other table. It is never reused after a hard delete.

    Relations are looked up by querying the grant/permission tables filtered
    by id; there are no backref collections on this model.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_active_admin", "is_active", "is_admin"),
    )

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(255), nullable=True)

    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Gates login-time redirection only, never authorization
    must_change_password = db.Column(db.Boolean, nullable=False, default=False)

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    first_login_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def display_name(self) -> str:
        return (self.full_name or "").strip() or self.email or self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "is_admin": self.is_admin,
            "is_active": self.is_active,
        }

    def to_detail_dict(self) -> dict:
        data = self.to_dict()
        data.update({
            "must_change_password": self.must_change_password,
            "deleted_at": to_utc_z(self.deleted_at),
            "first_login_at": to_utc_z(self.first_login_at),
            "created_at": to_utc_z(self.created_at),
        })
        return data
