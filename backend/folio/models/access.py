from __future__ import annotations

from ..extensions import db
from folio.time_utils import to_utc_z


class GlobalPermission(db.Model):
    """
    Per-user broad capabilities across all owners.

    At most one row per user. A missing row means every flag is False;
    rows are only ever written by admin actions.
    """
    __tablename__ = "user_permissions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    can_view_all = db.Column(db.Boolean, nullable=False, default=False)
    can_edit_all = db.Column(db.Boolean, nullable=False, default=False)
    can_edit_dictionaries = db.Column(db.Boolean, nullable=False, default=False)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "can_view_all": self.can_view_all,
            "can_edit_all": self.can_edit_all,
            "can_edit_dictionaries": self.can_edit_dictionaries,
            "updated_at": to_utc_z(self.updated_at),
        }


class Grant(db.Model):
    """
    Point-to-point access grant: grantee may read/write owner's resource.

    Natural key is (resource, owner_id, grantee_id, mode). owner_id is NULL
    only for the ownerless "dictionaries" resource. The unique constraint does
    not cover NULL owners, so a partial unique index covers those rows.
    """
    __tablename__ = "user_grants"
    __table_args__ = (
        db.UniqueConstraint("resource", "owner_id", "grantee_id", "mode", name="uq_user_grants_tuple"),
        db.Index(
            "uq_user_grants_ownerless",
            "resource", "grantee_id", "mode",
            unique=True,
            sqlite_where=db.text("owner_id IS NULL"),
            postgresql_where=db.text("owner_id IS NULL"),
        ),
        db.Index("ix_user_grants_grantee", "grantee_id"),
        db.Index("ix_user_grants_owner", "owner_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    resource = db.Column(db.String(32), nullable=False)
    owner_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    grantee_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    mode = db.Column(db.String(8), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "resource": self.resource,
            "owner_id": self.owner_id,
            "grantee_id": self.grantee_id,
            "mode": self.mode,
            "created_at": to_utc_z(self.created_at),
        }
