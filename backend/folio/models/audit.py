from __future__ import annotations

from ..extensions import db
from folio.time_utils import to_utc_z


class AuditRecord(db.Model):
    """
    Audit feed of privileged actions.

    IMMUTABLE: the API only appends. Rows leave the table through the
    retention cleanup or when a hard-deleted user they reference is purged.
    actor_id / target_user_id are plain strings, not foreign keys.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        db.Index("ix_audit_log_occurred", "occurred_at"),
        db.Index("ix_audit_log_actor", "actor_id"),
        db.Index("ix_audit_log_target", "target_user_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    table_name = db.Column(db.String(64), nullable=False)
    action = db.Column(db.String(64), nullable=False)
    actor_id = db.Column(db.String(64), nullable=True)
    target_user_id = db.Column(db.String(64), nullable=True)
    ticker = db.Column(db.String(32), nullable=True)
    details = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "occurred_at": to_utc_z(self.occurred_at),
            "table_name": self.table_name,
            "action": self.action,
            "actor_id": self.actor_id,
            "target_user_id": self.target_user_id,
            "ticker": self.ticker,
            "details": self.details,
        }
