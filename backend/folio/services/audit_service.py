# Overview: Service-layer operations for the audit feed.

"""
Audit Feed

Append-only, time-ordered log of privileged actions. Routes append one
record per successful mutation; admins read it newest-first.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import AuditRecord
from folio.time_utils import utcnow


def record_action(
    table_name: str,
    action: str,
    actor_id: str | None,
    target_user_id: str | None = None,
    ticker: str | None = None,
    details: str | None = None,
) -> AuditRecord:
    """Append one record and commit it."""
    record = AuditRecord(
        occurred_at=utcnow(),
        table_name=table_name,
        action=action,
        actor_id=actor_id,
        target_user_id=target_user_id,
        ticker=ticker,
        details=details,
    )
    db.session.add(record)
    db.session.commit()

    current_app.logger.info(
        "audit %s.%s actor=%s target=%s", table_name, action, actor_id, target_user_id
    )
    return record


def clamp_limit(raw) -> int:
    """
    Normalize a ?limit= value into [1, AUDIT_MAX_LIMIT].

    Missing or non-numeric values fall back to AUDIT_DEFAULT_LIMIT.
    """
    default = current_app.config.get("AUDIT_DEFAULT_LIMIT", 200)
    maximum = current_app.config.get("AUDIT_MAX_LIMIT", 1000)
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, maximum))


def list_recent(limit: int, table_name: str | None = None, user_id: str | None = None) -> list[AuditRecord]:
    """Newest first. user_id matches either the actor or the target."""
    query = db.session.query(AuditRecord)
    if table_name:
        query = query.filter(AuditRecord.table_name == table_name)
    if user_id:
        query = query.filter(
            or_(AuditRecord.actor_id == user_id, AuditRecord.target_user_id == user_id)
        )
    return (
        query.order_by(AuditRecord.occurred_at.desc(), AuditRecord.id.desc())
        .limit(limit)
        .all()
    )


def purge_records_for_user(user_id: str) -> int:
    """Remove records referencing the user. Part of hard delete; does not commit."""
    return db.session.query(AuditRecord).filter(
        or_(AuditRecord.actor_id == user_id, AuditRecord.target_user_id == user_id)
    ).delete(synchronize_session=False)


def cleanup(retention_days: int) -> int:
    """Delete records older than the retention window."""
    if retention_days < 1:
        raise ValueError("retention_days must be >= 1")
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(AuditRecord).filter(
        AuditRecord.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
