# Overview: Service-layer operations for the role, global permission and grant stores.

"""
Role / Global Permission / Grant Stores

Pure data access over users (role flags), user_permissions and user_grants.
Each operation touches a single row or tuple and is idempotent:
- upserts are keyed by the natural key
- deletes match the exact tuple and succeed when nothing matches

Mutations that would give an inactive user a live grant or elevated
capability are rejected here, at the point of mutation.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, GlobalPermission, Grant
from ..permissions import GrantMode, Resource
from ..validation import ConflictError, ValidationError
from folio.time_utils import utcnow


class InactiveUserError(ConflictError):
    """A grant or elevation targets a user who is not active."""
    pass


@dataclass(frozen=True)
class RoleInfo:
    is_admin: bool
    is_active: bool
    must_change_password: bool


def get_role(user_id: str) -> RoleInfo | None:
    user = db.session.get(User, user_id)
    if not user:
        return None
    return RoleInfo(
        is_admin=bool(user.is_admin),
        is_active=bool(user.is_active),
        must_change_password=bool(user.must_change_password),
    )


def _get_user(user_id: str, label: str = "User") -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise LookupError(f"{label} not found")
    return user


# =============================================================================
# GLOBAL PERMISSIONS
# =============================================================================

def get_global_permission(user_id: str) -> GlobalPermission | None:
    """Stored row or None. None means every flag is False."""
    return db.session.query(GlobalPermission).filter_by(user_id=user_id).first()


def upsert_global_permission(
    user_id: str,
    *,
    can_view_all: bool,
    can_edit_all: bool,
    can_edit_dictionaries: bool,
    is_admin: bool | None = None,
) -> GlobalPermission:
    """
    Create or replace all three flags together (no per-field patch).

    is_admin, when given, is written to the role row in the same commit.
    Raises InactiveUserError for inactive targets, LookupError if missing.
    """
    user = _get_user(user_id)
    if not user.is_active:
        raise InactiveUserError("Cannot change permissions of an inactive user")

    permission = get_global_permission(user_id)
    if permission is None:
        permission = GlobalPermission(user_id=user_id)
        db.session.add(permission)

    permission.can_view_all = bool(can_view_all)
    permission.can_edit_all = bool(can_edit_all)
    permission.can_edit_dictionaries = bool(can_edit_dictionaries)
    permission.updated_at = utcnow()

    if is_admin is not None:
        user.is_admin = bool(is_admin)

    db.session.commit()
    return permission


def list_all_permissions() -> list[GlobalPermission]:
    return db.session.query(GlobalPermission).order_by(GlobalPermission.user_id).all()


# =============================================================================
# GRANTS
# =============================================================================

def _tuple_query(resource: str, owner_id: str | None, grantee_id: str, mode: str):
    query = db.session.query(Grant).filter(
        Grant.resource == resource,
        Grant.grantee_id == grantee_id,
        Grant.mode == mode,
    )
    # NULL owner matches only NULL owner, never acts as a wildcard
    if owner_id is None:
        return query.filter(Grant.owner_id.is_(None))
    return query.filter(Grant.owner_id == owner_id)


def _check_tuple(resource: str, owner_id: str | None, mode: str) -> None:
    if resource not in Resource.ALL:
        raise ValidationError(f"Unknown resource: {resource}")
    if mode not in GrantMode.ALL:
        raise ValidationError(f"Unknown mode: {mode}")
    if resource == Resource.DICTIONARIES and owner_id is not None:
        raise ValidationError("dictionaries grants have no owner")
    if resource in Resource.OWNED and owner_id is None:
        raise ValidationError(f"{resource} grants require an owner")


def upsert_grant(resource: str, owner_id: str | None, grantee_id: str, mode: str) -> Grant:
    """
    Insert the grant tuple unless it already exists.

    Both parties must exist and be active.
    """
    _check_tuple(resource, owner_id, mode)

    grantee = _get_user(grantee_id, "Grantee")
    if not grantee.is_active:
        raise InactiveUserError("Cannot grant access to an inactive user")
    if owner_id is not None:
        owner = _get_user(owner_id, "Owner")
        if not owner.is_active:
            raise InactiveUserError("Cannot grant access to an inactive user's data")

    existing = _tuple_query(resource, owner_id, grantee_id, mode).first()
    if existing:
        return existing

    grant = Grant(
        resource=resource,
        owner_id=owner_id,
        grantee_id=grantee_id,
        mode=mode,
        created_at=utcnow(),
    )
    db.session.add(grant)
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent upsert inserted the same tuple first
        db.session.rollback()
        existing = _tuple_query(resource, owner_id, grantee_id, mode).first()
        if existing is None:
            raise
        return existing
    return grant


def delete_grant(resource: str, owner_id: str | None, grantee_id: str, mode: str) -> int:
    """Delete the exact tuple. Returns rows removed (0 when already absent)."""
    deleted = _tuple_query(resource, owner_id, grantee_id, mode).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def list_grants_for(grantee_id: str) -> list[Grant]:
    """Every grant held by the user, across all resources and owners."""
    return db.session.query(Grant).filter(Grant.grantee_id == grantee_id).all()


def list_all_grants() -> list[Grant]:
    return db.session.query(Grant).order_by(Grant.resource, Grant.owner_id, Grant.grantee_id).all()


def purge_grants_for_user(user_id: str) -> int:
    """
    Delete every grant where the user is owner or grantee.

    Does not commit: runs inside the caller's deactivation/deletion
    transaction so the status flip and the purge land together.
    """
    return db.session.query(Grant).filter(
        or_(Grant.owner_id == user_id, Grant.grantee_id == user_id)
    ).delete(synchronize_session=False)
