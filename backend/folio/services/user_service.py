# Overview: Service-layer operations for user accounts; lifecycle transitions and cascades.

"""
User Lifecycle

State machine:
    active --(soft delete | set_active(False))--> inactive
    inactive --(set_active(True))--> active
    active | inactive --(hard delete)--> gone (terminal)

INVARIANT: an inactive user is never a party to a grant. Every transition
into "inactive" purges the user's grants (as owner and as grantee) in the
same commit as the status flip.

Profile rows and identity-provider accounts are created and removed as a
pair:
- create: provider account first, then the profile; a failed profile insert
  deletes the provider account again
- hard delete: the database cascade is staged in one transaction, the
  provider account is deleted, and only then is the transaction committed.
  A provider failure rolls everything back, so a retry starts from the same
  state and converges.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import User, GlobalPermission, Trade, Dividend
from ..validation import ConflictError
from . import audit_service, grant_service, identity_service
from .access_service import AccessDeniedError
from .identity_service import IdentityProviderError
from folio.time_utils import utcnow


@dataclass
class HardDeleteResult:
    user_id: str
    existed: bool
    removed: dict[str, int] = field(default_factory=dict)


def get_user(user_id: str) -> User | None:
    return db.session.get(User, user_id)


def _require_user(user_id: str) -> User:
    user = get_user(user_id)
    if not user:
        raise LookupError("User not found")
    return user


def list_users(include_inactive: bool = True) -> list[User]:
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.email).all()


def masked_email(user_id: str) -> str:
    return f"deleted+{user_id}@users.invalid"


# =============================================================================
# PROVISIONING
# =============================================================================

def _provision(
    email: str,
    password: str,
    *,
    is_admin: bool,
    full_name: str | None,
    must_change_password: bool,
) -> User:
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("A user with this email already exists")

    provider = identity_service.get_provider()
    try:
        account_id = provider.create_account(email, password)
    except ValueError as exc:
        db.session.rollback()
        raise ConflictError(str(exc)) from exc

    user = User(
        id=account_id,
        email=email,
        full_name=full_name,
        is_admin=is_admin,
        is_active=True,
        must_change_password=must_change_password,
        created_at=utcnow(),
    )
    try:
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Profile insert failed; removing identity account %s", account_id)
        # Compensation: never leave a credential without a profile
        provider.delete_account(account_id)
        db.session.commit()
        raise
    return user


def create_user(email: str, password: str, is_admin: bool = False, full_name: str | None = None) -> User:
    """Admin provisioning: the new user must change the password on first login."""
    return _provision(
        email,
        password,
        is_admin=is_admin,
        full_name=full_name,
        must_change_password=True,
    )


def sign_up(email: str, password: str, full_name: str | None = None) -> User:
    """Self-service sign-up (only reachable when SELF_SIGNUP_ENABLED)."""
    return _provision(
        email,
        password,
        is_admin=False,
        full_name=full_name,
        must_change_password=False,
    )


# =============================================================================
# ACTIVITY STATUS
# =============================================================================

def _deactivate(user: User, reason: str) -> int:
    """Flip to inactive, purge grants and revoke sessions. Caller commits."""
    user.is_active = False
    purged = grant_service.purge_grants_for_user(user.id)
    identity_service.get_provider().revoke_sessions(user.id, reason=reason)
    return purged


def set_active(user_id: str, is_active: bool, acting_user_id: str | None = None) -> tuple[User, int]:
    """
    Set the activity flag. Returns (user, grants_purged).

    Deactivating purges the user's grants in the same commit.
    """
    user = _require_user(user_id)

    if not is_active and acting_user_id == user_id:
        raise ConflictError("Cannot deactivate your own account")

    purged = 0
    try:
        if is_active:
            user.is_active = True
            user.deleted_at = None
        else:
            purged = _deactivate(user, "Account deactivated by admin")
        db.session.commit()
    except (SQLAlchemyError, IdentityProviderError):
        db.session.rollback()
        raise

    return user, purged


def soft_delete(user_id: str, acting_user_id: str | None = None) -> tuple[User, int]:
    """
    Deactivate, stamp deleted_at and mask the email.

    History (trades, dividends, audit) and the identity account are kept.
    """
    user = _require_user(user_id)

    if acting_user_id == user_id:
        raise ConflictError("Cannot delete your own account")

    try:
        purged = _deactivate(user, "Account soft-deleted by admin")
        if user.deleted_at is None:
            user.deleted_at = utcnow()
        user.email = masked_email(user.id)
        db.session.commit()
    except (SQLAlchemyError, IdentityProviderError):
        db.session.rollback()
        raise

    return user, purged


def hard_delete(user_id: str, acting_user_id: str | None = None) -> HardDeleteResult:
    """
    Irreversibly remove the user and every dependent row, then the identity account.

    Order: trades, dividends, grants, permission row, audit records, profile,
    identity account. All database deletes share one transaction which is
    committed only after the provider confirms the account removal.

    Raises IdentityProviderError (after rolling back) if the provider fails.
    Re-running after any failure is safe; a user already gone is reported
    with existed=False.
    """
    if acting_user_id is not None and acting_user_id == user_id:
        raise ConflictError("Cannot delete your own account")

    user = get_user(user_id)
    result = HardDeleteResult(user_id=user_id, existed=user is not None)

    try:
        removed = result.removed
        removed["trades"] = db.session.query(Trade).filter_by(user_id=user_id).delete(
            synchronize_session=False
        )
        removed["dividends"] = db.session.query(Dividend).filter_by(user_id=user_id).delete(
            synchronize_session=False
        )
        removed["grants"] = grant_service.purge_grants_for_user(user_id)
        removed["permissions"] = db.session.query(GlobalPermission).filter_by(user_id=user_id).delete(
            synchronize_session=False
        )
        removed["audit"] = audit_service.purge_records_for_user(user_id)
        removed["users"] = db.session.query(User).filter_by(id=user_id).delete(
            synchronize_session=False
        )
        db.session.flush()

        identity_service.get_provider().delete_account(user_id)

        db.session.commit()
    except IdentityProviderError:
        db.session.rollback()
        current_app.logger.error("Hard delete of %s rolled back: identity provider failure", user_id)
        raise
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Hard delete of %s rolled back: database failure", user_id)
        raise

    # Identity map may still hold the deleted instance
    if user is not None:
        db.session.expunge(user)

    return result


# =============================================================================
# CREDENTIALS / FIRST LOGIN
# =============================================================================

def reset_password(user_id: str, new_password: str) -> User:
    """Admin reset: sets a new password, forces a change at next login, revokes sessions."""
    user = _require_user(user_id)
    provider = identity_service.get_provider()
    try:
        provider.update_password(user.id, new_password)
        provider.revoke_sessions(user.id, reason="Password reset by admin")
        user.must_change_password = True
        db.session.commit()
    except (SQLAlchemyError, IdentityProviderError):
        db.session.rollback()
        raise
    return user


def complete_first_login(caller: User, target_user_id: str | None = None) -> User:
    """Clear must_change_password for the caller. Any other target is refused."""
    if target_user_id is not None and target_user_id != caller.id:
        raise AccessDeniedError("Can only complete first login for your own account")

    caller.must_change_password = False
    if caller.first_login_at is None:
        caller.first_login_at = utcnow()
    db.session.commit()
    return caller
