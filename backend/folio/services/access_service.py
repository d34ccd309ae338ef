# Overview: Authorization engine; derives none/read/write for a requester, resource and owner.

"""
Effective Access

Decision order, first match wins and is never downgraded:
1. admin                              -> write
2. requester owns the data            -> write
3. global permissions
   can_edit_all                       -> write
   can_edit_dictionaries (dicts only) -> write
   can_view_all                       -> read
4. point grants on (resource, owner)  -> write if any write, else read
5. otherwise                          -> none

Every call reads the stores afresh; a revoked permission takes effect on the
next request.
"""

from __future__ import annotations

from ..models import User
from ..permissions import AccessLevel, GrantMode, Resource
from . import grant_service


class AccessDeniedError(Exception):
    """Raised when the requester lacks the access an operation needs."""
    pass


_RANK = {AccessLevel.NONE: 0, AccessLevel.READ: 1, AccessLevel.WRITE: 2}


def effective_access(requester: User, resource: str, owner_id: str | None) -> str:
    if requester.is_admin:
        return AccessLevel.WRITE

    # Dictionaries are global, so only owned resources can be "one's own"
    if owner_id is not None and owner_id == requester.id:
        return AccessLevel.WRITE

    permission = grant_service.get_global_permission(requester.id)
    if permission is not None:
        if permission.can_edit_all:
            return AccessLevel.WRITE
        if resource == Resource.DICTIONARIES and permission.can_edit_dictionaries:
            return AccessLevel.WRITE
        if permission.can_view_all:
            return AccessLevel.READ

    modes = {
        grant.mode
        for grant in grant_service.list_grants_for(requester.id)
        if grant.resource == resource and grant.owner_id == owner_id
    }
    if GrantMode.WRITE in modes:
        return AccessLevel.WRITE
    if GrantMode.READ in modes:
        return AccessLevel.READ

    return AccessLevel.NONE


def can_read(requester: User, resource: str, owner_id: str | None) -> bool:
    return effective_access(requester, resource, owner_id) != AccessLevel.NONE


def can_write(requester: User, resource: str, owner_id: str | None) -> bool:
    return effective_access(requester, resource, owner_id) == AccessLevel.WRITE


def require_access(requester: User, resource: str, owner_id: str | None, needed: str) -> str:
    """
    Raise AccessDeniedError unless the requester has at least `needed`.

    Returns the effective level so callers can render read-only state.
    """
    level = effective_access(requester, resource, owner_id)
    if _RANK[level] < _RANK[needed]:
        raise AccessDeniedError(f"{needed} access to {resource} required")
    return level
