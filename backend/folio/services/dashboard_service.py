# Overview: Dashboard view model; reachable portfolios and visible tabs derived from effective access.

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import User
from ..permissions import AccessLevel, DASHBOARD_TABS, DICTIONARY_TABS, Resource
from . import access_service, grant_service


@dataclass(frozen=True)
class TabView:
    key: str
    read_only: bool

    def to_dict(self) -> dict:
        return {"key": self.key, "read_only": self.read_only}


def reachable_portfolios(viewer: User) -> list[User]:
    """
    Portfolios the viewer can switch between, viewer first.

    Admins reach every user. Everyone else reaches their own portfolio plus
    the distinct owners of the grants they hold.
    """
    if viewer.is_admin:
        others = db.session.query(User).filter(User.id != viewer.id).order_by(User.email).all()
        return [viewer] + others

    owner_ids = {
        grant.owner_id
        for grant in grant_service.list_grants_for(viewer.id)
        if grant.owner_id is not None and grant.owner_id != viewer.id
    }
    owners = []
    if owner_ids:
        owners = db.session.query(User).filter(User.id.in_(owner_ids)).order_by(User.email).all()
    return [viewer] + owners


def visible_tabs(viewer: User, owner_id: str) -> list[TabView]:
    """
    Tabs to render for the viewer looking at owner_id's portfolio.

    read_only=True means every mutating control must be disabled; the
    server rejects writes independently.
    """
    levels = {
        resource: access_service.effective_access(viewer, resource, owner_id)
        for resource in Resource.OWNED
    }
    dictionary_level = access_service.effective_access(viewer, Resource.DICTIONARIES, None)
    own_view = viewer.is_admin or owner_id == viewer.id

    tabs = []
    for key, resource in DASHBOARD_TABS:
        if key in DICTIONARY_TABS:
            # Dictionaries are global; never shown inside someone else's portfolio
            if own_view:
                tabs.append(TabView(key, dictionary_level != AccessLevel.WRITE))
            continue

        level = levels[resource]
        if level != AccessLevel.NONE:
            tabs.append(TabView(key, level != AccessLevel.WRITE))

    return tabs


def build_dashboard(viewer: User, owner_id: str | None = None) -> dict:
    portfolios = reachable_portfolios(viewer)
    reachable_ids = [user.id for user in portfolios]

    active_owner_id = owner_id or viewer.id
    if active_owner_id not in reachable_ids:
        raise access_service.AccessDeniedError("Portfolio not reachable")

    return {
        "viewer_id": viewer.id,
        "is_admin": bool(viewer.is_admin),
        "active_owner_id": active_owner_id,
        "portfolios": [
            {"id": user.id, "label": user.display_name, "is_self": user.id == viewer.id}
            for user in portfolios
        ],
        "tabs": [tab.to_dict() for tab in visible_tabs(viewer, active_owner_id)],
    }
