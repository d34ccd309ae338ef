"""
Access Model Constants

Resources, grant modes and effective access levels used by the grant store,
the authorization engine and the dashboard.

DESIGN PRINCIPLES:
- trades and dividends are always owner-scoped
- dictionaries (stocks, exchanges) are global reference data with no owner
- a stored "write" grant does not imply a stored "read" row, but a write
  holder is still able to view
"""

# =============================================================================
# RESOURCES
# =============================================================================

class Resource:
    """Categories over which access can be scoped."""
    TRADES = "trades"
    DIVIDENDS = "dividends"
    DICTIONARIES = "dictionaries"

    ALL = (TRADES, DIVIDENDS, DICTIONARIES)

    # Resources whose rows belong to exactly one user
    OWNED = (TRADES, DIVIDENDS)


# =============================================================================
# GRANT MODES / ACCESS LEVELS
# =============================================================================

class GrantMode:
    READ = "read"
    WRITE = "write"

    ALL = (READ, WRITE)


class AccessLevel:
    """Outcome of an effective-access decision."""
    NONE = "none"
    READ = "read"
    WRITE = "write"


# Global permission flags stored per user (absence of a row == all False)
GLOBAL_PERMISSION_FLAGS = (
    "can_view_all",
    "can_edit_all",
    "can_edit_dictionaries",
)


# =============================================================================
# DASHBOARD TABS
# =============================================================================

# (key, backing resource) in display order
DASHBOARD_TABS = [
    ("buy", Resource.TRADES),
    ("sell", Resource.TRADES),
    ("dividends", Resource.DIVIDENDS),
    ("stocks", Resource.DICTIONARIES),
    ("exchanges", Resource.DICTIONARIES),
    ("report", Resource.TRADES),
]

DICTIONARY_TABS = {"stocks", "exchanges"}


# =============================================================================
# AUDIT ACTIONS
# =============================================================================

class AuditAction:
    USER_CREATED = "USER_CREATED"
    USER_SIGNED_UP = "USER_SIGNED_UP"
    USER_HARD_DELETED = "USER_HARD_DELETED"
    USER_SOFT_DELETED = "USER_SOFT_DELETED"
    USER_ACTIVATED = "USER_ACTIVATED"
    USER_DEACTIVATED = "USER_DEACTIVATED"
    PASSWORD_RESET = "PASSWORD_RESET"
    FIRST_LOGIN_COMPLETED = "FIRST_LOGIN_COMPLETED"
    PERMISSIONS_UPDATED = "PERMISSIONS_UPDATED"
    GRANT_UPSERTED = "GRANT_UPSERTED"
    GRANT_DELETED = "GRANT_DELETED"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
