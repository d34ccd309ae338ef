from .users import User
from .access import GlobalPermission, Grant
from .audit import AuditRecord
from .portfolio import Exchange, Stock, Trade, Dividend
from .identity import IdentityAccount, IdentitySession

__all__ = [
    'User',
    'GlobalPermission', 'Grant',
    'AuditRecord',
    'Exchange', 'Stock', 'Trade', 'Dividend',
    'IdentityAccount', 'IdentitySession',
]
