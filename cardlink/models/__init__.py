"""
Database models for CardLink.
Messaging identities, loyalty account snapshots, links, ledger, and sync sessions.
"""
from .external_identity import ExternalIdentity
from .loyalty_account import LoyaltyAccount, DEFAULT_TIER
from .account_link import AccountLink, LINK_METHODS
from .transaction import LedgerTransaction
from .sync_session import SyncSession, STATUS_WAITING, STATUS_LINKED, STATUS_EXPIRED
from .system_log import SystemLog

__all__ = [
    'ExternalIdentity',
    'LoyaltyAccount',
    'DEFAULT_TIER',
    'AccountLink',
    'LINK_METHODS',
    'LedgerTransaction',
    'SyncSession',
    'STATUS_WAITING',
    'STATUS_LINKED',
    'STATUS_EXPIRED',
    'SystemLog',
]
