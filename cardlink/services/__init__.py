"""
Business logic services for CardLink.
"""
from .store import Store
from .event_logger import EventLogger, run_best_effort
from .profile_sync import ProfileSync
from .link_registry import LinkRegistry, LinkSnapshot
from .sync_sessions import SyncSessionManager, generate_sync_id
from .ledger_query import LedgerQueryEngine, LedgerFilter, LedgerPage

__all__ = [
    'Store',
    'EventLogger',
    'run_best_effort',
    'ProfileSync',
    'LinkRegistry',
    'LinkSnapshot',
    'SyncSessionManager',
    'generate_sync_id',
    'LedgerQueryEngine',
    'LedgerFilter',
    'LedgerPage',
]
