"""
HTTP transport for CardLink.

Blueprints decode requests into typed calls on the services and encode the
results as JSON. Every response carries a `success` flag. Services are built
per request around one Store bound to the pooled session.
"""
from flask import current_app, g, request

from ..extensions import db
from ..services.event_logger import EventLogger
from ..services.ledger_query import LedgerQueryEngine
from ..services.link_registry import LinkRegistry
from ..services.profile_sync import ProfileSync
from ..services.store import Store
from ..services.sync_sessions import SyncSessionManager


def get_store() -> Store:
    """Request-scoped store; the session is returned to the pool at teardown."""
    if 'store' not in g:
        g.store = Store(db.session, current_app.config.get('DB_STATEMENT_TIMEOUT_MS'))
    return g.store


def get_link_registry() -> LinkRegistry:
    return LinkRegistry(get_store())


def get_event_logger() -> EventLogger:
    return EventLogger(get_store())


def get_ledger_engine() -> LedgerQueryEngine:
    return LedgerQueryEngine(get_store())


def get_sync_manager() -> SyncSessionManager:
    store = get_store()
    return SyncSessionManager(
        store,
        LinkRegistry(store),
        ProfileSync(store),
        EventLogger(store),
        ttl_minutes=current_app.config.get('SYNC_SESSION_TTL_MINUTES'),
    )


def request_params() -> dict:
    """Query string merged with a JSON body (body wins)."""
    params = request.args.to_dict()
    if request.method in ('POST', 'PUT', 'PATCH'):
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            params.update(body)
    return params


def pick(params: dict, *names):
    """First non-empty value among alias names."""
    for name in names:
        value = params.get(name)
        if isinstance(value, str):
            value = value.strip()
        if value not in (None, ''):
            return value
    return None


def identity_param(params: dict):
    return pick(params, 'externalIdentityId', 'lineUserId', 'external_identity_id')


def username_param(params: dict):
    return pick(params, 'username', 'loyaltyUsername', 'loyalty_username')
