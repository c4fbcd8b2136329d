"""
Shared pytest fixtures for CardLink.

The app runs on TestingConfig (in-memory SQLite). Each test gets a fresh
schema and an active app context.
"""
import uuid
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from cardlink import create_app
from cardlink.extensions import db as _db


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Test client."""
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def store(app):
    from cardlink.services.store import Store
    return Store(_db.session, app.config['DB_STATEMENT_TIMEOUT_MS'])


@pytest.fixture
def registry(store):
    from cardlink.services.link_registry import LinkRegistry
    return LinkRegistry(store)


@pytest.fixture
def profiles(store):
    from cardlink.services.profile_sync import ProfileSync
    return ProfileSync(store)


@pytest.fixture
def events(store):
    from cardlink.services.event_logger import EventLogger
    return EventLogger(store)


@pytest.fixture
def ledger(store):
    from cardlink.services.ledger_query import LedgerQueryEngine
    return LedgerQueryEngine(store)


@pytest.fixture
def clock():
    """Controllable clock for the session manager."""
    class Clock:
        def __init__(self):
            self.now = datetime(2026, 3, 1, 12, 0, 0)

        def __call__(self):
            return self.now

        def advance(self, **kwargs):
            self.now += timedelta(**kwargs)

    return Clock()


@pytest.fixture
def sessions(store, registry, profiles, events, clock):
    from cardlink.services.sync_sessions import SyncSessionManager
    return SyncSessionManager(store, registry, profiles, events, ttl_minutes=10, clock=clock)


@pytest.fixture
def make_account(app):
    """Factory for cached loyalty accounts."""
    from cardlink.models import LoyaltyAccount

    def _make(username='member001', **kwargs):
        kwargs.setdefault('first_name', 'Somchai')
        kwargs.setdefault('last_name', 'Jaidee')
        kwargs.setdefault('phone', '0812345678')
        kwargs.setdefault('balance', Decimal('1500.50'))
        kwargs.setdefault('tier', 'Gold')
        kwargs.setdefault('points', 320)
        account = LoyaltyAccount(username=username, **kwargs)
        _db.session.add(account)
        _db.session.commit()
        return account

    return _make


@pytest.fixture
def make_identity(app):
    """Factory for external identity profiles."""
    from cardlink.models import ExternalIdentity

    def _make(external_identity_id='U1001', **kwargs):
        kwargs.setdefault('display_name', 'Chai')
        identity = ExternalIdentity(external_identity_id=external_identity_id, **kwargs)
        _db.session.add(identity)
        _db.session.commit()
        return identity

    return _make


@pytest.fixture
def make_link(app):
    """Factory for account links written directly to the table."""
    from cardlink.models import AccountLink

    def _make(external_identity_id='U1001', loyalty_username='member001', **kwargs):
        kwargs.setdefault('link_method', 'manual')
        kwargs.setdefault('is_active', True)
        kwargs.setdefault('linked_at', datetime.utcnow())
        link = AccountLink(
            external_identity_id=external_identity_id,
            loyalty_username=loyalty_username,
            **kwargs
        )
        _db.session.add(link)
        _db.session.commit()
        return link

    return _make


@pytest.fixture
def make_transaction(app):
    """Factory for ledger rows as the external producer would write them."""
    from cardlink.models import LedgerTransaction

    def _make(loyalty_username='member001', external_identity_id=None, **kwargs):
        kwargs.setdefault('transaction_id', f'tx_{uuid.uuid4().hex[:12]}')
        kwargs.setdefault('transaction_type', 'deposit')
        kwargs.setdefault('amount', Decimal('100.00'))
        kwargs.setdefault('balance_before', Decimal('0'))
        kwargs.setdefault('balance_after', Decimal('100.00'))
        kwargs.setdefault('source', 'api')
        kwargs.setdefault('created_at', datetime(2026, 2, 1, 10, 0, 0))
        tx = LedgerTransaction(
            loyalty_username=loyalty_username,
            external_identity_id=external_identity_id,
            **kwargs
        )
        _db.session.add(tx)
        _db.session.commit()
        return tx

    return _make


@pytest.fixture
def linked_member(make_account, make_identity, make_link):
    """An identity actively linked to a loyalty account."""
    account = make_account('member001')
    identity = make_identity('U1001', display_name='Chai')
    link = make_link('U1001', 'member001')
    return {'account': account, 'identity': identity, 'link': link}
