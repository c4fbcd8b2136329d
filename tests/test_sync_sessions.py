"""
Tests for SyncSessionManager.

Tests cover:
- Token format and uniqueness
- Idempotent re-registration keyed by syncId
- Lazy expiry (stored status stays 'waiting')
- Best-effort side effects on create
- Completing a handshake (mark_linked)
"""
import re
import pytest
from unittest.mock import patch

from cardlink.models import AccountLink, ExternalIdentity, SyncSession, SystemLog
from cardlink.services.sync_sessions import generate_sync_id
from cardlink.utils.exceptions import (
    InvalidStatusTransitionError,
    LinkConflictError,
    SyncSessionNotFoundError,
    ValidationError,
)


class TestGenerateSyncId:

    def test_format(self):
        sync_id = generate_sync_id()
        assert re.fullmatch(r'sync_[0-9a-z]+_[0-9a-f]{16}', sync_id)

    def test_unique(self):
        assert len({generate_sync_id() for _ in range(200)}) == 200


class TestCreateSession:

    def test_creates_waiting_session(self, sessions, clock):
        session = sessions.create_session('U1001')

        assert session.status == 'waiting'
        assert session.external_identity_id == 'U1001'
        assert (session.expires_at - clock.now).total_seconds() == 600

    def test_requires_identity(self, sessions):
        with pytest.raises(ValidationError):
            sessions.create_session('')

    def test_same_sync_id_overwrites(self, sessions, clock):
        first = sessions.create_session('U1001', sync_id='sync_fixed_key')
        first_expiry = first.expires_at
        clock.advance(minutes=3)

        second = sessions.create_session('U1002', sync_id='sync_fixed_key')

        assert SyncSession.query.filter_by(sync_id='sync_fixed_key').count() == 1
        assert second.external_identity_id == 'U1002'
        assert second.expires_at > first_expiry

    def test_re_register_resets_status(self, sessions, clock):
        sessions.create_session('U1001', sync_id='sync_retry')
        sessions.mark_linked('sync_retry', {'username': 'member001'})

        session = sessions.create_session('U1001', sync_id='sync_retry')

        assert session.status == 'waiting'
        assert session.completed_at is None

    def test_profile_sync_runs_when_profile_given(self, sessions):
        sessions.create_session('U1001', profile={'displayName': 'Chai', 'pictureUrl': 'https://img/1'})

        identity = ExternalIdentity.query.filter_by(external_identity_id='U1001').first()
        assert identity.display_name == 'Chai'
        assert identity.avatar_url == 'https://img/1'

    def test_event_logged(self, sessions):
        session = sessions.create_session('U1001')

        entry = SystemLog.query.filter_by(source='sync_session').first()
        assert entry is not None
        assert entry.user_id == 'U1001'
        assert entry.data['syncId'] == session.sync_id

    def test_side_effect_failures_do_not_fail_create(self, sessions):
        with patch.object(sessions.profile_sync, '_write', side_effect=RuntimeError('profile down')), \
                patch.object(sessions.event_logger, '_write', side_effect=RuntimeError('log down')):
            session = sessions.create_session('U1001', profile={'displayName': 'Chai'})

        assert session.status == 'waiting'
        assert SyncSession.query.count() == 1


class TestGetSession:

    def test_unknown_is_none(self, sessions):
        assert sessions.get_session('sync_missing') is None

    def test_waiting_view(self, sessions, clock):
        session = sessions.create_session('U1001')
        clock.advance(minutes=4)

        view = sessions.get_session(session.sync_id)

        assert view['status'] == 'waiting'
        assert view['usable'] is True
        assert view['expired'] is False
        assert view['timeRemainingSeconds'] == 360

    def test_expired_is_derived_not_stored(self, sessions, clock):
        session = sessions.create_session('U1001')
        clock.advance(minutes=11)

        view = sessions.get_session(session.sync_id)

        assert view['status'] == 'expired'
        assert view['usable'] is False
        assert view['timeRemainingSeconds'] == 0
        stored = sessions.load_session(session.sync_id)
        assert stored.status == 'waiting'


class TestMarkLinked:

    ACCOUNT = {'username': 'member001', 'first_name': 'Somchai', 'available': '120.50', 'tier': 'Silver'}

    def test_links_account(self, sessions, registry):
        session = sessions.create_session('U1001')

        result = sessions.mark_linked(session.sync_id, self.ACCOUNT)

        assert result['session']['status'] == 'linked'
        assert result['session']['completedAt'] is not None
        assert result['link']['accountId'] == 'member001'
        snapshot = registry.resolve_by_external_id('U1001')
        assert snapshot.link_method == 'socket'
        assert snapshot.tier == 'Silver'

    def test_unknown_session(self, sessions):
        with pytest.raises(SyncSessionNotFoundError):
            sessions.mark_linked('sync_missing', self.ACCOUNT)

    def test_expired_session(self, sessions, clock):
        session = sessions.create_session('U1001')
        clock.advance(minutes=15)

        with pytest.raises(InvalidStatusTransitionError):
            sessions.mark_linked(session.sync_id, self.ACCOUNT)

        assert AccountLink.query.count() == 0

    def test_already_linked_session(self, sessions):
        session = sessions.create_session('U1001')
        sessions.mark_linked(session.sync_id, self.ACCOUNT)

        with pytest.raises(InvalidStatusTransitionError):
            sessions.mark_linked(session.sync_id, self.ACCOUNT)

    def test_account_linked_elsewhere(self, sessions, make_account, make_link):
        make_account('member001')
        make_link('U9999', 'member001')
        session = sessions.create_session('U1001')

        with pytest.raises(LinkConflictError):
            sessions.mark_linked(session.sync_id, self.ACCOUNT)

        assert sessions.get_session(session.sync_id)['status'] == 'waiting'

    def test_requires_username(self, sessions):
        session = sessions.create_session('U1001')

        with pytest.raises(ValidationError):
            sessions.mark_linked(session.sync_id, {'first_name': 'No username'})


class TestFindPending:

    def test_oldest_usable_session(self, sessions, clock):
        first = sessions.create_session('U1001', sync_id='sync_first')
        clock.advance(minutes=1)
        sessions.create_session('U1001', sync_id='sync_second')
        sessions.create_session('U2002', sync_id='sync_other_user')

        view = sessions.find_pending('U1001')

        assert view['syncId'] == first.sync_id
        assert view['usable'] is True

    def test_skips_expired_and_linked(self, sessions, clock):
        sessions.create_session('U1001', sync_id='sync_old')
        clock.advance(minutes=11)
        sessions.create_session('U1001', sync_id='sync_done')
        sessions.mark_linked('sync_done', {'username': 'member001'})

        assert sessions.find_pending('U1001') is None

        sessions.create_session('U1001', sync_id='sync_fresh')
        assert sessions.find_pending('U1001')['syncId'] == 'sync_fresh'

    def test_requires_identity(self, sessions):
        with pytest.raises(ValidationError):
            sessions.find_pending('')
