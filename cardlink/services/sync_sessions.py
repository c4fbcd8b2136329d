"""
Sync Session Manager - short-lived handshake tokens for linking accounts.

A session is created in 'waiting' and moves to 'linked' once the loyalty
platform confirms the pairing. Expiry is never written: a waiting session
past expires_at simply reads back as expired.
"""
import logging
import secrets
import string
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import select, update

from ..models import SyncSession, STATUS_WAITING, STATUS_LINKED, STATUS_EXPIRED
from ..utils.exceptions import (
    InvalidStatusTransitionError,
    LinkConflictError,
    SyncSessionNotFoundError,
    ValidationError,
)
from .event_logger import EventLogger
from .link_registry import LinkRegistry, normalize_account
from .profile_sync import ProfileSync
from .store import Store

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 10
TOKEN_PREFIX = 'sync_'
_BASE36 = string.digits + string.ascii_lowercase


def _base36(number: int) -> str:
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return ''.join(reversed(digits))


def generate_sync_id() -> str:
    """Opaque token: millisecond time component plus 8 random bytes."""
    return f"{TOKEN_PREFIX}{_base36(int(time.time() * 1000))}_{secrets.token_hex(8)}"


class SyncSessionManager:
    """
    Issues and tracks handshake sessions.

    Usage:
        manager = SyncSessionManager(store, registry, profiles, events)

        session = manager.create_session('U123', profile={'displayName': 'Somchai'})
        view = manager.get_session(session.sync_id)
        manager.mark_linked(session.sync_id, {'username': 'member001', 'available': '120.50'})
    """

    def __init__(
        self,
        store: Store,
        link_registry: LinkRegistry,
        profile_sync: ProfileSync,
        event_logger: EventLogger,
        ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.link_registry = link_registry
        self.profile_sync = profile_sync
        self.event_logger = event_logger
        self.ttl = timedelta(minutes=ttl_minutes or DEFAULT_TTL_MINUTES)
        self.clock = clock

    def create_session(
        self,
        external_identity_id: str,
        profile: Dict[str, Any] = None,
        sync_id: str = None
    ) -> SyncSession:
        """
        Start a handshake for a messaging identity.

        Re-registering an existing sync_id overwrites the row instead of
        adding one, so retries with the same key are idempotent.

        Raises:
            ValidationError: external_identity_id missing
            StorageError / StorageTimeoutError: the session row could not be written
        """
        if not external_identity_id:
            raise ValidationError('externalIdentityId is required', 'externalIdentityId')

        sync_id = sync_id or generate_sync_id()
        now = self.clock()
        expires_at = now + self.ttl

        with self.store.transaction():
            self.store.upsert(
                SyncSession,
                {
                    'sync_id': sync_id,
                    'external_identity_id': external_identity_id,
                    'status': STATUS_WAITING,
                    'expires_at': expires_at,
                    'created_at': now,
                },
                conflict_columns=['sync_id'],
                update_columns=['external_identity_id', 'status', 'expires_at', 'created_at'],
                update_values={'loyalty_data': None, 'completed_at': None},
            )

        logger.info(f"Sync session {sync_id} created for {external_identity_id}")

        # Side effects run after the session is committed and never fail it
        if profile:
            self.profile_sync.upsert_profile(external_identity_id, profile)
        self.event_logger.info(
            'sync_session',
            'Sync session created',
            {'syncId': sync_id, 'expiresAt': expires_at.isoformat()},
            user_id=external_identity_id,
        )

        return self.load_session(sync_id)

    def load_session(self, sync_id: str) -> Optional[SyncSession]:
        """Raw stored row, without applying the expiry predicate."""
        if not sync_id:
            return None
        stmt = select(SyncSession).where(SyncSession.sync_id == sync_id)
        return self.store.execute(stmt, operation='load sync session').scalars().first()

    def get_session(self, sync_id: str) -> Optional[Dict[str, Any]]:
        """Session view with expiry applied, or None for an unknown token."""
        session = self.load_session(sync_id)
        if session is None:
            return None
        return self.describe(session)

    def find_pending(self, external_identity_id: str) -> Optional[Dict[str, Any]]:
        """Oldest session for the identity that can still complete a link, or None."""
        if not external_identity_id:
            raise ValidationError('externalIdentityId is required', 'externalIdentityId')

        now = self.clock()
        stmt = (
            select(SyncSession)
            .where(
                SyncSession.external_identity_id == external_identity_id,
                SyncSession.status == STATUS_WAITING,
                SyncSession.expires_at >= now,
            )
            .order_by(SyncSession.created_at.asc(), SyncSession.id.asc())
            .limit(1)
        )
        session = self.store.execute(stmt, operation='find pending sync session').scalars().first()
        if session is None:
            return None
        return self.describe(session, now)

    def describe(self, session: SyncSession, now: datetime = None) -> Dict[str, Any]:
        now = now or self.clock()
        status = session.effective_status(now)
        remaining = (session.expires_at - now).total_seconds() if status == STATUS_WAITING else 0
        return {
            'syncId': session.sync_id,
            'externalIdentityId': session.external_identity_id,
            'status': status,
            'expired': status == STATUS_EXPIRED,
            'usable': session.is_usable(now),
            'expiresAt': session.expires_at.isoformat() if session.expires_at else None,
            'createdAt': session.created_at.isoformat() if session.created_at else None,
            'completedAt': session.completed_at.isoformat() if session.completed_at else None,
            'timeRemainingSeconds': max(int(remaining), 0),
        }

    def mark_linked(self, sync_id: str, account_snapshot: Dict[str, Any]) -> Dict[str, Any]:
        """
        Confirm a handshake: store the account, link it, close the session.

        Returns:
            Dict with the session view and the resulting link snapshot

        Raises:
            ValidationError: missing sync_id or account username
            SyncSessionNotFoundError: unknown sync_id
            InvalidStatusTransitionError: session expired or already linked
            LinkConflictError: account actively linked to another identity
        """
        if not sync_id:
            raise ValidationError('syncId is required', 'syncId')
        account = normalize_account(account_snapshot)
        username = account['username']

        session = self.load_session(sync_id)
        if session is None:
            raise SyncSessionNotFoundError(sync_id)

        now = self.clock()
        status = session.effective_status(now)
        if status != STATUS_WAITING:
            raise InvalidStatusTransitionError('sync session', status, STATUS_LINKED)

        external_identity_id = session.external_identity_id
        current = self.link_registry.resolve_by_loyalty_username(username)
        if current is not None and current.is_linked and \
                current.external_identity_id != external_identity_id:
            raise LinkConflictError(username)

        with self.store.transaction():
            # Guarded transition: a concurrent completion or expiry leaves 0 rows
            result = self.store.execute(
                update(SyncSession)
                .where(
                    SyncSession.sync_id == sync_id,
                    SyncSession.status == STATUS_WAITING,
                    SyncSession.expires_at >= now,
                )
                .values(
                    status=STATUS_LINKED,
                    completed_at=now,
                    loyalty_data=_payload(account_snapshot),
                ),
                operation='complete sync session'
            )
            if (result.rowcount or 0) == 0:
                raise InvalidStatusTransitionError('sync session', STATUS_WAITING, STATUS_LINKED)

            self.link_registry.write_account(account_snapshot)
            self.link_registry.write_link(external_identity_id, username, 'socket')

        logger.info(f"Sync session {sync_id} linked {external_identity_id} -> {username}")
        self.event_logger.info(
            'sync_session',
            'Account linked',
            {'syncId': sync_id, 'username': username, 'method': 'socket'},
            user_id=external_identity_id,
        )

        snapshot = self.link_registry.resolve_by_external_id(external_identity_id)
        return {
            'session': self.describe(self.load_session(sync_id)),
            'link': snapshot.to_dict() if snapshot else None,
        }


def _payload(account_snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """Confirmation payload as stored on the session, JSON-safe."""
    return {key: (str(value) if not isinstance(value, (str, int, float, bool, type(None))) else value)
            for key, value in (account_snapshot or {}).items()}
