"""
Link Registry - owns the pairing between a messaging identity and a loyalty account.

INVARIANTS:
- one account_links row per (external_identity_id, loyalty_username) pair,
  enforced by uq_account_link_pair and written only through an atomic upsert
- re-linking an existing pair reactivates it instead of inserting a new row
- lookups by identity return the most recently linked active row
- lookups by username tell "unknown account" (None) apart from
  "known account, not linked" (snapshot with no identity side)
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from sqlalchemy import and_, func, select, update

from ..models import (
    AccountLink,
    ExternalIdentity,
    LoyaltyAccount,
    LINK_METHODS,
    DEFAULT_TIER,
)
from ..utils.exceptions import NotFoundError, ValidationError
from .store import Store

logger = logging.getLogger(__name__)


@dataclass
class LinkSnapshot:
    """Joined view of a link, its identity profile, and the loyalty account."""
    account_id: str
    external_identity_id: Optional[str]
    display_name: Optional[str]
    phone: Optional[str]
    points: int
    tier: str
    balance: Decimal
    linked_at: Optional[datetime]
    updated_at: Optional[datetime]
    is_active: bool
    link_method: Optional[str] = None

    @property
    def is_linked(self) -> bool:
        return self.is_active and self.external_identity_id is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'accountId': self.account_id,
            'externalIdentityId': self.external_identity_id,
            'displayName': self.display_name,
            'phone': self.phone,
            'points': self.points,
            'tier': self.tier,
            'balance': float(self.balance or 0),
            'linkedAt': self.linked_at.isoformat() if self.linked_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
            'isActive': self.is_active,
            'linkMethod': self.link_method,
        }


def _snapshot(account: LoyaltyAccount, link: Optional[AccountLink],
              identity: Optional[ExternalIdentity]) -> LinkSnapshot:
    display_name = identity.display_name if identity and identity.display_name else account.display_name
    return LinkSnapshot(
        account_id=account.username,
        external_identity_id=link.external_identity_id if link else None,
        display_name=display_name,
        phone=account.phone,
        points=int(account.points or 0),
        tier=account.tier or DEFAULT_TIER,
        balance=account.balance if account.balance is not None else Decimal('0'),
        linked_at=link.linked_at if link else None,
        updated_at=account.updated_at,
        is_active=bool(link.is_active) if link else False,
        link_method=link.link_method if link else None,
    )


def _decimal(value, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'Invalid {field}', field)


def _int(value, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field}', field)


def _flag(value, field: str) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes')
    return bool(value)


# Loyalty platform payload key -> (column, converter)
ACCOUNT_FIELDS = {
    'first_name': ('first_name', None),
    'firstName': ('first_name', None),
    'last_name': ('last_name', None),
    'lastName': ('last_name', None),
    'tel': ('phone', None),
    'phone': ('phone', None),
    'email': ('email', None),
    'available': ('balance', _decimal),
    'balance': ('balance', _decimal),
    'credit_limit': ('credit_limit', _decimal),
    'creditLimit': ('credit_limit', _decimal),
    'tier': ('tier', None),
    'points': ('points', _int),
    'is_active': ('is_active', _flag),
    'isActive': ('is_active', _flag),
}


def normalize_account(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a loyalty platform account payload onto LoyaltyAccount columns.

    Raises:
        ValidationError: username missing or a numeric field is malformed
    """
    snapshot = snapshot or {}
    username = snapshot.get('username') or snapshot.get('mm_user')
    if not username:
        raise ValidationError('username is required', 'username')

    columns = {'username': str(username).strip()}
    for key, (column, convert) in ACCOUNT_FIELDS.items():
        if key in snapshot and snapshot[key] is not None:
            columns[column] = convert(snapshot[key], column) if convert else snapshot[key]
    return columns


class LinkRegistry:
    """
    Resolves and maintains identity <-> loyalty account links.

    Usage:
        registry = LinkRegistry(store)

        snapshot = registry.resolve_by_external_id('U123')
        registry.upsert_link('U123', 'member001', 'socket')
    """

    def __init__(self, store: Store):
        self.store = store

    # ==================== Lookups ====================

    def resolve(self, external_identity_id: str = None, loyalty_username: str = None,
                require_active_account: bool = False) -> Optional[LinkSnapshot]:
        """
        Resolve whichever identifier was supplied; the external identity wins.

        Raises:
            NotFoundError: neither identifier supplied
        """
        if external_identity_id:
            return self.resolve_by_external_id(external_identity_id, require_active_account)
        if loyalty_username:
            return self.resolve_by_loyalty_username(loyalty_username, require_active_account)
        raise NotFoundError('Account')

    def resolve_by_external_id(self, external_identity_id: str,
                               require_active_account: bool = False) -> Optional[LinkSnapshot]:
        """Most recently linked active link for the identity, or None."""
        stmt = (
            select(AccountLink, LoyaltyAccount, ExternalIdentity)
            .join(LoyaltyAccount, LoyaltyAccount.username == AccountLink.loyalty_username)
            .outerjoin(
                ExternalIdentity,
                ExternalIdentity.external_identity_id == AccountLink.external_identity_id
            )
            .where(
                AccountLink.external_identity_id == external_identity_id,
                AccountLink.is_active.is_(True),
            )
            .order_by(AccountLink.linked_at.desc(), AccountLink.id.desc())
            .limit(1)
        )
        if require_active_account:
            stmt = stmt.where(LoyaltyAccount.is_active.is_(True))

        row = self.store.execute(stmt, operation='resolve link by identity').first()
        if row is None:
            return None
        link, account, identity = row
        return _snapshot(account, link, identity)

    def resolve_by_loyalty_username(self, loyalty_username: str,
                                    require_active_account: bool = False) -> Optional[LinkSnapshot]:
        """
        Snapshot for a loyalty account.

        Returns None for an unknown account; a known account without an
        active link comes back with external_identity_id=None.
        """
        account_stmt = select(LoyaltyAccount).where(LoyaltyAccount.username == loyalty_username)
        if require_active_account:
            account_stmt = account_stmt.where(LoyaltyAccount.is_active.is_(True))
        account = self.store.execute(account_stmt, operation='load loyalty account').scalars().first()
        if account is None:
            return None

        link_stmt = (
            select(AccountLink, ExternalIdentity)
            .outerjoin(
                ExternalIdentity,
                ExternalIdentity.external_identity_id == AccountLink.external_identity_id
            )
            .where(
                AccountLink.loyalty_username == loyalty_username,
                AccountLink.is_active.is_(True),
            )
            .order_by(AccountLink.linked_at.desc(), AccountLink.id.desc())
            .limit(1)
        )
        row = self.store.execute(link_stmt, operation='resolve link by username').first()
        if row is None:
            return _snapshot(account, None, None)
        link, identity = row
        return _snapshot(account, link, identity)

    def get_link(self, external_identity_id: str, loyalty_username: str) -> Optional[AccountLink]:
        stmt = select(AccountLink).where(
            AccountLink.external_identity_id == external_identity_id,
            AccountLink.loyalty_username == loyalty_username,
        )
        return self.store.execute(stmt, operation='load link').scalars().first()

    def username_availability(self, loyalty_username: str) -> Dict[str, Any]:
        """Whether a loyalty account exists and is free to be linked."""
        snapshot = self.resolve_by_loyalty_username(loyalty_username)
        if snapshot is None:
            return {'exists': False, 'available': True, 'account': None}
        return {
            'exists': True,
            'available': not snapshot.is_linked,
            'account': snapshot.to_dict(),
        }

    def stats(self) -> Dict[str, int]:
        """Link statistics across all identities."""
        since = datetime.utcnow() - timedelta(hours=24)

        total_identities = self.store.execute(
            select(func.count(ExternalIdentity.id)), operation='count identities'
        ).scalar() or 0
        new_identities = self.store.execute(
            select(func.count(ExternalIdentity.id)).where(ExternalIdentity.created_at > since),
            operation='count new identities'
        ).scalar() or 0
        active_links = self.store.execute(
            select(func.count(AccountLink.id)).where(AccountLink.is_active.is_(True)),
            operation='count active links'
        ).scalar() or 0
        linked_identities = self.store.execute(
            select(func.count(func.distinct(AccountLink.external_identity_id)))
            .where(AccountLink.is_active.is_(True)),
            operation='count linked identities'
        ).scalar() or 0

        return {
            'total_identities': int(total_identities),
            'linked_identities': int(linked_identities),
            'unlinked_identities': max(int(total_identities) - int(linked_identities), 0),
            'active_links': int(active_links),
            'new_identities_24h': int(new_identities),
        }

    # ==================== Writes ====================

    def upsert_link(self, external_identity_id: str, loyalty_username: str,
                    method: str = 'manual') -> AccountLink:
        """
        Create or reactivate the link for a pair. Idempotent.

        Returns:
            The stored AccountLink row
        """
        with self.store.transaction():
            self.write_link(external_identity_id, loyalty_username, method)

        logger.info(f"Link upserted: {external_identity_id} -> {loyalty_username} ({method})")
        return self.get_link(external_identity_id, loyalty_username)

    def write_link(self, external_identity_id: str, loyalty_username: str,
                   method: str = 'manual') -> None:
        """
        Stage the link upsert in the caller's unit of work (no commit).

        Any other active link for the same identity is switched off so the
        newest pairing is the only active one.
        """
        if not external_identity_id:
            raise ValidationError('externalIdentityId is required', 'externalIdentityId')
        if not loyalty_username:
            raise ValidationError('username is required', 'username')
        if method not in LINK_METHODS:
            raise ValidationError(f'Unknown link method: {method}', 'linkMethod')

        now = datetime.utcnow()
        self.store.upsert(
            AccountLink,
            {
                'external_identity_id': external_identity_id,
                'loyalty_username': loyalty_username,
                'link_method': method,
                'is_active': True,
                'linked_at': now,
                'updated_at': now,
            },
            conflict_columns=['external_identity_id', 'loyalty_username'],
            update_columns=['link_method'],
            update_values={'is_active': True, 'linked_at': now, 'updated_at': now},
        )
        self.store.execute(
            update(AccountLink)
            .where(
                AccountLink.external_identity_id == external_identity_id,
                AccountLink.loyalty_username != loyalty_username,
                AccountLink.is_active.is_(True),
            )
            .values(is_active=False, updated_at=now),
            operation='deactivate superseded links'
        )

    def deactivate_link(self, external_identity_id: str, loyalty_username: str) -> bool:
        """Switch a pair off. The row stays; returns False if the pair was not active."""
        if not external_identity_id or not loyalty_username:
            raise ValidationError('externalIdentityId and username are required')

        with self.store.transaction():
            result = self.store.execute(
                update(AccountLink)
                .where(and_(
                    AccountLink.external_identity_id == external_identity_id,
                    AccountLink.loyalty_username == loyalty_username,
                    AccountLink.is_active.is_(True),
                ))
                .values(is_active=False, updated_at=datetime.utcnow()),
                operation='deactivate link'
            )
        deactivated = (result.rowcount or 0) > 0
        if deactivated:
            logger.info(f"Link deactivated: {external_identity_id} -> {loyalty_username}")
        return deactivated

    def upsert_account(self, snapshot: Dict[str, Any]) -> LoyaltyAccount:
        """Refresh the cached loyalty account copy. Last write wins per provided field."""
        with self.store.transaction():
            username = self.write_account(snapshot)
        return self.store.execute(
            select(LoyaltyAccount).where(LoyaltyAccount.username == username),
            operation='load loyalty account'
        ).scalars().first()

    def write_account(self, snapshot: Dict[str, Any]) -> str:
        """Stage the loyalty account upsert (no commit). Returns the username."""
        columns = normalize_account(snapshot)
        now = datetime.utcnow()
        values = dict(columns)
        values.update(created_at=now, updated_at=now, last_login=now)
        self.store.upsert(
            LoyaltyAccount,
            values,
            conflict_columns=['username'],
            update_columns=[c for c in columns if c != 'username'] + ['last_login'],
            update_values={'updated_at': now},
        )
        return columns['username']
