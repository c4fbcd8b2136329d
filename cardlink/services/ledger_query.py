"""
Ledger Query Engine - filtered, paginated reads over the transactions table.

The page and its total are two separate queries built from the same
predicate. They are not snapshotted together, so under concurrent inserts
the count can disagree with the page by the rows written in between.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func, or_, select

from ..models import LedgerTransaction
from ..utils.exceptions import ValidationError
from .store import Store

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def clamp_limit(value) -> int:
    """Limit within [1, MAX_LIMIT]; missing, malformed or < 1 becomes the default."""
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if limit < 1:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


def clamp_offset(value) -> int:
    try:
        offset = int(value)
    except (TypeError, ValueError):
        return 0
    return max(offset, 0)


def parse_date(value, end_of_day: bool = False, field_name: str = 'date') -> Optional[datetime]:
    """
    Parse an ISO-8601 date or timestamp into a naive UTC datetime.

    A bare date means the start of that day, or its last microsecond when
    end_of_day is set, so an inclusive upper bound covers the whole day.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end_of_day else time.min)
    else:
        text = str(value).strip()
        try:
            if len(text) == 10:
                day = date.fromisoformat(text)
                parsed = datetime.combine(day, time.max if end_of_day else time.min)
            else:
                if text.endswith('Z') or text.endswith('z'):
                    text = text[:-1] + '+00:00'
                parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f'Invalid {field_name}: {value}', field_name)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@dataclass
class LedgerFilter:
    """Normalized ledger query input for one resolved account."""
    external_identity_id: Optional[str] = None
    loyalty_username: Optional[str] = None
    transaction_type: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def __post_init__(self):
        self.limit = clamp_limit(self.limit)
        self.offset = clamp_offset(self.offset)

    @classmethod
    def from_params(
        cls,
        external_identity_id: str = None,
        loyalty_username: str = None,
        limit=None,
        offset=None,
        transaction_type: str = None,
        date_from=None,
        date_to=None,
    ) -> 'LedgerFilter':
        """
        Build a filter from raw caller input (query strings or JSON values).

        Raises:
            ValidationError: a date bound is malformed, or the range is inverted
        """
        start = parse_date(date_from, field_name='dateFrom')
        end = parse_date(date_to, end_of_day=True, field_name='dateTo')
        if start and end and start > end:
            raise ValidationError('dateFrom must not be after dateTo', 'dateFrom')

        return cls(
            external_identity_id=external_identity_id or None,
            loyalty_username=loyalty_username or None,
            transaction_type=(transaction_type or '').strip() or None,
            date_from=start,
            date_to=end,
            limit=limit,
            offset=offset,
        )


@dataclass
class LedgerPage:
    items: List[LedgerTransaction] = field(default_factory=list)
    total: int = 0
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    def to_pagination(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'limit': self.limit,
            'offset': self.offset,
            'hasMore': self.has_more,
        }


class LedgerQueryEngine:
    """
    Read-only queries over ledger transactions.

    Usage:
        engine = LedgerQueryEngine(store)
        page = engine.query_transactions(LedgerFilter.from_params(
            external_identity_id='U123', loyalty_username='member001',
            limit=request.args.get('limit'), transaction_type='deposit'
        ))
    """

    def __init__(self, store: Store):
        self.store = store

    def _conditions(self, ledger_filter: LedgerFilter) -> list:
        username = ledger_filter.loyalty_username
        identity = ledger_filter.external_identity_id
        if username and identity:
            # Identity tag only counts for rows the producer left without an account
            scope = or_(
                LedgerTransaction.loyalty_username == username,
                and_(
                    LedgerTransaction.loyalty_username.is_(None),
                    LedgerTransaction.external_identity_id == identity,
                ),
            )
        elif username:
            scope = LedgerTransaction.loyalty_username == username
        elif identity:
            scope = LedgerTransaction.external_identity_id == identity
        else:
            raise ValidationError('An account identifier is required to query transactions')

        conditions = [scope]
        if ledger_filter.transaction_type:
            conditions.append(LedgerTransaction.transaction_type == ledger_filter.transaction_type)
        if ledger_filter.date_from:
            conditions.append(LedgerTransaction.created_at >= ledger_filter.date_from)
        if ledger_filter.date_to:
            conditions.append(LedgerTransaction.created_at <= ledger_filter.date_to)
        return conditions

    def query_transactions(self, ledger_filter: LedgerFilter) -> LedgerPage:
        """One page, newest first (ties by insertion order), plus the total."""
        conditions = self._conditions(ledger_filter)
        stmt = (
            select(LedgerTransaction)
            .where(*conditions)
            .order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id.desc())
            .limit(ledger_filter.limit)
            .offset(ledger_filter.offset)
        )
        items = list(self.store.execute(stmt, operation='query transactions').scalars().all())
        total = self.count(ledger_filter)

        logger.debug(
            f"Ledger page for {ledger_filter.loyalty_username or ledger_filter.external_identity_id}: "
            f"{len(items)} of {total}"
        )
        return LedgerPage(items=items, total=total, limit=ledger_filter.limit,
                          offset=ledger_filter.offset)

    def count(self, ledger_filter: LedgerFilter) -> int:
        stmt = select(func.count(LedgerTransaction.id)).where(*self._conditions(ledger_filter))
        return int(self.store.execute(stmt, operation='count transactions').scalar() or 0)

    def summary(self, ledger_filter: LedgerFilter) -> Dict[str, Dict[str, Any]]:
        """
        Count and amount total per transaction type for the filter predicate.

        Amounts stay Decimal; callers convert at the response boundary.
        """
        stmt = (
            select(
                LedgerTransaction.transaction_type,
                func.count(LedgerTransaction.id),
                func.coalesce(func.sum(LedgerTransaction.amount), 0),
            )
            .where(*self._conditions(ledger_filter))
            .group_by(LedgerTransaction.transaction_type)
            .order_by(LedgerTransaction.transaction_type)
        )
        rows = self.store.execute(stmt, operation='summarize transactions').all()
        return {
            transaction_type: {'count': int(count), 'total': Decimal(str(total))}
            for transaction_type, count, total in rows
        }
