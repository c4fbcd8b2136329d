"""
Persistent store adapter.

Wraps a SQLAlchemy session drawn from the Flask-SQLAlchemy connection pool.
Every service gets a Store handed to its constructor; nothing below reaches
for the global session on its own.

Guarantees:
- every call is bounded (statement_timeout on PostgreSQL, pool_timeout on checkout)
- timeouts surface as StorageTimeoutError, other driver failures as StorageError
- unique keys are written with a single INSERT ... ON CONFLICT DO UPDATE
- the session is rolled back on every error path
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from ..utils.exceptions import CardLinkError, StorageError, StorageTimeoutError

logger = logging.getLogger(__name__)

# SQLSTATE for "canceling statement due to statement timeout"
QUERY_CANCELED = '57014'

_DIALECT_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def _is_query_canceled(error: OperationalError) -> bool:
    orig = getattr(error, 'orig', None)
    code = getattr(orig, 'pgcode', None) or getattr(orig, 'sqlstate', None)
    return code == QUERY_CANCELED


class Store:
    """
    Thin adapter over one pooled session.

    Usage:
        store = Store(db.session, statement_timeout_ms=5000)

        with store.transaction():
            store.upsert(SyncSession, values, conflict_columns=['sync_id'],
                         update_columns=['status', 'expires_at'])

        row = store.execute(select(SyncSession).where(...)).scalars().first()
    """

    def __init__(self, session, statement_timeout_ms: Optional[int] = None):
        self.session = session
        self.statement_timeout_ms = statement_timeout_ms

    @property
    def dialect(self) -> str:
        return self.session.get_bind().dialect.name

    def execute(self, stmt, params: Dict[str, Any] = None, timeout_ms: int = None,
                operation: str = None):
        """
        Execute one statement under a time bound.

        Args:
            stmt: SQLAlchemy statement
            params: Optional bound parameters
            timeout_ms: Per-call bound; falls back to the store default
            operation: Short label used in logs and error details

        Returns:
            SQLAlchemy Result

        Raises:
            StorageTimeoutError: the bound was exceeded (statement or pool checkout)
            StorageError: any other store failure
        """
        timeout_ms = timeout_ms or self.statement_timeout_ms
        operation = operation or _describe(stmt)
        try:
            if timeout_ms and self.dialect == 'postgresql':
                # Scoped to the current transaction only
                self.session.execute(text(f'SET LOCAL statement_timeout = {int(timeout_ms)}'))
            if params:
                return self.session.execute(stmt, params)
            return self.session.execute(stmt)
        except PoolTimeoutError as e:
            self._rollback_quietly()
            logger.error(f"Connection pool exhausted during {operation}")
            raise StorageTimeoutError(operation, timeout_ms, e) from e
        except OperationalError as e:
            self._rollback_quietly()
            if _is_query_canceled(e):
                logger.error(f"Store call timed out: {operation} ({timeout_ms}ms)")
                raise StorageTimeoutError(operation, timeout_ms, e) from e
            logger.error(f"Store operational error during {operation}: {e}")
            raise StorageError(detail=_detail(operation, e), original_error=e) from e
        except SQLAlchemyError as e:
            self._rollback_quietly()
            logger.error(f"Store error during {operation}: {e}")
            raise StorageError(detail=_detail(operation, e), original_error=e) from e

    def upsert(
        self,
        model,
        values: Dict[str, Any],
        conflict_columns: Iterable[str],
        update_columns: Iterable[str] = (),
        update_values: Dict[str, Any] = None,
        timeout_ms: int = None,
    ):
        """
        Insert a row; on unique-key violation update it, in one statement.

        Args:
            model: Mapped model class
            values: Column values for the insert
            conflict_columns: Columns of the unique constraint
            update_columns: Columns overwritten from the proposed row on conflict
            update_values: Extra explicit values applied on conflict
        """
        insert = _DIALECT_INSERTS.get(self.dialect)
        if insert is None:
            raise StorageError(detail=f"upsert unsupported on dialect {self.dialect}")

        stmt = insert(model).values(**values)
        set_ = {column: stmt.excluded[column] for column in update_columns}
        if update_values:
            set_.update(update_values)

        if set_:
            stmt = stmt.on_conflict_do_update(index_elements=list(conflict_columns), set_=set_)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))

        return self.execute(stmt, timeout_ms=timeout_ms, operation=f"upsert {model.__tablename__}")

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self._rollback_quietly()
            if isinstance(e, PoolTimeoutError) or (
                isinstance(e, OperationalError) and _is_query_canceled(e)
            ):
                raise StorageTimeoutError('commit', self.statement_timeout_ms, e) from e
            raise StorageError(detail=_detail('commit', e), original_error=e) from e

    def rollback(self) -> None:
        self._rollback_quietly()

    @contextmanager
    def transaction(self):
        """Unit of work: commit on success, roll back on every error path."""
        try:
            yield self
        except CardLinkError:
            self._rollback_quietly()
            raise
        except SQLAlchemyError as e:
            self._rollback_quietly()
            raise StorageError(detail=_detail('transaction', e), original_error=e) from e
        except Exception:
            self._rollback_quietly()
            raise
        self.commit()

    def ping(self, timeout_ms: int = None) -> str:
        """Round-trip to the store. Returns the dialect name."""
        self.execute(text('SELECT 1'), timeout_ms=timeout_ms, operation='ping')
        self.commit()
        return self.dialect

    def _rollback_quietly(self) -> None:
        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            # Connection already gone; the pool discards it on release
            logger.warning(f"Rollback failed: {e}")


def _describe(stmt) -> str:
    table = getattr(stmt, 'table', None)
    if table is not None:
        return f"{stmt.__visit_name__} {table.name}"
    return getattr(stmt, '__visit_name__', 'statement')


def _detail(operation: str, error: SQLAlchemyError) -> str:
    """Operator-facing detail: operation plus driver error class, no SQL text."""
    orig = getattr(error, 'orig', None)
    kind = type(orig).__name__ if orig is not None else type(error).__name__
    return f"{operation}: {kind}"
