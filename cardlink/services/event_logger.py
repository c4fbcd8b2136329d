"""
Audit event sink backed by the system_logs table.

Writes are best-effort: a failure is logged once through the module logger
and handed back as a BestEffortFailure value, never raised.
"""
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy import insert

from ..models import SystemLog
from ..utils.exceptions import BestEffortFailure
from .store import Store

logger = logging.getLogger(__name__)

LEVELS = ('DEBUG', 'INFO', 'WARN', 'ERROR')


def run_best_effort(source: str, fn: Callable, *args, **kwargs) -> Optional[BestEffortFailure]:
    """
    Run a side-effect operation whose failure must not reach the caller.

    Returns:
        None on success, otherwise the BestEffortFailure (already logged)
    """
    try:
        fn(*args, **kwargs)
        return None
    except Exception as e:
        failure = BestEffortFailure(source, e)
        logger.warning(f"Best-effort {source} failed: {e}")
        return failure


def _jsonable(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if data is None:
        return None
    return json.loads(json.dumps(data, default=str))


class EventLogger:
    """
    Append-only audit logger.

    Call it outside of an open unit of work: each event commits on its own
    so a failed write only discards itself.
    """

    def __init__(self, store: Store):
        self.store = store

    def log(
        self,
        level: str,
        source: str,
        message: str,
        data: Dict[str, Any] = None,
        user_id: str = None
    ) -> Optional[BestEffortFailure]:
        level = (level or 'INFO').upper()
        if level not in LEVELS:
            level = 'INFO'
        return run_best_effort(
            f'event_logger:{source}', self._write, level, source, message, data, user_id
        )

    def debug(self, source: str, message: str, data: Dict[str, Any] = None, user_id: str = None):
        return self.log('DEBUG', source, message, data, user_id)

    def info(self, source: str, message: str, data: Dict[str, Any] = None, user_id: str = None):
        return self.log('INFO', source, message, data, user_id)

    def warn(self, source: str, message: str, data: Dict[str, Any] = None, user_id: str = None):
        return self.log('WARN', source, message, data, user_id)

    def error(self, source: str, message: str, data: Dict[str, Any] = None, user_id: str = None):
        return self.log('ERROR', source, message, data, user_id)

    def _write(self, level, source, message, data, user_id) -> None:
        stmt = insert(SystemLog).values(
            level=level,
            source=source,
            message=message,
            data=_jsonable(data),
            user_id=user_id,
            created_at=datetime.utcnow(),
        )
        with self.store.transaction():
            self.store.execute(stmt, operation='insert system_logs')
