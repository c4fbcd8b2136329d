"""
Profile Sync - keeps external identity profile attributes current.

Profile staleness never blocks linking, so upsert_profile swallows its own
failures (see run_best_effort).
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select

from ..models import ExternalIdentity
from ..utils.exceptions import BestEffortFailure, ValidationError
from .event_logger import run_best_effort
from .store import Store

logger = logging.getLogger(__name__)

# Incoming attribute name -> column. Messaging platforms send camelCase.
PROFILE_FIELDS = {
    'displayName': 'display_name',
    'display_name': 'display_name',
    'avatarUrl': 'avatar_url',
    'pictureUrl': 'avatar_url',
    'picture_url': 'avatar_url',
    'statusMessage': 'status_message',
    'status_message': 'status_message',
    'locale': 'locale',
    'language': 'locale',
}


def normalize_profile(attributes: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Map caller-supplied attributes onto columns, keeping only provided keys."""
    columns = {}
    for key, value in (attributes or {}).items():
        column = PROFILE_FIELDS.get(key)
        if column and value is not None:
            columns[column] = value
    return columns


class ProfileSync:
    """Upserts ExternalIdentity rows keyed by the messaging identity."""

    def __init__(self, store: Store):
        self.store = store

    def upsert_profile(
        self,
        external_identity_id: str,
        attributes: Dict[str, Any] = None
    ) -> Optional[BestEffortFailure]:
        """
        Create or refresh an identity profile.

        Every provided attribute overwrites the stored one (last write wins,
        no per-field merge). Never raises.

        Returns:
            None on success, BestEffortFailure otherwise
        """
        return run_best_effort(
            'profile_sync', self._write, external_identity_id, normalize_profile(attributes)
        )

    def get_profile(self, external_identity_id: str) -> Optional[ExternalIdentity]:
        stmt = select(ExternalIdentity).where(
            ExternalIdentity.external_identity_id == external_identity_id
        )
        return self.store.execute(stmt).scalars().first()

    def _write(self, external_identity_id: str, columns: Dict[str, Any]) -> None:
        if not external_identity_id:
            raise ValidationError('externalIdentityId is required', 'externalIdentityId')

        now = datetime.utcnow()
        values = dict(columns)
        values.update(
            external_identity_id=external_identity_id,
            created_at=now,
            updated_at=now,
        )
        with self.store.transaction():
            self.store.upsert(
                ExternalIdentity,
                values,
                conflict_columns=['external_identity_id'],
                update_columns=list(columns.keys()),
                update_values={'updated_at': now},
            )
        logger.info(f"Profile synced for {external_identity_id}: {sorted(columns)}")
