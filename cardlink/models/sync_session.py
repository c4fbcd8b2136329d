"""
Sync session model for the out-of-band link handshake.
"""
from datetime import datetime
from ..extensions import db


STATUS_WAITING = 'waiting'
STATUS_LINKED = 'linked'
STATUS_EXPIRED = 'expired'  # derived at read time, never stored


class SyncSession(db.Model):
    """
    Short-lived handshake token.

    Expiry is a read-time predicate: a waiting row past expires_at reports
    as expired while the stored status stays 'waiting'.
    """
    __tablename__ = 'sync_sessions'

    id = db.Column(db.Integer, primary_key=True)
    sync_id = db.Column(db.String(255), unique=True, nullable=False)
    external_identity_id = db.Column(db.String(255), nullable=False, index=True)

    status = db.Column(db.String(50), default=STATUS_WAITING, nullable=False, index=True)
    loyalty_data = db.Column(db.JSON)  # Confirmation payload from the loyalty platform
    completed_at = db.Column(db.DateTime)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<SyncSession {self.sync_id} {self.status}>'

    def is_expired(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return now > self.expires_at

    def effective_status(self, now: datetime = None) -> str:
        if self.status == STATUS_WAITING and self.is_expired(now):
            return STATUS_EXPIRED
        return self.status

    def is_usable(self, now: datetime = None) -> bool:
        """Whether the session can still complete a link."""
        return self.effective_status(now) == STATUS_WAITING
