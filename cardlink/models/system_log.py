"""
Append-only audit log.
"""
from datetime import datetime
from ..extensions import db


class SystemLog(db.Model):
    """Audit event written by EventLogger. Best-effort; never updated."""
    __tablename__ = 'system_logs'

    id = db.Column(db.Integer, primary_key=True)
    level = db.Column(db.String(20), default='INFO')  # DEBUG, INFO, WARN, ERROR
    source = db.Column(db.String(100))
    message = db.Column(db.Text)
    data = db.Column(db.JSON)
    user_id = db.Column(db.String(255), index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<SystemLog {self.level} {self.source}>'

    def to_dict(self):
        return {
            'id': self.id,
            'level': self.level,
            'source': self.source,
            'message': self.message,
            'data': self.data,
            'userId': self.user_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
