"""
External (messaging platform) identity model.
"""
from datetime import datetime
from ..extensions import db


class ExternalIdentity(db.Model):
    """
    A messaging-platform user, keyed by the platform's own user id.

    Rows are created and refreshed by ProfileSync and never deleted here.
    """
    __tablename__ = 'external_identities'

    id = db.Column(db.Integer, primary_key=True)
    external_identity_id = db.Column(db.String(255), unique=True, nullable=False)

    # Profile attributes (last write wins)
    display_name = db.Column(db.String(255))
    avatar_url = db.Column(db.Text)
    status_message = db.Column(db.Text)
    locale = db.Column(db.String(10), default='th')

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<ExternalIdentity {self.external_identity_id}>'

    def to_dict(self):
        return {
            'externalIdentityId': self.external_identity_id,
            'displayName': self.display_name,
            'avatarUrl': self.avatar_url,
            'statusMessage': self.status_message,
            'locale': self.locale,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
