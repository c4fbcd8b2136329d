"""
Pairing between an external identity and a loyalty account.
"""
from datetime import datetime
from ..extensions import db


LINK_METHODS = ('socket', 'manual', 'auto')


class AccountLink(db.Model):
    """
    One row per (external identity, loyalty username) pair.

    The pair is never duplicated; re-linking flips is_active back on.
    """
    __tablename__ = 'account_links'

    id = db.Column(db.Integer, primary_key=True)
    external_identity_id = db.Column(db.String(255), nullable=False, index=True)
    loyalty_username = db.Column(
        db.String(255),
        db.ForeignKey('loyalty_accounts.username', ondelete='CASCADE'),
        nullable=False,
        index=True
    )

    link_method = db.Column(db.String(50))  # socket, manual, auto
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    linked_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    account = db.relationship('LoyaltyAccount', backref=db.backref('links', lazy='dynamic'))

    __table_args__ = (
        db.UniqueConstraint('external_identity_id', 'loyalty_username', name='uq_account_link_pair'),
    )

    def __repr__(self):
        return f'<AccountLink {self.external_identity_id} -> {self.loyalty_username}>'

    def to_dict(self):
        return {
            'externalIdentityId': self.external_identity_id,
            'loyaltyUsername': self.loyalty_username,
            'linkMethod': self.link_method,
            'isActive': bool(self.is_active),
            'linkedAt': self.linked_at.isoformat() if self.linked_at else None,
        }
