"""
Cached copy of an account owned by the external loyalty platform.
"""
from datetime import datetime
from decimal import Decimal
from ..extensions import db


DEFAULT_TIER = 'Bronze'


class LoyaltyAccount(db.Model):
    """
    Loyalty account snapshot.

    The loyalty platform is the owner; this table only caches the fields
    we display (balance, tier, points) and is refreshed by upsert.
    """
    __tablename__ = 'loyalty_accounts'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(255), unique=True, nullable=False)

    # Legal name parts and contact
    first_name = db.Column(db.String(255))
    last_name = db.Column(db.String(255))
    phone = db.Column(db.String(50))
    email = db.Column(db.String(255))

    # Balances (decimal at rest)
    balance = db.Column(db.Numeric(15, 2), default=Decimal('0'))
    credit_limit = db.Column(db.Numeric(15, 2), default=Decimal('0'))
    tier = db.Column(db.String(50), default=DEFAULT_TIER)
    points = db.Column(db.Integer, default=0)

    is_active = db.Column(db.Boolean, default=True)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<LoyaltyAccount {self.username}>'

    @property
    def full_name(self):
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None

    @property
    def display_name(self):
        return self.full_name or self.username

    def to_dict(self):
        return {
            'username': self.username,
            'displayName': self.display_name,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'phone': self.phone,
            'email': self.email,
            'balance': float(self.balance or 0),
            'creditLimit': float(self.credit_limit or 0),
            'tier': self.tier or DEFAULT_TIER,
            'points': int(self.points or 0),
            'isActive': bool(self.is_active),
            'lastLogin': self.last_login.isoformat() if self.last_login else None,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
