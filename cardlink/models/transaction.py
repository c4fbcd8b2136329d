"""
Ledger transaction model.

Rows are written by the external ledger producer and are read-only here.
"""
from datetime import datetime
from ..extensions import db


class LedgerTransaction(db.Model):
    """Immutable ledger entry for a loyalty account."""
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(255), unique=True, nullable=False)

    # Either side of the link may be tagged by the producer
    external_identity_id = db.Column(db.String(255), index=True)
    loyalty_username = db.Column(db.String(255), index=True)

    transaction_type = db.Column(db.String(50), nullable=False, index=True)  # deposit, withdraw, bet, win, bonus
    amount = db.Column(db.Numeric(15, 2), default=0)
    balance_before = db.Column(db.Numeric(15, 2))
    balance_after = db.Column(db.Numeric(15, 2))
    description = db.Column(db.Text)
    source = db.Column(db.String(100))  # console_log, api, webhook
    details = db.Column(db.JSON)

    processed_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f'<LedgerTransaction {self.transaction_id}: {self.transaction_type} {self.amount}>'

    def to_dict(self):
        # Decimal -> float only here, at the response boundary
        return {
            'transactionId': self.transaction_id,
            'type': self.transaction_type,
            'amount': float(self.amount or 0),
            'balanceBefore': float(self.balance_before or 0),
            'balanceAfter': float(self.balance_after or 0),
            'description': self.description,
            'source': self.source,
            'details': self.details,
            'timestamp': (self.processed_at or self.created_at).isoformat()
            if (self.processed_at or self.created_at) else None,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
