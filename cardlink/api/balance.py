"""
Balance API - balance, tier and ledger summary for a linked identity.
"""
from flask import Blueprint, jsonify

from ..services.ledger_query import LedgerFilter
from ..utils.exceptions import ValidationError
from . import get_ledger_engine, get_link_registry, identity_param, request_params

balance_bp = Blueprint('balance', __name__)


@balance_bp.route('', methods=['GET'])
def get_balance():
    params = request_params()
    external_identity_id = identity_param(params)
    if not external_identity_id:
        raise ValidationError('externalIdentityId is required', 'externalIdentityId')

    snapshot = get_link_registry().resolve_by_external_id(external_identity_id)
    if snapshot is None:
        return jsonify({'success': True, 'isLinked': False, 'data': None})

    summary = get_ledger_engine().summary(LedgerFilter(
        external_identity_id=external_identity_id,
        loyalty_username=snapshot.account_id,
    ))

    return jsonify({
        'success': True,
        'isLinked': True,
        'data': {
            'username': snapshot.account_id,
            'displayName': snapshot.display_name,
            'balance': float(snapshot.balance),
            'tier': snapshot.tier,
            'points': snapshot.points,
            'updatedAt': snapshot.updated_at.isoformat() if snapshot.updated_at else None,
            'summary': {
                transaction_type: {'count': row['count'], 'total': float(row['total'])}
                for transaction_type, row in summary.items()
            },
        },
    })
