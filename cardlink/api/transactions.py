"""
Transactions API - paginated ledger history for a linked account.
"""
from flask import Blueprint, jsonify

from ..services.ledger_query import LedgerFilter
from ..utils.exceptions import AccountNotFoundError, ValidationError
from . import get_ledger_engine, get_link_registry, identity_param, pick, request_params, username_param

transactions_bp = Blueprint('transactions', __name__)


def resolve_account(params: dict):
    """
    Resolve the caller's identifiers to a link snapshot.

    Raises:
        ValidationError: neither identifier supplied
        AccountNotFoundError: identifiers do not resolve to an active account
    """
    external_identity_id = identity_param(params)
    username = username_param(params)
    if not external_identity_id and not username:
        raise ValidationError('externalIdentityId or username is required')

    registry = get_link_registry()
    if external_identity_id:
        snapshot = registry.resolve_by_external_id(external_identity_id, require_active_account=True)
    else:
        snapshot = registry.resolve_by_loyalty_username(username, require_active_account=True)
    if snapshot is None:
        raise AccountNotFoundError(external_identity_id or username)
    return snapshot


@transactions_bp.route('', methods=['GET', 'POST'])
def list_transactions():
    """
    List ledger transactions, newest first.

    Params (query or JSON body):
    - externalIdentityId / username: account to read (one required)
    - limit: page size (default 10, max 100)
    - offset: rows to skip (default 0)
    - type: transaction type filter
    - dateFrom / dateTo: inclusive ISO-8601 bounds
    """
    params = request_params()
    snapshot = resolve_account(params)

    ledger_filter = LedgerFilter.from_params(
        external_identity_id=snapshot.external_identity_id,
        loyalty_username=snapshot.account_id,
        limit=params.get('limit'),
        offset=params.get('offset'),
        transaction_type=pick(params, 'type', 'transactionType'),
        date_from=pick(params, 'dateFrom', 'date_from'),
        date_to=pick(params, 'dateTo', 'date_to'),
    )
    page = get_ledger_engine().query_transactions(ledger_filter)

    return jsonify({
        'success': True,
        'data': {
            'transactions': [t.to_dict() for t in page.items],
            'pagination': page.to_pagination(),
            'account': {
                'username': snapshot.account_id,
                'displayName': snapshot.display_name,
            },
        },
    })
