"""
Link API - check, inspect, and remove identity <-> loyalty account links.
"""
import logging
from flask import Blueprint, jsonify

from ..utils.exceptions import AccountNotFoundError, ValidationError
from . import get_event_logger, get_link_registry, identity_param, request_params, username_param

logger = logging.getLogger(__name__)

linking_bp = Blueprint('linking', __name__)


@linking_bp.route('/check', methods=['GET', 'POST'])
def check_link():
    """
    Report whether an identity or loyalty account is linked.

    Params (query or JSON body):
    - externalIdentityId (alias lineUserId): messaging identity, wins if both given
    - username (alias loyaltyUsername): loyalty account

    Returns:
        {success, isLinked, data: LinkSnapshot | null}
    """
    params = request_params()
    external_identity_id = identity_param(params)
    username = username_param(params)
    if not external_identity_id and not username:
        raise ValidationError('externalIdentityId or username is required')

    registry = get_link_registry()
    if external_identity_id:
        snapshot = registry.resolve_by_external_id(external_identity_id)
        if snapshot is None:
            return jsonify({'success': True, 'isLinked': False, 'data': None})
    else:
        snapshot = registry.resolve_by_loyalty_username(username)
        if snapshot is None:
            raise AccountNotFoundError(username)

    return jsonify({
        'success': True,
        'isLinked': snapshot.is_linked,
        'data': snapshot.to_dict(),
    })


@linking_bp.route('/username/<username>', methods=['GET'])
def check_username(username):
    """Whether a loyalty username exists and is free to link."""
    result = get_link_registry().username_availability(username.strip())
    return jsonify({'success': True, 'username': username.strip(), **result})


@linking_bp.route('/stats', methods=['GET'])
def link_stats():
    return jsonify({'success': True, 'data': get_link_registry().stats()})


@linking_bp.route('/unlink', methods=['POST'])
def unlink():
    """
    Deactivate a link. The pair row is kept so a later re-link reactivates it.

    Body: {externalIdentityId, username}
    """
    params = request_params()
    external_identity_id = identity_param(params)
    username = username_param(params)
    if not external_identity_id or not username:
        raise ValidationError('externalIdentityId and username are required')

    deactivated = get_link_registry().deactivate_link(external_identity_id, username)
    if deactivated:
        get_event_logger().info(
            'link', 'Account unlinked', {'username': username}, user_id=external_identity_id
        )

    return jsonify({'success': True, 'unlinked': deactivated})
