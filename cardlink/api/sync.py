"""
Sync API - handshake sessions that link a messaging identity to a loyalty account.

Flow:
1. The chat client calls /register and opens loginUrl?syncId=...
2. The loyalty platform confirms the login through /complete
3. The chat client polls /status until the session reads 'linked' or 'expired'
"""
import logging
from urllib.parse import urlencode

from flask import Blueprint, current_app, jsonify

from ..utils.exceptions import SyncSessionNotFoundError, ValidationError
from . import get_sync_manager, identity_param, pick, request_params

logger = logging.getLogger(__name__)

sync_bp = Blueprint('sync', __name__)


def _login_url(sync_id: str) -> str:
    base = current_app.config.get('LOYALTY_LOGIN_URL', '')
    separator = '&' if '?' in base else '?'
    return f"{base}{separator}{urlencode({'syncId': sync_id})}"


@sync_bp.route('/register', methods=['POST'])
def register():
    """
    Start a sync session.

    Body:
    - externalIdentityId (alias lineUserId): required
    - profile (alias userProfile): optional display name / avatar / locale

    The syncId is always generated here; a caller-supplied one is ignored.

    Returns:
        {success, data: {syncId, expiresAt, loginUrl}}
    """
    params = request_params()
    external_identity_id = identity_param(params)
    if not external_identity_id:
        raise ValidationError('externalIdentityId is required', 'externalIdentityId')

    profile = params.get('profile') or params.get('userProfile')
    if profile is not None and not isinstance(profile, dict):
        raise ValidationError('profile must be an object', 'profile')

    session = get_sync_manager().create_session(external_identity_id, profile=profile)

    return jsonify({
        'success': True,
        'data': {
            'syncId': session.sync_id,
            'expiresAt': session.expires_at.isoformat(),
            'loginUrl': _login_url(session.sync_id),
        },
    })


@sync_bp.route('/status', methods=['GET'])
def status():
    sync_id = pick(request_params(), 'syncId')
    if not sync_id:
        raise ValidationError('syncId is required', 'syncId')

    view = get_sync_manager().get_session(sync_id)
    if view is None:
        raise SyncSessionNotFoundError(sync_id)
    return jsonify({'success': True, 'data': view})


@sync_bp.route('/pending', methods=['GET', 'POST'])
def pending():
    """Oldest still-usable session for an identity; syncFound=false when none."""
    external_identity_id = identity_param(request_params())
    if not external_identity_id:
        raise ValidationError('externalIdentityId is required', 'externalIdentityId')

    view = get_sync_manager().find_pending(external_identity_id)
    return jsonify({'success': True, 'syncFound': view is not None, 'data': view})


@sync_bp.route('/complete', methods=['POST'])
def complete():
    """
    Confirmation from the loyalty platform.

    Body:
    - syncId: required
    - account (alias userData): loyalty account payload with at least username
    """
    params = request_params()
    sync_id = pick(params, 'syncId')
    if not sync_id:
        raise ValidationError('syncId is required', 'syncId')

    account = params.get('account') or params.get('userData')
    if not isinstance(account, dict):
        raise ValidationError('account is required', 'account')

    result = get_sync_manager().mark_linked(sync_id, account)
    return jsonify({'success': True, 'data': result})
