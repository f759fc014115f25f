from flask import Blueprint, current_app, jsonify, request

from rent_tracker.extensions import db
from rent_tracker.routes.main import current_user, login_required
from rent_tracker.utils.bank_client import create_bank_client
from rent_tracker.utils.errors import NotConfigured

settings_bp = Blueprint('settings', __name__)


def _mask(token):
    if not token:
        return None
    if len(token) <= 8:
        return '*' * len(token)
    return f"{token[:4]}{'*' * (len(token) - 8)}{token[-4:]}"


def _settings_payload(user):
    return {
        'bank_app_token': _mask(user.bank_app_token),
        'bank_user_token': _mask(user.bank_user_token),
        'bank_configured': user.bank_configured,
    }


@settings_bp.route('', methods=['GET'])
@login_required
def get_settings():
    return jsonify(_settings_payload(current_user()))


@settings_bp.route('', methods=['PUT'])
@login_required
def update_settings():
    data = request.get_json(silent=True) or {}
    errors = [
        f'{key}: Must be a string'
        for key in ('bank_app_token', 'bank_user_token')
        if data.get(key) is not None and not isinstance(data.get(key), str)
    ]
    if errors:
        return jsonify({'error': 'Invalid input', 'details': errors}), 400

    user = current_user()
    # empty values disconnect the bank
    user.bank_app_token = (data.get('bank_app_token') or '').strip() or None
    user.bank_user_token = (data.get('bank_user_token') or '').strip() or None
    db.session.commit()
    current_app.logger.info("Bank settings updated for user %s (configured=%s)", user.id, user.bank_configured)
    return jsonify(_settings_payload(user))


@settings_bp.route('/test-connection', methods=['POST'])
@login_required
def test_connection():
    try:
        client = create_bank_client(current_user())
    except NotConfigured as exc:
        return jsonify({'success': False, 'error': str(exc)}), 400

    connected = client.test_connection()
    return jsonify({
        'success': connected,
        'message': 'Connected to Akahu' if connected else 'Could not connect to Akahu',
    })
