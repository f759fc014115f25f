import hmac

from flask import Blueprint, current_app, jsonify, request

from rent_tracker.utils.rent_checker import build_rent_checker

cron_bp = Blueprint('cron', __name__)


def _authorized():
    secret = current_app.config.get('CRON_SECRET')
    if not secret:
        current_app.logger.warning("CRON_SECRET is not set, refusing scheduled rent check")
        return False
    header = request.headers.get('Authorization', '')
    return hmac.compare_digest(header.encode(), f'Bearer {secret}'.encode())


@cron_bp.route('/check-rent', methods=['GET', 'POST'])
def check_rent():
    if not _authorized():
        return jsonify({'error': 'Unauthorized'}), 401

    current_app.logger.info("Starting daily rent check...")
    try:
        results = build_rent_checker().check_all_rent_payments()
    except Exception as exc:
        current_app.logger.error("Error in rent check cron job: %s", exc, exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Internal server error',
            'message': str(exc),
        }), 500

    errors = [
        {'property_id': r.property_id, 'address': r.address, 'error': r.error}
        for r in results if r.error
    ]
    current_app.logger.info(
        "Rent check completed. Checked %d properties, %d errors", len(results), len(errors)
    )
    return jsonify({
        'success': True,
        'message': f'Checked {len(results)} properties',
        'checked': len(results),
        'received': sum(1 for r in results if r.rent_received),
        'errors': errors,
        'results': [r.to_dict() for r in results],
    })
