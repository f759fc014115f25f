from datetime import date, timedelta

from flask import Blueprint, current_app, jsonify, request

from rent_tracker.routes.main import current_user, login_required
from rent_tracker.utils.bank_client import create_bank_client
from rent_tracker.utils.errors import NotConfigured, UpstreamError, UpstreamForbidden, UpstreamUnauthorized
from rent_tracker.utils.payment_matching import extract_keywords

transactions_bp = Blueprint('transactions', __name__)

MAX_TRANSACTIONS = 100


def _upstream_error_response(exc):
    # bad tokens are the user's to fix, everything else is the bank's fault
    status = 400 if isinstance(exc, (UpstreamUnauthorized, UpstreamForbidden)) else 502
    return jsonify({'success': False, 'error': str(exc)}), status


@transactions_bp.route('/browse')
@login_required
def browse_transactions():
    """Recent incoming transactions with keyword suggestions for new properties."""
    account_id = request.args.get('account_id') or None
    days = min(max(request.args.get('days', 90, type=int), 1), 365)
    min_amount = request.args.get('min_amount', 0.0, type=float)
    search = (request.args.get('search') or '').strip()

    try:
        client = create_bank_client(current_user())
    except NotConfigured as exc:
        return jsonify({
            'success': False,
            'error': str(exc),
            'message': 'Please add your Akahu tokens in the settings first',
        }), 400

    try:
        accounts = client.get_accounts()
        if not accounts:
            return jsonify({
                'success': False,
                'error': 'No accounts found',
                'message': 'No bank accounts are accessible with the current Akahu configuration',
            })

        transactions = []
        if account_id:
            account = next((acc for acc in accounts if acc.id == account_id), None)
            if account is None:
                return jsonify({'success': False, 'error': 'Account not found'}), 404

            end = date.today()
            start = end - timedelta(days=days)
            found = [
                t for t in client.get_transactions(account.id, start, end)
                if t.amount >= min_amount and t.amount > 0
                and (not search or search.casefold() in t.description.casefold())
            ]
            found.sort(key=lambda t: t.date, reverse=True)
            transactions = [
                {
                    'id': t.id,
                    'date': t.date.isoformat(),
                    'description': t.description,
                    'amount': t.amount,
                    'account_id': t.account_id,
                    'account_name': account.name,
                    'suggested_keywords': extract_keywords(t.description),
                }
                for t in found[:MAX_TRANSACTIONS]
            ]
    except UpstreamError as exc:
        current_app.logger.warning("Browsing transactions failed: %s", exc)
        return _upstream_error_response(exc)

    return jsonify({
        'success': True,
        'accounts': [
            {
                'id': acc.id,
                'name': acc.name,
                'type': acc.type,
                'account_number': acc.account_number or 'N/A',
            }
            for acc in accounts
        ],
        'transactions': transactions,
        'search_params': {
            'account_id': account_id,
            'days': days,
            'min_amount': min_amount,
            'search': search,
        },
    })
