from functools import wraps

from flask import Blueprint, current_app, g, jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from rent_tracker.extensions import db
from rent_tracker.models import User
from rent_tracker.utils.due_dates import get_next_rent_due_date
from rent_tracker.utils.errors import InvalidSchedule
from rent_tracker.utils.repositories import PropertyRepository, RentCheckRepository

main_bp = Blueprint('main', __name__)


def login_required(f):
    """JWT guard that also rejects deleted or deactivated users."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user = db.session.get(User, get_jwt_identity())
        if not user or not user.is_active:
            return jsonify({'error': 'Unauthorized', 'message': 'Account is inactive or unknown'}), 401
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def current_user():
    return g.current_user


def next_due_date_or_none(prop):
    try:
        return get_next_rent_due_date(
            prop.rent_due_day,
            prop.rent_frequency,
            cutoff_hour=current_app.config.get('RENT_CUTOFF_HOUR', 12),
        )
    except InvalidSchedule:
        return None


@main_bp.route('/dashboard')
@login_required
def dashboard():
    user = current_user()
    rent_checks = RentCheckRepository()

    entries = []
    for prop in PropertyRepository().list_for_user(user.id):
        next_due = next_due_date_or_none(prop)
        last_check = rent_checks.latest_for_property(prop.id)
        entries.append({
            **prop.to_dict(),
            'next_due_date': next_due.isoformat() if next_due else None,
            'last_check': last_check.to_dict() if last_check else None,
        })

    return jsonify({
        'user': {'id': user.id, 'email': user.email, 'name': user.name},
        'bank_configured': user.bank_configured,
        'properties': entries,
        'property_count': len(entries),
    })
