from flask import Blueprint, current_app, jsonify, request

from rent_tracker.extensions import db
from rent_tracker.models import Property, RENT_FREQUENCIES
from rent_tracker.routes.auth import EMAIL_PATTERN
from rent_tracker.routes.main import current_user, login_required, next_due_date_or_none
from rent_tracker.utils.repositories import PropertyRepository, RentCheckRepository
from rent_tracker.utils.rent_checker import build_rent_checker

properties_bp = Blueprint('properties', __name__)


def _parse_property_payload(data):
    """Validate a create/update body, returns (values, errors)."""
    errors = []

    address = str(data.get('address') or '').strip()
    if len(address) < 5:
        errors.append('address: Must be at least 5 characters')

    tenant_name = str(data.get('tenant_name') or '').strip()
    if len(tenant_name) < 2:
        errors.append('tenant_name: Must be at least 2 characters')

    tenant_email = str(data.get('tenant_email') or '').strip()
    if not EMAIL_PATTERN.match(tenant_email):
        errors.append('tenant_email: Invalid email address')

    rent_frequency = str(data.get('rent_frequency') or '').upper()
    if rent_frequency not in RENT_FREQUENCIES:
        errors.append(f"rent_frequency: Must be one of {', '.join(RENT_FREQUENCIES)}")

    rent_due_day = data.get('rent_due_day')
    if isinstance(rent_due_day, bool) or not isinstance(rent_due_day, int):
        errors.append('rent_due_day: Must be a whole number')
    else:
        upper = 7 if rent_frequency in ('WEEKLY', 'FORTNIGHTLY') else 31
        if not 1 <= rent_due_day <= upper:
            errors.append(f'rent_due_day: Must be between 1 and {upper}')

    keyword_match = str(data.get('keyword_match') or '').strip()
    if len(keyword_match) < 2:
        errors.append('keyword_match: Must be at least 2 characters')

    notify = data.get('notify_tenant_on_missed', False)
    if not isinstance(notify, bool):
        errors.append('notify_tenant_on_missed: Must be true or false')

    values = {
        'address': address,
        'tenant_name': tenant_name,
        'tenant_email': tenant_email,
        'rent_due_day': rent_due_day,
        'rent_frequency': rent_frequency,
        'keyword_match': keyword_match,
        'notify_tenant_on_missed': notify,
    }
    return values, errors


def _invalid(errors):
    return jsonify({'error': 'Invalid input', 'details': errors, 'message': ', '.join(errors)}), 400


def _owned_property_or_404(property_id):
    prop = PropertyRepository().get_for_user(property_id, current_user().id)
    if prop is None:
        return None, (jsonify({'error': 'Property not found'}), 404)
    return prop, None


def _serialize(prop):
    next_due = next_due_date_or_none(prop)
    return {**prop.to_dict(), 'next_due_date': next_due.isoformat() if next_due else None}


@properties_bp.route('', methods=['GET'])
@login_required
def list_properties():
    properties = PropertyRepository().list_for_user(current_user().id)
    return jsonify([_serialize(prop) for prop in properties])


@properties_bp.route('', methods=['POST'])
@login_required
def create_property():
    values, errors = _parse_property_payload(request.get_json(silent=True) or {})
    if errors:
        current_app.logger.info("Property validation failed: %s", errors)
        return _invalid(errors)

    prop = Property(user_id=current_user().id, **values)
    db.session.add(prop)
    db.session.commit()
    current_app.logger.info("Property %s created for user %s", prop.id, current_user().id)
    return jsonify(_serialize(prop)), 201


@properties_bp.route('/<property_id>', methods=['GET'])
@login_required
def get_property(property_id):
    prop, error = _owned_property_or_404(property_id)
    if error:
        return error
    return jsonify(_serialize(prop))


@properties_bp.route('/<property_id>', methods=['PUT'])
@login_required
def update_property(property_id):
    prop, error = _owned_property_or_404(property_id)
    if error:
        return error

    values, errors = _parse_property_payload(request.get_json(silent=True) or {})
    if errors:
        return _invalid(errors)

    for key, value in values.items():
        setattr(prop, key, value)
    db.session.commit()
    return jsonify(_serialize(prop))


@properties_bp.route('/<property_id>', methods=['DELETE'])
@login_required
def delete_property(property_id):
    prop, error = _owned_property_or_404(property_id)
    if error:
        return error

    PropertyRepository().archive(prop)
    current_app.logger.info("Property %s archived, rent check history kept", property_id)
    return jsonify({'message': 'Property deleted successfully'})


@properties_bp.route('/<property_id>/rent-checks', methods=['GET'])
@login_required
def property_rent_checks(property_id):
    prop, error = _owned_property_or_404(property_id)
    if error:
        return error

    limit = min(max(request.args.get('limit', 50, type=int), 1), 500)
    checks = RentCheckRepository().list_for_property(prop.id, limit=limit)
    return jsonify([check.to_dict() for check in checks])


@properties_bp.route('/<property_id>/check-rent', methods=['POST'])
@login_required
def check_rent(property_id):
    """Manual check, always runs even if this cycle was already checked."""
    prop, error = _owned_property_or_404(property_id)
    if error:
        return error

    result = build_rent_checker().check_rent_for_property(prop.id)
    return jsonify(result.to_dict())
