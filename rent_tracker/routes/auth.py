import re
from datetime import datetime

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import create_access_token
from sqlalchemy import func

from rent_tracker.extensions import db
from rent_tracker.models import User

auth_bp = Blueprint('auth', __name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


@auth_bp.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}

    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    name = (data.get('name') or '').strip()

    errors = []
    if not EMAIL_PATTERN.match(email):
        errors.append('email: Invalid email address')
    if len(password) < 8:
        errors.append('password: Must be at least 8 characters')
    if errors:
        return jsonify({'error': 'Invalid input', 'details': errors}), 400

    if User.query.filter(func.lower(User.email) == email).first():
        return jsonify({'error': 'A user with this email already exists'}), 409

    user = User(email=email, name=name or None)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Registered user %s", user.id)

    return jsonify({'id': user.id, 'email': user.email, 'name': user.name}), 201


# Token login for the frontend and API clients
@auth_bp.route('/api-login', methods=['POST'])
def api_login():
    data = request.get_json(silent=True) or {}

    email = (data.get('email') or data.get('username') or '').strip().lower()
    password = data.get('password')

    user = None
    if email:
        user = User.query.filter(func.lower(User.email) == email).first()

    if user and user.is_active is False:
        return jsonify({'error': 'Account is inactive. Please contact an administrator.'}), 403

    if user and password and user.check_password(password):
        user.last_login = datetime.utcnow()
        db.session.commit()
        current_app.logger.info("LOGIN SUCCESS for user %s", user.id)
        access_token = create_access_token(identity=str(user.id))
        return jsonify({
            'access_token': access_token,
            'user': {'id': user.id, 'email': user.email, 'name': user.name}
        })

    current_app.logger.info("LOGIN FAILED for %s", email or '<empty>')
    return jsonify({'error': 'Invalid credentials'}), 401


@auth_bp.route('/api/logout', methods=['POST'])
def api_logout():
    """Tokens are stateless, the client simply drops its token."""
    return jsonify({'message': 'Successfully logged out'}), 200


@auth_bp.route('/status')
def status():
    return jsonify({'status': 'OK', 'service': 'Rent Tracker API'})
