from flask import Flask, jsonify
from flask_cors import CORS
from datetime import datetime
from importlib import import_module
import logging
import os

from sqlalchemy import inspect, text

# Import extensions from extensions module
from rent_tracker.extensions import db, jwt, mail


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


def _database_url(data_dir):
    url = os.environ.get('DATABASE_URL')
    if not url:
        return 'sqlite:///' + os.path.join(data_dir, 'rent_tracker.db')
    # Heroku style URLs are not accepted by SQLAlchemy
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


def create_app(config=None):
    app = Flask(__name__)

    # Configuration
    data_dir = os.path.abspath(os.environ.get('DATA_DIR', 'data'))
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = _database_url(data_dir)
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JWT_SECRET_KEY'] = os.environ.get('JWT_SECRET_KEY', 'jwt-secret-key-change-me')
    app.config['CRON_SECRET'] = os.environ.get('CRON_SECRET')
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')

    # Akahu bank feed
    app.config['AKAHU_BASE_URL'] = os.environ.get('AKAHU_BASE_URL', 'https://api.akahu.io/v1')
    app.config['AKAHU_ACCOUNTS_TIMEOUT'] = float(os.environ.get('AKAHU_ACCOUNTS_TIMEOUT', 10))
    app.config['AKAHU_TRANSACTIONS_TIMEOUT'] = float(os.environ.get('AKAHU_TRANSACTIONS_TIMEOUT', 15))

    # Rent check
    app.config['RENT_SEARCH_WINDOW_DAYS'] = int(os.environ.get('RENT_SEARCH_WINDOW_DAYS', 7))
    app.config['RENT_CUTOFF_HOUR'] = int(os.environ.get('RENT_CUTOFF_HOUR', 12))

    # Mail
    app.config['MAIL_SERVER'] = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    app.config['MAIL_PORT'] = int(os.environ.get('MAIL_PORT', 587))
    app.config['MAIL_USE_TLS'] = _env_flag('MAIL_USE_TLS', 'true')
    app.config['MAIL_USERNAME'] = os.environ.get('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.environ.get('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.environ.get('MAIL_DEFAULT_SENDER') or os.environ.get('MAIL_USERNAME')

    if config:
        app.config.update(config)

    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///') and not app.config.get('TESTING'):
        os.makedirs(data_dir, exist_ok=True)

    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))

    # Initialize extensions with app
    db.init_app(app)
    jwt.init_app(app)
    mail.init_app(app)
    CORS(app, resources={r"/api/*": {"origins": "*"}, r"/auth/*": {"origins": "*"}})

    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)
    initialize_database(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        try:
            db.session.execute(text('SELECT 1'))
            db_status = 'connected'
        except Exception as e:
            db_status = f'disconnected: {str(e)}'

        return jsonify({
            'status': 'healthy',
            'database': db_status,
            'timestamp': datetime.now().isoformat()
        })

    return app


BLUEPRINTS = [
    # (module, blueprint, url prefix)
    ('auth', 'auth_bp', '/auth'),
    ('main', 'main_bp', '/api'),
    ('properties', 'properties_bp', '/api/properties'),
    ('settings', 'settings_bp', '/api/settings'),
    ('transactions', 'transactions_bp', '/api/transactions'),
    ('cron', 'cron_bp', '/api/cron'),
]


def register_blueprints(app):
    """Register all blueprints to avoid circular imports"""
    print("📋 Registering blueprints...")

    for module_name, blueprint_name, url_prefix in BLUEPRINTS:
        try:
            module = import_module(f'rent_tracker.routes.{module_name}')
            app.register_blueprint(getattr(module, blueprint_name), url_prefix=url_prefix)
            print(f"✅ {module_name.capitalize()} routes registered at {url_prefix}")
        except ImportError as e:
            print(f"❌ Failed to import {module_name} routes: {e}")

    app.logger.debug("Registered routes: %s", sorted(rule.rule for rule in app.url_map.iter_rules()))


def register_error_handlers(app):
    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Bad request'}), 400

    @app.errorhandler(401)
    def unauthorized(error):
        return jsonify({'error': 'Unauthorized'}), 401

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'error': 'Internal server error'}), 500

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'error': 'Unauthorized', 'message': reason}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'error': 'Unauthorized', 'message': reason}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'error': 'Unauthorized', 'message': 'Token has expired'}), 401


def register_commands(app):
    @app.cli.command('check-rent')
    def check_rent_command():
        """Run the daily rent check for all properties."""
        from rent_tracker.utils.rent_checker import build_rent_checker

        results = build_rent_checker().check_all_rent_payments()
        print(f"✅ Checked {len(results)} properties")
        for result in results:
            status = 'received' if result.rent_received else 'NOT received'
            if result.error:
                status = f'error: {result.error}'
            print(f"  📍 {result.address} ({result.tenant_name}): {status}")


def initialize_database(app):
    """Create missing tables once all models are imported"""
    with app.app_context():
        from rent_tracker import models  # noqa: F401

        db.create_all()
        ensure_archiving_columns()
        app.logger.info("Database tables ready (%s)", app.config['SQLALCHEMY_DATABASE_URI'].split('://')[0])


def ensure_archiving_columns():
    """Add the archive columns to property tables created before archiving existed."""
    inspector = inspect(db.engine)
    if not inspector.has_table('properties'):
        return

    existing = {col['name'] for col in inspector.get_columns('properties')}
    missing = {
        name: ddl
        for name, ddl in {
            'is_archived': 'is_archived BOOLEAN NOT NULL DEFAULT FALSE',
            'archived_at': 'archived_at TIMESTAMP',
        }.items()
        if name not in existing
    }
    if not missing:
        return

    with db.engine.begin() as conn:
        for ddl in missing.values():
            conn.execute(text(f"ALTER TABLE properties ADD COLUMN {ddl}"))
    print(f"✅ Added property columns: {', '.join(missing)}")
