from rent_tracker.extensions import db
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
import uuid

RENT_FREQUENCIES = ('WEEKLY', 'FORTNIGHTLY', 'MONTHLY')


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(100))
    password_hash = db.Column(db.String(256), nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    # Akahu credentials, both are needed before rent can be checked
    bank_app_token = db.Column(db.String(255))
    bank_user_token = db.Column(db.String(255))

    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    properties = db.relationship('Property', back_populates='user', lazy=True)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def bank_configured(self):
        return bool(self.bank_app_token and self.bank_user_token)


class Property(db.Model):
    __tablename__ = 'properties'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)

    address = db.Column(db.String(255), nullable=False)
    tenant_name = db.Column(db.String(100), nullable=False)
    tenant_email = db.Column(db.String(120))

    # 1-31 for MONTHLY, 1 (Sunday) - 7 (Saturday) for WEEKLY and FORTNIGHTLY
    rent_due_day = db.Column(db.Integer, nullable=False)
    rent_frequency = db.Column(db.String(20), nullable=False, default='MONTHLY')
    keyword_match = db.Column(db.String(100), nullable=False)
    notify_tenant_on_missed = db.Column(db.Boolean, default=False)

    # DELETE archives the property, its rent checks are kept
    is_archived = db.Column(db.Boolean, default=False, nullable=False)
    archived_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', back_populates='properties')
    rent_checks = db.relationship(
        'RentCheck',
        back_populates='property',
        lazy=True,
        order_by='RentCheck.check_date.desc()',
    )

    def to_dict(self):
        return {
            'id': self.id,
            'address': self.address,
            'tenant_name': self.tenant_name,
            'tenant_email': self.tenant_email,
            'rent_due_day': self.rent_due_day,
            'rent_frequency': self.rent_frequency,
            'keyword_match': self.keyword_match,
            'notify_tenant_on_missed': bool(self.notify_tenant_on_missed),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class RentCheck(db.Model):
    """Append-only history of rent checks, one row per check run."""
    __tablename__ = 'rent_checks'
    __table_args__ = (
        db.Index('ix_rent_checks_property_cycle', 'property_id', 'rent_due_date'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    property_id = db.Column(db.String(36), db.ForeignKey('properties.id'), nullable=False, index=True)
    check_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    rent_due_date = db.Column(db.Date, nullable=False)
    rent_received = db.Column(db.Boolean, nullable=False, default=False)
    amount = db.Column(db.Float)
    transaction_id = db.Column(db.String(100))
    landlord_notified = db.Column(db.Boolean, default=False)
    tenant_notified = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    property = db.relationship('Property', back_populates='rent_checks')

    def to_dict(self):
        return {
            'id': self.id,
            'property_id': self.property_id,
            'check_date': self.check_date.isoformat() if self.check_date else None,
            'rent_due_date': self.rent_due_date.isoformat() if self.rent_due_date else None,
            'rent_received': bool(self.rent_received),
            'amount': self.amount,
            'transaction_id': self.transaction_id,
            'landlord_notified': bool(self.landlord_notified),
            'tenant_notified': bool(self.tenant_notified),
        }
