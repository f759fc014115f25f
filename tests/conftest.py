from __future__ import annotations

from datetime import date

import pytest

from rent_tracker import create_app
from rent_tracker.extensions import db
from rent_tracker.models import Property, User
from rent_tracker.utils.bank_client import Account, Transaction
from rent_tracker.utils.notifications import NotificationOutcome

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "SECRET_KEY": "test-secret",
    "JWT_SECRET_KEY": "test-jwt-secret-key-with-enough-length",
    "CRON_SECRET": "test-cron",
    "MAIL_SUPPRESS_SEND": True,
    "MAIL_DEFAULT_SENDER": "rent@example.com",
}


@pytest.fixture
def app():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    user = User(email="landlord@example.com", name="Lana Landlord")
    user.set_password("correct-horse")
    user.bank_app_token = "app_token_1234"
    user.bank_user_token = "user_token_5678"
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def auth_headers(client, user):
    resp = client.post(
        "/auth/api-login",
        json={"email": "landlord@example.com", "password": "correct-horse"},
    )
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.get_json()['access_token']}"}


def make_property(user, **overrides) -> Property:
    fields = {
        "address": "12 Main Street, Wellington",
        "tenant_name": "Sam Smith",
        "tenant_email": "sam@example.com",
        "rent_due_day": 2,
        "rent_frequency": "WEEKLY",
        "keyword_match": "SMITH RENT",
        "notify_tenant_on_missed": False,
    }
    fields.update(overrides)
    prop = Property(user_id=user.id, **fields)
    db.session.add(prop)
    db.session.commit()
    return prop


class FakeBankClient:
    """In-memory stand-in for AkahuClient, keyed by account id."""

    def __init__(self, transactions_by_account=None, accounts=None) -> None:
        self.transactions_by_account = transactions_by_account or {}
        self.accounts = accounts
        if self.accounts is None:
            self.accounts = [Account(id=acc_id, name=f"Account {acc_id}") for acc_id in self.transactions_by_account]
        self.calls: list[tuple[str, date, date]] = []

    def get_accounts(self):
        return list(self.accounts)

    def get_transactions(self, account_id, start, end):
        self.calls.append((account_id, start, end))
        return [
            txn for txn in self.transactions_by_account.get(account_id, [])
            if start <= txn.date <= end
        ]

    def test_connection(self):
        return True


class FakeNotifier:
    def __init__(self, landlord_ok: bool = True, tenant_ok: bool = True) -> None:
        self.landlord_ok = landlord_ok
        self.tenant_ok = tenant_ok
        self.sent: list[dict] = []

    def send_rent_status(self, landlord_email, tenant_email, property_address, tenant_name,
                         received, due_date, notify_tenant):
        self.sent.append({
            "landlord_email": landlord_email,
            "tenant_email": tenant_email,
            "address": property_address,
            "received": received,
            "due_date": due_date,
            "notify_tenant": notify_tenant,
        })
        return NotificationOutcome(
            landlord_sent=self.landlord_ok and bool(landlord_email),
            tenant_sent=self.tenant_ok and notify_tenant and bool(tenant_email),
        )


def txn(txn_id, day, description, amount, account_id="acc_1") -> Transaction:
    return Transaction(id=txn_id, account_id=account_id, date=day, description=description, amount=amount)
