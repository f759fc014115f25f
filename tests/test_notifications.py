from datetime import date

from rent_tracker.extensions import mail
from rent_tracker.utils.notifications import RentNotifier

DUE = date(2024, 1, 8)


def _send(notifier, **overrides):
    kwargs = {
        "landlord_email": "landlord@example.com",
        "tenant_email": "sam@example.com",
        "property_address": "12 Main Street",
        "tenant_name": "Sam Smith",
        "received": True,
        "due_date": DUE,
        "notify_tenant": False,
    }
    kwargs.update(overrides)
    return notifier.send_rent_status(**kwargs)


def test_received_rent_only_mails_the_landlord(app):
    with mail.record_messages() as outbox:
        outcome = _send(RentNotifier(), notify_tenant=True)

    assert outcome.landlord_sent is True
    assert outcome.tenant_sent is False
    assert len(outbox) == 1
    assert outbox[0].subject == "Rent Received - 12 Main Street"
    assert outbox[0].recipients == ["landlord@example.com"]
    assert "08 Jan 2024" in outbox[0].body


def test_missed_rent_mails_tenant_when_asked(app):
    with mail.record_messages() as outbox:
        outcome = _send(RentNotifier(), received=False, notify_tenant=True)

    assert outcome.landlord_sent and outcome.tenant_sent
    assert [m.subject for m in outbox] == [
        "Rent NOT Received - 12 Main Street",
        "Rent Payment Reminder - 12 Main Street",
    ]
    assert outbox[1].recipients == ["sam@example.com"]


def test_missed_rent_without_tenant_flag(app):
    with mail.record_messages() as outbox:
        outcome = _send(RentNotifier(), received=False, notify_tenant=False)

    assert outcome.landlord_sent and not outcome.tenant_sent
    assert len(outbox) == 1


def test_missing_recipient_is_skipped(app):
    with mail.record_messages() as outbox:
        outcome = _send(RentNotifier(), landlord_email=None, tenant_email=None, received=False, notify_tenant=True)

    assert not outcome.landlord_sent
    assert not outcome.tenant_sent
    assert outbox == []


def test_send_failure_is_reported_not_raised(app, monkeypatch):
    def broken_send(message):
        raise ConnectionRefusedError("smtp down")

    monkeypatch.setattr(mail, "send", broken_send)

    outcome = _send(RentNotifier(), received=False, notify_tenant=True)

    assert not outcome.landlord_sent
    assert not outcome.tenant_sent


def test_html_escapes_user_supplied_text(app):
    with mail.record_messages() as outbox:
        _send(RentNotifier(), property_address="<b>Flat 1</b>")

    assert "&lt;b&gt;Flat 1&lt;/b&gt;" in outbox[0].html
    assert "<b>Flat 1</b>" in outbox[0].body
