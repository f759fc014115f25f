from dataclasses import dataclass
from datetime import date
from typing import Optional

from flask import current_app
from flask_mail import Message
from markupsafe import escape

from rent_tracker.extensions import mail
from rent_tracker.utils.errors import NotificationFailed


@dataclass
class NotificationOutcome:
    landlord_sent: bool = False
    tenant_sent: bool = False


def _format_due_date(value: date) -> str:
    return value.strftime('%d %b %Y')


def _landlord_message(property_address, tenant_name, received, due_date):
    status = 'Payment received on time' if received else 'Payment not received'
    headline = 'Rent Received!' if received else 'Rent NOT Received'
    colour = '#10b981' if received else '#ef4444'
    body = (
        f"{headline}\n\n"
        f"Property: {property_address}\n"
        f"Tenant: {tenant_name}\n"
        f"Due Date: {_format_due_date(due_date)}\n"
        f"Status: {status}\n\n"
        "This is an automated notification from RentTracker."
    )
    address, tenant = escape(property_address), escape(tenant_name)
    html = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
          <h1 style="color: #1e293b;">RentTracker</h1>
          <div style="border-left: 4px solid {colour}; padding: 16px 24px;">
            <h2>{headline}</h2>
            <p><strong>Property:</strong> {address}</p>
            <p><strong>Tenant:</strong> {tenant}</p>
            <p><strong>Due Date:</strong> {_format_due_date(due_date)}</p>
            <p><strong>Status:</strong> {status}</p>
          </div>
          <p style="color: #94a3b8;">This is an automated notification from RentTracker.</p>
        </div>
    """
    return body, html


def _tenant_message(property_address, tenant_name, due_date):
    body = (
        f"Dear {tenant_name},\n\n"
        f"This is a reminder that your rent payment for {property_address} was due on "
        f"{_format_due_date(due_date)} and has not yet been received.\n"
        "Please arrange payment as soon as possible to avoid any late fees or further action.\n"
        "If you have already made the payment, please disregard this notice.\n"
    )
    address, tenant = escape(property_address), escape(tenant_name)
    html = f"""
        <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
          <h1 style="color: #1e293b;">RentTracker</h1>
          <div style="border-left: 4px solid #ef4444; padding: 16px 24px;">
            <h2>Rent Payment Reminder</h2>
            <p>Dear {tenant},</p>
            <p>This is a reminder that your rent payment for <strong>{address}</strong>
               was due on {_format_due_date(due_date)} and has not yet been received.</p>
            <p>Please arrange payment as soon as possible to avoid any late fees or further action.</p>
            <p>If you have already made the payment, please disregard this notice.</p>
          </div>
        </div>
    """
    return body, html


class RentNotifier:
    """Sends rent status mails; a failed mail is logged and reported, never raised."""

    def __init__(self, sender: Optional[str] = None):
        self.sender = sender

    def _send(self, recipient, subject, body, html):
        try:
            msg = Message(
                subject=subject,
                recipients=[recipient],
                body=body,
                html=html,
                sender=self.sender or current_app.config.get('MAIL_DEFAULT_SENDER'),
            )
            mail.send(msg)
        except Exception as exc:
            raise NotificationFailed(recipient, str(exc)) from exc
        current_app.logger.info("Rent mail '%s' sent to %s", subject, recipient)

    def _try_send(self, recipient, subject, body, html) -> bool:
        if not recipient:
            current_app.logger.warning("Rent mail '%s' skipped, no recipient address", subject)
            return False
        try:
            self._send(recipient, subject, body, html)
        except NotificationFailed as exc:
            current_app.logger.error("%s", exc, exc_info=True)
            return False
        return True

    def send_rent_status(
        self,
        landlord_email: Optional[str],
        tenant_email: Optional[str],
        property_address: str,
        tenant_name: str,
        received: bool,
        due_date: date,
        notify_tenant: bool,
    ) -> NotificationOutcome:
        outcome = NotificationOutcome()

        subject = (
            f"Rent Received - {property_address}" if received
            else f"Rent NOT Received - {property_address}"
        )
        body, html = _landlord_message(property_address, tenant_name, received, due_date)
        outcome.landlord_sent = self._try_send(landlord_email, subject, body, html)

        if not received and notify_tenant:
            body, html = _tenant_message(property_address, tenant_name, due_date)
            outcome.tenant_sent = self._try_send(
                tenant_email, f"Rent Payment Reminder - {property_address}", body, html
            )
        return outcome
