"""Transactional emails for squad events.

Subjects and bodies are rendered here; delivery goes through ``send_email``.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import current_app

from shopsquad.utils import EmailError, send_email

logger = logging.getLogger(__name__)

PAYMENT_REQUEST = "payment-request"
PAYMENT_CONFIRMATION = "payment-confirmation"
PAYMENT_NOTIFICATION = "payment-notification"
PARTY_COMPLETE = "party-complete"

EMAIL_TEMPLATES = {
    PAYMENT_REQUEST: ("Payment Request for {partyTitle}", "email/payment_request.html"),
    PAYMENT_CONFIRMATION: (
        "Payment Confirmed for {partyTitle}",
        "email/payment_confirmation.html",
    ),
    PAYMENT_NOTIFICATION: (
        "Payment Received for {partyTitle}",
        "email/payment_notification.html",
    ),
    PARTY_COMPLETE: (
        "Shopping Squad Complete: {partyTitle}",
        "email/party_complete.html",
    ),
}


def render_subject(template_key: str, data: dict[str, Any]) -> str:
    """Return the subject line for ``template_key``."""
    try:
        subject, _ = EMAIL_TEMPLATES[template_key]
    except KeyError:
        raise ValueError(f"Unknown email template: {template_key}") from None
    return subject.format(partyTitle=data.get("partyTitle", ""))


def send_party_email(to: str, template_key: str, data: dict[str, Any]) -> None:
    """Render and send one of the fixed squad emails.

    Raises:
        ValueError: If the template key is unknown.
        EmailError: If delivery fails.
    """
    subject = render_subject(template_key, data)
    _, template = EMAIL_TEMPLATES[template_key]
    send_email(
        to=to,
        subject=subject,
        template=template,
        currency=current_app.config.get("PAYMENT_CURRENCY", "EUR"),
        **data,
    )


def try_send_party_email(to: str | None, template_key: str, data: dict[str, Any]) -> bool:
    """Send an email without letting delivery problems abort the caller."""
    if not to:
        return False
    try:
        send_party_email(to, template_key, data)
    except EmailError as e:
        logger.error(f"Email failed: {e}")
        return False
    return True


def party_email_data(party: dict[str, Any], **extra: Any) -> dict[str, Any]:
    """Common fields every squad email template uses."""
    data = {
        "partyTitle": party.get("title", ""),
        "partyDate": party.get("date"),
        "partyLocation": party.get("location", ""),
        "organizerName": party.get("organizer", ""),
        "totalAmount": party.get("totalAmount", 0),
    }
    data.update(extra)
    return data
