"""Utility functions for the application."""

from __future__ import annotations

import datetime
import smtplib
from typing import Any
from urllib.parse import quote

from flask import current_app, render_template
from flask_mail import Message

from .core.constants import ANONYMOUS_NAME, AVATAR_URL_TEMPLATE, SMTP_AUTH_ERROR_CODE
from .extensions import mail


class EmailError(Exception):
    """Base class for email errors."""

    pass


def send_email(to, subject, template, **kwargs):
    """Send an email to a recipient.

    Raises:
        EmailError: If sending the email fails.
    """
    msg = Message(
        subject,
        recipients=[to],
        html=render_template(template, **kwargs),
        sender=current_app.config["MAIL_DEFAULT_SENDER"],
    )
    try:
        mail.send(msg)
    except smtplib.SMTPAuthenticationError as e:
        if e.smtp_code == SMTP_AUTH_ERROR_CODE:
            raise EmailError(
                "Authentication failed. Google requires you to use an App Password. "
                "Please verify your MAIL_USERNAME and MAIL_PASSWORD settings. "
                "See https://support.google.com/accounts/answer/185833 for instructions on how to generate an App Password."
            ) from e
        raise EmailError(f"SMTP Authentication failed: {e}") from e
    except Exception as e:
        raise EmailError(f"Failed to send email: {e}") from e


def sanitize_mail_setting(value: str | None, strip_spaces: bool = False) -> str | None:
    """Strip wrapping quotes (and optionally spaces) from a mail setting."""
    if value is None:
        return None
    value = value.strip().strip("'\"")
    if strip_spaces:
        value = value.replace(" ", "")
    return value


def format_currency(amount: float | int | None, currency: str = "EUR") -> str:
    """Format an amount for display, e.g. ``€12.50``."""
    symbols = {"EUR": "€", "USD": "$", "GBP": "£"}
    symbol = symbols.get(currency.upper(), f"{currency.upper()} ")
    return f"{symbol}{float(amount or 0):,.2f}"


def to_datetime(value: Any) -> datetime.datetime | None:
    """Coerce Firestore timestamps, ISO strings and epoch dicts to datetimes."""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if hasattr(value, "to_datetime"):
        return value.to_datetime()
    if isinstance(value, dict) and "seconds" in value:
        return datetime.datetime.fromtimestamp(
            value["seconds"], tz=datetime.timezone.utc
        )
    if isinstance(value, str):
        try:
            return datetime.datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def format_party_date(value: Any) -> str:
    """Format a squad date like ``Saturday, March 1, 2025 at 09:00``."""
    dt = to_datetime(value)
    if dt is None:
        return "TBD"
    return f"{dt.strftime('%A, %B')} {dt.day}, {dt.year} at {dt.strftime('%H:%M')}"


def display_name(user: dict[str, Any] | None) -> str:
    """Return the name to show for a user record or auth payload."""
    if not user:
        return ANONYMOUS_NAME
    return (
        user.get("name")
        or user.get("displayName")
        or user.get("email")
        or ANONYMOUS_NAME
    )


def avatar_url(user: dict[str, Any] | None) -> str:
    """Return the user's photo or a generated initials avatar."""
    if user:
        photo = user.get("avatar") or user.get("photoURL") or user.get("picture")
        if photo:
            return str(photo)
    return AVATAR_URL_TEMPLATE.format(name=quote(display_name(user)))


def utcnow() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def first_form_error(form: Any, default: str = "Please fill in all fields") -> str:
    """Return the first validation message of a submitted form."""
    for field_name, errors in form.errors.items():
        if errors:
            label = getattr(getattr(form, field_name, None), "label", None)
            prefix = f"{label.text}: " if label is not None else ""
            return f"{prefix}{errors[0]}"
    return default
