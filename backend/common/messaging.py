"""
Outbound email (Resend) and SMS (Twilio REST API) helpers.

Callers decide whether a failure is fatal; these helpers raise
MessagingError so batch jobs can count and move on.
"""

import logging

import requests
import resend
from django.conf import settings

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class MessagingError(Exception):
    """Raised when an email or SMS could not be delivered to the provider."""
    pass


def email_configured() -> bool:
    return bool(settings.RESEND_API_KEY and settings.EMAIL_FROM)


def sms_configured() -> bool:
    return bool(settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN and settings.TWILIO_FROM_NUMBER)


def send_email(to_email: str, subject: str, html: str, text: str = None) -> str:
    """Send a transactional email through Resend and return the message id."""
    if not email_configured():
        raise MessagingError("Email not configured")

    resend.api_key = settings.RESEND_API_KEY
    email_data = {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "html": html,
    }
    if text:
        email_data["text"] = text

    try:
        result = resend.Emails.send(email_data)
    except Exception as e:
        raise MessagingError(str(e)) from e

    return result.get("id", "") if isinstance(result, dict) else ""


def normalize_phone(value) -> str:
    """'+' numbers pass through trimmed; anything else becomes '+digits'."""
    if not value:
        return ""
    trimmed = str(value).strip()
    if trimmed.startswith("+"):
        return trimmed
    digits = "".join(ch for ch in trimmed if ch.isdigit())
    return f"+{digits}" if digits else ""


def send_sms(to: str, body: str) -> None:
    if not sms_configured():
        raise MessagingError("SMS not configured")

    url = f"{TWILIO_API_BASE}/Accounts/{settings.TWILIO_ACCOUNT_SID}/Messages.json"
    try:
        response = requests.post(
            url,
            data={"From": settings.TWILIO_FROM_NUMBER, "To": to, "Body": body},
            auth=(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN),
            timeout=15,
        )
    except requests.RequestException as e:
        raise MessagingError(str(e)) from e

    if not response.ok:
        raise MessagingError(response.text or "SMS failed")
