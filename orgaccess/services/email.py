"""
Transactional email dispatch via the Brevo HTTP API.

Delivery problems surface as EmailDeliveryError so callers can tell a failed
send apart from any other exception.
"""
from typing import Optional
import html
import logging
import httpx

from orgaccess.core.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """The email provider did not accept the message."""


def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    *,
    to_name: Optional[str] = None,
) -> str:
    """
    Send a single transactional email. Returns the provider message id.
    Raises EmailDeliveryError when not configured, unreachable, or rejected.
    """
    api_key = (settings.BREVO_API_KEY or "").strip()
    if not api_key:
        raise EmailDeliveryError("BREVO_API_KEY is not configured")

    payload = {
        "sender": {"name": settings.EMAIL_SENDER_NAME, "email": settings.EMAIL_SENDER_ADDRESS},
        "to": [{"email": to_email.strip().lower(), "name": (to_name or "").strip() or None}],
        "subject": subject,
        "htmlContent": html_content,
    }
    headers = {
        "accept": "application/json",
        "content-type": "application/json",
        "api-key": api_key,
    }
    try:
        resp = httpx.post(
            settings.BREVO_API_URL,
            headers=headers,
            json=payload,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    except httpx.HTTPError as exc:
        raise EmailDeliveryError(f"Email provider unreachable: {exc}") from exc

    if resp.status_code not in (200, 201, 202):
        raise EmailDeliveryError(f"Email provider rejected message (HTTP {resp.status_code})")

    try:
        message_id = resp.json().get("messageId", "")
    except ValueError:
        message_id = ""
    logger.info("Email sent to %s (message %s)", to_email, message_id or "n/a")
    return message_id


def invitation_link(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/accept-invitation?token={token}"


def send_invitation_email(
    to_email: str,
    *,
    organization_name: str,
    inviter_name: str,
    role: str,
    invitation_token: str,
    custom_message: Optional[str] = None,
) -> str:
    """Send the email inviting someone to join an organization."""
    link = invitation_link(invitation_token)
    subject = f"You've been invited to join {organization_name}"
    message_block = ""
    if custom_message:
        message_block = f"<blockquote>{html.escape(custom_message)}</blockquote>"
    body = f"""
    <p>{html.escape(inviter_name)} has invited you to join <strong>{html.escape(organization_name)}</strong>
    as <strong>{html.escape(role)}</strong>.</p>
    {message_block}
    <p>This link expires in {settings.INVITATION_EXPIRES_DAYS} days.</p>
    <p><a href="{link}">{link}</a></p>
    <p>If you didn't expect this email, you can ignore it.</p>
    """
    return send_email(to_email, subject, body)
