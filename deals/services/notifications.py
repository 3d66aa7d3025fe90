# deals/services/notifications.py

import logging
from html import escape
from smtplib import SMTPException
from typing import Dict, Optional, Tuple

import requests
import resend
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


# =========================
# Resend (transactional HTML)
# =========================

def send_email_via_resend(payload: Dict[str, object]) -> Tuple[bool, Optional[str]]:
    api_key = (getattr(settings, "RESEND_API_KEY", "") or "").strip()
    if not api_key:
        logger.info("resend not configured, skipped email to %s", payload.get("to"))
        return False, "Resend API key is not configured."

    resend.api_key = api_key
    try:
        response = resend.Emails.send(payload)
    except Exception as exc:  # resend raises its own error family + transport errors
        logger.exception("resend send failed to=%s", payload.get("to"))
        return False, str(exc)

    if not isinstance(response, dict) or not response.get("id"):
        return False, str(response)

    return True, None


def _wrap(body_html: str) -> str:
    return (
        '<div style="font-family:ui-sans-serif,system-ui,-apple-system,Segoe UI,Roboto,'
        'Helvetica,Arial;line-height:1.5;color:#111827;">'
        f"{body_html}</div>"
    )


def send_approval_email(*, to: str, contact_name: str, temp_password: Optional[str] = None):
    name = escape(contact_name or "there")
    sign_in = f"{settings.SITE_URL}/sign-in"

    login_block = f"<p><b>Email:</b> {escape(to)}</p>"
    if temp_password:
        login_block += (
            f"<p><b>Temporary password:</b> <code>{escape(temp_password)}</code></p>"
            "<p style=\"color:#6b7280;font-size:13px;\">You'll be asked to set a new password after signing in.</p>"
        )

    html_body = _wrap(
        "<h2>Your Today's Stash application has been approved</h2>"
        f"<p>Hi {name},</p>"
        "<p>Your venue is now live. Sign in to manage deals and scan customer codes at the counter.</p>"
        f"{login_block}"
        f'<p><a href="{sign_in}">Sign in</a></p>'
    )
    return send_email_via_resend({
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": "Your Today's Stash application has been approved",
        "html": html_body,
    })


def send_support_auto_reply(*, to: str, name: str, message: str):
    msg = escape(message).replace("\n", "<br/>")
    html_body = _wrap(
        "<h2>We got your message</h2>"
        f"<p>Hey {escape(name)},</p>"
        "<p>Thanks for contacting Today's Stash support. A member of our team will get back to you shortly.</p>"
        '<div style="margin:16px 0;padding:16px;border:1px solid #e5e7eb;border-radius:12px;background:#fafafa;">'
        f"<strong>Your message:</strong><div style=\"margin-top:8px;\">{msg}</div></div>"
        f'<p><a href="{settings.SITE_URL}/contactsupport">Submit another request</a></p>'
        '<p style="font-size:12px;color:#6b7280;">This is an automated confirmation email.</p>'
    )
    return send_email_via_resend({
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": "We received your support request",
        "html": html_body,
        "reply_to": settings.SUPPORT_REPLY_TO,
    })


def send_welcome_email(*, to: str):
    html_body = _wrap(
        "<h2>Welcome to Today's Stash</h2>"
        "<p>Your account is ready. Browse local deals and redeem them at the counter with a quick scan.</p>"
        f'<p><a href="{settings.SITE_URL}">Start browsing</a></p>'
    )
    return send_email_via_resend({
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": "Welcome to Today's Stash",
        "html": html_body,
    })


# =========================
# Verification codes
# =========================

def send_code_email(email: str, code: str) -> bool:
    subject = "Your Today's Stash code"
    body = (
        f"Hi,\n\nYour one-time code is {code}.\n"
        f"It expires in {settings.VERIFICATION_CODE_TTL_MINUTES} minutes. Do not share this code.\n\n"
        f"If you didn't request this, please ignore this email."
    )
    try:
        send_mail(subject, body, None, [email], fail_silently=False)
    except (SMTPException, OSError):
        logger.exception("code email failed to=%s", email)
        return False
    return True


def send_code_sms(phone: str, code: str) -> bool:
    """
    Twilio Messages REST call. Without credentials the code is only logged
    and counts as delivered (local dev).
    """
    sid = settings.TWILIO_ACCOUNT_SID
    tok = settings.TWILIO_AUTH_TOKEN
    sender = settings.TWILIO_FROM
    if not (sid and tok and sender):
        logger.info("[DEV] code for %s: %s (Twilio envs missing)", phone, code)
        return True

    url = f"{settings.TWILIO_API_BASE}/Accounts/{sid}/Messages.json"
    data = {"To": phone, "From": sender, "Body": f"Your Today's Stash code is {code}"}
    try:
        response = requests.post(url, auth=(sid, tok), data=data, timeout=30)
    except requests.exceptions.RequestException:
        logger.exception("twilio request failed to=%s", phone)
        return False

    if response.status_code >= 400:
        logger.error("twilio error %s: %s", response.status_code, response.text[:500])
        return False
    return True
