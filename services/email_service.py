import logging
from datetime import datetime, timezone
from typing import List, Optional

import resend

from models import Purpose
from services.code_service import CODE_TTL_MINUTES
from services.errors import DeliveryError
from utils.sanitize import escape_html

logger = logging.getLogger(__name__)

BRAND = "SmartCore Technology"
SUPPORT_EMAIL = "support@smartcoretechnology.co.uk"
INVITE_TTL_HOURS = 24


# ────────────────────────────────────────────────────────────
# Templates
# ────────────────────────────────────────────────────────────
def _purpose_strings(purpose: Purpose) -> tuple[str, str]:
    if purpose is Purpose.EMPLOYEE_SIGNUP:
        return (
            "Your SmartCore employee verification code",
            "Your employee verification code is",
        )
    return (
        "Your SmartCore verification code",
        "Your verification code is",
    )


def _wrap(inner: str) -> str:
    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; background-color: #f4f6fb; font-family: Inter, system-ui, 'Segoe UI', Arial, sans-serif;">
    <table role="presentation" width="100%" cellspacing="0" cellpadding="0">
        <tr>
            <td align="center" style="padding: 32px 16px;">
                <table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="max-width: 520px; background-color: #ffffff; border-radius: 14px; color: #0b1020;">
                    <tr>
                        <td style="padding: 28px 32px 8px 32px;">
                            <h2 style="margin: 0;">{BRAND}</h2>
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 8px 32px 28px 32px; line-height: 1.6;">
                            {inner}
                        </td>
                    </tr>
                    <tr>
                        <td style="padding: 16px 32px; border-top: 1px solid #e6e9f2; font-size: 12px; color: #425070;">
                            Support: <a href="mailto:{SUPPORT_EMAIL}">{SUPPORT_EMAIL}</a>
                            &middot; &copy; {datetime.now(timezone.utc).year} {BRAND}
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
"""


def build_code_email(code: str, purpose: Purpose, ttl_minutes: int = CODE_TTL_MINUTES) -> tuple[str, str, str]:
    """Return (subject, html, text) for a verification code email."""
    subject, line = _purpose_strings(purpose)
    html = _wrap(f"""
                            <p style="margin: 0 0 12px 0;">{line}:</p>
                            <div style="font-size: 28px; font-weight: 700; letter-spacing: 6px; background: #0b1020; color: #ffffff; padding: 14px 16px; border-radius: 12px; display: inline-block;">
                                {code}
                            </div>
                            <p style="margin: 12px 0 0 0; color: #666666;">This code expires in {ttl_minutes} minutes.</p>
                            <p style="margin: 12px 0 0 0; color: #666666; font-size: 13px;">If you didn't request this code, you can safely ignore this email.</p>
""")
    text = (
        f"Hi,\n\n"
        f"{line}: {code}\n"
        f"It expires in {ttl_minutes} minutes.\n\n"
        f"If you didn't request this, you can safely ignore this email.\n\n"
        f"- {BRAND}"
    )
    return subject, html, text


def build_invite_email(full_name: str, invite_link: str, company_name: Optional[str] = None) -> tuple[str, str, str]:
    """Return (subject, html, text) for an employee onboarding invite."""
    subject = "Complete your SmartCore onboarding"
    safe_name = escape_html(full_name)
    safe_company = escape_html(company_name) or "your company"
    safe_link = escape_html(invite_link)
    html = _wrap(f"""
                            <h3 style="margin: 0 0 12px 0;">You've been invited to SmartCore</h3>
                            <p style="margin: 0 0 14px 0;">Hi {safe_name},<br/>{safe_company} has started your onboarding.</p>
                            <p style="margin: 0 0 14px 0;">
                                Click the button below to securely set your password and complete your details.
                                This link expires in <b>{INVITE_TTL_HOURS} hours</b>.
                            </p>
                            <p style="margin: 18px 0;">
                                <a href="{safe_link}" style="display: inline-block; padding: 12px 16px; border-radius: 12px; background: #1e3a8a; color: #ffffff; text-decoration: none;">
                                    Complete onboarding
                                </a>
                            </p>
                            <p style="margin: 18px 0 0 0; font-size: 13px; color: #425070;">
                                If the button doesn't work, copy and paste this link into your browser:<br/>
                                <span style="word-break: break-all;">{safe_link}</span>
                            </p>
""")
    text = (
        f"Hi {full_name},\n\n"
        f"{company_name or 'Your company'} has started your onboarding.\n"
        f"Set your password and complete your details here (expires in {INVITE_TTL_HOURS} hours):\n"
        f"{invite_link}\n\n"
        f"- {BRAND}"
    )
    return subject, html, text


# ────────────────────────────────────────────────────────────
# Delivery
# ────────────────────────────────────────────────────────────
class Notifier:
    """Sends transactional email through Resend"""

    def __init__(self, api_key: str, sender: str):
        self.api_key = api_key
        self.sender = sender

    @classmethod
    def from_settings(cls, settings) -> "Notifier":
        settings.require("resend_api_key", "resend_from")
        return cls(settings.resend_api_key, settings.resend_from)

    def send(self, to: List[str], subject: str, html: str, text: Optional[str] = None) -> str:
        resend.api_key = self.api_key
        params = {
            "from": self.sender,
            "to": to,
            "subject": subject,
            "html": html,
        }
        if text:
            params["text"] = text

        try:
            response = resend.Emails.send(params)
        except Exception as e:
            logger.error(f"Resend rejected email to {to}: {e}")
            raise DeliveryError(f"Resend failed: {e}")

        email_id = (response or {}).get("id")
        if not email_id:
            logger.error(f"Resend returned no id for email to {to}: {response}")
            raise DeliveryError("Resend failed: no email id returned")

        logger.info(f"Email '{subject}' sent to {to} (Email ID: {email_id})")
        return email_id

    def send_code(self, email: str, code: str, purpose: Purpose) -> str:
        subject, html, text = build_code_email(code, purpose)
        return self.send([email], subject, html, text)

    def send_invite(self, email: str, full_name: str, invite_link: str,
                    company_name: Optional[str] = None) -> str:
        subject, html, text = build_invite_email(full_name, invite_link, company_name)
        return self.send([email], subject, html, text)
