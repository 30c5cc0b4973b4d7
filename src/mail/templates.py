"""
Transactional email templates.

Plain f-string HTML; every interpolated value is escaped.
"""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

BRAND_COLOR = "#ff6b35"

_BASE_STYLE = """
  body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
         background-color: #f8f9fa; color: #333; line-height: 1.6; margin: 0; padding: 0; }
  .container { max-width: 600px; margin: 0 auto; background-color: #ffffff; border-radius: 12px;
               box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1); }
  .header { padding: 30px 40px 20px; border-bottom: 1px solid #e9ecef; }
  .logo { font-size: 22px; font-weight: 600; color: %(brand)s; }
  .content { padding: 32px 40px; }
  .summary { border: 1px solid #e9ecef; border-radius: 12px; padding: 24px; margin: 24px 0; }
  .row { display: flex; justify-content: space-between; padding: 6px 0; border-bottom: 1px solid #f1f3f5; }
  .label { color: #666; }
  .value { font-weight: 600; }
  .button { display: inline-block; background: %(brand)s; color: #ffffff; padding: 12px 28px;
            border-radius: 8px; text-decoration: none; font-weight: 600; }
  .footer { padding: 20px 40px; font-size: 12px; color: #999; text-align: center; }
""" % {"brand": BRAND_COLOR}


@dataclass
class TransferNotificationData:
    recipient_name: str
    transfer_amount: str
    currency: str
    transfer_date: str
    transfer_method: str
    transfer_id: str
    reference: str
    iban: str
    business_days: str
    airwallex_account: str | None = None


@dataclass
class WelcomeEmailData:
    user_name: str
    company_name: str | None = None


@dataclass
class PasswordResetData:
    user_name: str
    reset_link: str
    expiry_time: str


def mask_iban(iban: str) -> str:
    """Keep only the last four characters, e.g. `....4321`."""
    compact = "".join(iban.split())
    return f"....{compact[-4:]}" if compact else ""


def _layout(title: str, heading: str, body: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{escape(title)}</title>
<style>{_BASE_STYLE}</style>
</head>
<body>
<div class="container">
  <div class="header">
    <div class="logo">Magna Porta</div>
    <h1>{heading}</h1>
  </div>
  <div class="content">
{body}
  </div>
  <div class="footer">{footer}</div>
</div>
</body>
</html>"""


def transfer_notification_subject(data: TransferNotificationData) -> str:
    return f"Your transfer to {data.recipient_name} is on its way"


def render_transfer_notification(data: TransferNotificationData) -> str:
    rows = [
        ("Airwallex account", data.airwallex_account or data.recipient_name),
        ("Transfer amount", f"{data.transfer_amount} {data.currency}"),
        ("To", data.recipient_name),
        ("Transfer date", data.transfer_date),
        ("Transfer method", data.transfer_method),
        ("Transfer ID", data.transfer_id),
        ("Reference", data.reference),
        ("IBAN", mask_iban(data.iban)),
    ]
    summary = "\n".join(
        f'      <div class="row"><span class="label">{escape(label)}:</span>'
        f'<span class="value">{escape(str(value))}</span></div>'
        for label, value in rows
    )
    recipient = escape(data.recipient_name)
    body = f"""    <p>Hi there,</p>
    <p>Your transfer to {recipient} should arrive in {escape(data.business_days)} business days
    from {escape(data.transfer_date)}. Here's a summary of this transfer:</p>
    <div class="summary">
      <h3>Transfer Summary</h3>
{summary}
    </div>"""
    return _layout(
        "Transfer Notification",
        f"Your transfer to {recipient} is on its way",
        body,
        "This email was sent by Magna Porta. If you have any questions, please contact our support team.",
    )


def render_welcome_email(data: WelcomeEmailData) -> str:
    team = f"<p>You're now part of the {escape(data.company_name)} team.</p>" if data.company_name else ""
    body = f"""    <p>Hello {escape(data.user_name)}!</p>
    {team}
    <p>Your Magna Porta account is ready. You can now manage transfers, conversions
    and global accounts from your dashboard.</p>"""
    return _layout(
        "Welcome to Magna Porta",
        "Welcome to Magna Porta",
        body,
        "This email was sent by Magna Porta. Please do not reply.",
    )


def render_password_reset_email(data: PasswordResetData) -> str:
    link = escape(data.reset_link, quote=True)
    body = f"""    <p>Hello {escape(data.user_name)},</p>
    <p>We received a request to reset your password. This link will expire in
    {escape(data.expiry_time)}. If you did not request a reset you can ignore this email.</p>
    <p style="text-align: center;"><a href="{link}" class="button">Reset Password</a></p>
    <p class="label">Link expires: {escape(data.expiry_time)}</p>"""
    return _layout(
        "Password Reset Request",
        "Reset your password",
        body,
        "This email was sent by Magna Porta. Please do not reply.",
    )
