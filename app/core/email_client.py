# app/core/email_client.py
"""
Outgoing mail for the storefront backend.

Responsibilities:
  - Build an SMTP connection from Settings (SSL or STARTTLS).
  - send_email(...) for a single recipient.
  - send_password_reset_email(...) used by the forgot-password flow.

Typical .env configuration:

    SMTP_HOST=smtp.example.com
    SMTP_PORT=465
    SMTP_USERNAME=no-reply@example.com
    SMTP_PASSWORD=...
    SMTP_FROM_NAME=Storefront
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true
"""

import smtplib
from email.message import EmailMessage

from app.core.config import Settings, get_settings


def is_configured(settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.SMTP_HOST and settings.SMTP_USERNAME and settings.SMTP_PASSWORD)


def _create_smtp_client(settings: Settings) -> smtplib.SMTP:
    """
    SSL when SMTP_USE_SSL (usually port 465), otherwise plain SMTP with
    optional STARTTLS (usually port 587).
    """
    if settings.SMTP_USE_SSL:
        return smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)

    server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30)
    if settings.SMTP_USE_TLS:
        server.starttls()
    return server


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> None:
    """
    Send an email to a single recipient.

    Raises
    ------
    RuntimeError:
        If SMTP is not configured.
    smtplib.SMTPException:
        If the connection or the send fails.
    """
    settings = get_settings()
    if not is_configured(settings):
        raise RuntimeError(
            "SMTP is not configured correctly. "
            "Please set SMTP_HOST, SMTP_USERNAME, and SMTP_PASSWORD in .env."
        )

    from_email = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME

    msg = EmailMessage()
    msg["From"] = f"{settings.SMTP_FROM_NAME} <{from_email}>"
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    server = _create_smtp_client(settings)
    try:
        server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)  # type: ignore[arg-type]
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except (smtplib.SMTPException, OSError):
            pass


def send_password_reset_email(to_email: str, reset_token: str) -> None:
    """Email the password reset link for `reset_token`."""
    settings = get_settings()
    link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={reset_token}"
    minutes = settings.RESET_TOKEN_EXPIRE_MINUTES

    send_email(
        to_email=to_email,
        subject=f"[{settings.SMTP_FROM_NAME}] Reset your password",
        text_body=(
            "We received a request to reset your password.\n\n"
            f"Open this link within {minutes} minutes to choose a new one:\n{link}\n\n"
            "If you did not ask for this, you can ignore this email."
        ),
        html_body=(
            "<p>We received a request to reset your password.</p>"
            f'<p><a href="{link}">Choose a new password</a> '
            f"(valid for {minutes} minutes).</p>"
            "<p>If you did not ask for this, you can ignore this email.</p>"
        ),
    )
