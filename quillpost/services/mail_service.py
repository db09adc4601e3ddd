# quillpost/services/mail_service.py

"""
Отправка писем подтверждения почты.

Если SMTP не настроен, ссылка пишется в лог - удобно для локальной разработки.
"""
import logging
import smtplib
from email.message import EmailMessage

from quillpost.config import settings

logger = logging.getLogger(__name__)

VERIFICATION_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
  <body style="font-family: Arial, Helvetica, sans-serif; color: #333333;">
    <h2>Verify your email address</h2>
    <p>Thanks for signing up for <strong>{app_name}</strong>!
       Please confirm your email address by clicking the link below.</p>
    <p><a href="{url}">Verify Email</a></p>
    <p>If the link doesn't work, copy and paste this URL into your browser:</p>
    <p>{url}</p>
    <p>If you didn't create an account, you can safely ignore this email.</p>
  </body>
</html>
"""


def build_verification_url(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/verify-email?token={token}"


def send_verification_email(email: str, token: str) -> None:
    """
    Вызывается как BackgroundTask после регистрации.
    """
    url = build_verification_url(token)

    if not settings.SMTP_HOST:
        logger.info("SMTP is not configured, verification link for %s: %s", email, url)
        return

    message = EmailMessage()
    message["Subject"] = "Please verify your email"
    message["From"] = f'"{settings.MAIL_FROM_NAME}" <{settings.SMTP_USER}>'
    message["To"] = email
    message.set_content(f"Verify your email address: {url}")
    message.add_alternative(
        VERIFICATION_TEMPLATE.format(app_name=settings.MAIL_FROM_NAME, url=url),
        subtype="html",
    )

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as smtp:
            smtp.starttls()
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send verification email to %s", email)
        raise

    logger.info("Verification email sent to %s", email)
