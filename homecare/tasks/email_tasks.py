"""Celery tasks for outbound email notifications."""
import logging
import smtplib
from email.message import EmailMessage

from homecare.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="homecare.tasks.email_tasks.send_email")
def send_email(to: str, subject: str, html: str, text: str = None):
    """Deliver a single email over SMTP. At most one attempt, never retried."""
    from homecare.config import get_settings
    settings = get_settings()

    if not settings.EMAIL_HOST:
        logger.warning("SMTP not configured, skipping email '%s' to %s", subject, to)
        return None

    message = EmailMessage()
    message["From"] = f"Nursing Service <{settings.EMAIL_FROM}>"
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text or "This message requires an HTML capable mail client.")
    message.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=10) as smtp:
            if settings.EMAIL_USE_TLS:
                smtp.starttls()
            if settings.EMAIL_USER:
                smtp.login(settings.EMAIL_USER, settings.EMAIL_PASSWORD)
            smtp.send_message(message)
        logger.info("Email '%s' sent to %s", subject, to)
        return to
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email '%s' to %s: %s", subject, to, e)
        return None
