"""
Notification dispatcher — best-effort emails triggered by account and
service-request events.

``notify`` renders the message and hands it to the Celery email task. When
given the request's DB session it waits for that session to commit, so no
email goes out for a change that was rolled back. Delivery is at-most-once:
render and broker failures are logged here and never reach the caller.
"""

from __future__ import annotations

import enum
import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from homecare.models.user import User

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    ACCOUNT_ACTIVATED = "account_activated"
    NEW_REGISTRATION = "new_registration"
    REQUEST_CONFIRMED = "request_confirmed"
    NURSE_ASSIGNED = "nurse_assigned"
    SERVICE_COMPLETED = "service_completed"


_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
    '<h2 style="color: #3498db;">{heading}</h2>{body}'
    "<p>Best regards,<br>{signature}</p></div>"
)


def _box(*lines: str) -> str:
    rows = "".join(f'<p style="margin: 5px 0;">{line}</p>' for line in lines)
    return (
        '<div style="margin: 20px 0; padding: 15px; background-color: #f8f9fa; '
        f'border-left: 4px solid #3498db;">{rows}</div>'
    )


def _render(kind: NotificationKind, recipient: User, payload: dict[str, Any]) -> tuple[str, str]:
    """Return ``(subject, html)`` for a notification."""
    name = recipient.name
    signature = "The Nursing Service Team"

    if kind == NotificationKind.ACCOUNT_ACTIVATED:
        subject = "Your Account Has Been Activated"
        heading = "Account Activated!"
        body = (
            f"<p>Dear {name},</p>"
            "<p>Your account has been activated. You can now use all features of "
            "our nursing service platform.</p>"
            + _box(f"Email: {recipient.email}", f"Account Type: {recipient.role.value.capitalize()}")
        )
    elif kind == NotificationKind.NEW_REGISTRATION:
        subject = "New Account Registration"
        heading = "New Account Registration"
        signature = "The System"
        body = (
            "<p>Dear Admin,</p>"
            "<p>A new user has registered on the platform and needs activation:</p>"
            + _box(
                f"<strong>Name:</strong> {payload.get('name')}",
                f"<strong>Email:</strong> {payload.get('email')}",
                f"<strong>Account Type:</strong> {str(payload.get('role', '')).capitalize()}",
                f"<strong>Registration Date:</strong> {payload.get('registration_date')}",
            )
            + "<p>Please review and activate this account from the admin dashboard.</p>"
        )
    elif kind == NotificationKind.REQUEST_CONFIRMED:
        subject = "Service Request Confirmation"
        heading = "Service Request Received"
        body = (
            f"<p>Dear {name},</p><p>We've received your service request:</p>"
            + _box(
                f"<strong>Request ID:</strong> {payload.get('id')}",
                f"<strong>Patient Name:</strong> {payload.get('patient_name')}",
                f"<strong>Service Type:</strong> {payload.get('service_type')}",
                f"<strong>Status:</strong> {payload.get('status')}",
            )
            + "<p>We'll notify you when a nurse accepts your request.</p>"
        )
    elif kind == NotificationKind.NURSE_ASSIGNED:
        subject = "Nurse Assigned to Your Service Request"
        heading = "Nurse Assigned"
        body = (
            f"<p>Dear {name},</p><p>A nurse has been assigned to your service request:</p>"
            + _box(
                f"<strong>Request ID:</strong> {payload.get('id')}",
                f"<strong>Nurse Name:</strong> {payload.get('nurse_name')}",
                f"<strong>Nurse Phone:</strong> {payload.get('nurse_phone')}",
            )
            + "<p>The nurse will contact you shortly to confirm details.</p>"
        )
    elif kind == NotificationKind.SERVICE_COMPLETED:
        subject = "Service Completed"
        heading = "Service Completed"
        body = (
            f"<p>Dear {name},</p><p>The nursing service you requested has been completed:</p>"
            + _box(
                f"<strong>Request ID:</strong> {payload.get('id')}",
                f"<strong>Service Type:</strong> {payload.get('service_type')}",
                f"<strong>Total Cost:</strong> ${payload.get('cost')}",
            )
            + "<p>Please take a moment to rate the service and provide feedback.</p>"
        )
    else:
        raise ValueError(f"Unknown notification kind: {kind}")

    return subject, _WRAPPER.format(heading=heading, body=body, signature=signature)


_PENDING_KEY = "pending_notifications"


def _dispatch(kind: NotificationKind, recipient_id: Any, to: str, subject: str, html: str) -> bool:
    try:
        from homecare.tasks.email_tasks import send_email

        send_email.delay(to, subject, html)
        logger.info("Queued %s notification for user %s", kind.value, recipient_id)
        return True
    except Exception:
        logger.exception("Failed to dispatch %s notification to user %s", kind.value, recipient_id)
        return False


def notify(
    kind: NotificationKind,
    recipient: User | None,
    payload: dict[str, Any] | None = None,
    *,
    db: AsyncSession | None = None,
) -> bool:
    """Queue a notification email.

    With ``db`` the email is held on the session and only handed to the
    worker once that session commits; a rollback discards it. Without ``db``
    it is dispatched immediately. Returns False if nothing will be sent.
    """
    if recipient is None or not recipient.email:
        logger.info("No recipient for %s notification, skipping", kind.value)
        return False

    try:
        subject, html = _render(kind, recipient, payload or {})
    except Exception:
        logger.exception("Failed to render %s notification for user %s", kind.value, recipient.id)
        return False

    message = (kind, recipient.id, recipient.email, subject, html)
    if db is None:
        return _dispatch(*message)

    db.info.setdefault(_PENDING_KEY, []).append(message)
    return True


@event.listens_for(Session, "after_commit")
def _send_pending(session: Session) -> None:
    for message in session.info.pop(_PENDING_KEY, []):
        _dispatch(*message)


@event.listens_for(Session, "after_rollback")
def _drop_pending(session: Session) -> None:
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.info("Dropped %d notification(s) of a rolled back transaction", len(dropped))
