"""
Notification Dispatcher Tests

notify() must never raise: a lost email is logged and reported as False.
"""

import uuid
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from homecare.models.user import UserRole
from homecare.services.notification_service import NotificationKind, _render, notify
from homecare.tasks.email_tasks import send_email


@pytest.fixture
def recipient():
    return SimpleNamespace(id=uuid.uuid4(), email="amal@example.com", name="Amal", role=UserRole.PATIENT)


class TestNotify:
    """Tests for notification_service.notify"""

    def test_queues_email(self, recipient):
        with patch("homecare.tasks.email_tasks.send_email") as task:
            assert notify(NotificationKind.ACCOUNT_ACTIVATED, recipient) is True

        to, subject, html = task.delay.call_args.args
        assert to == "amal@example.com"
        assert subject == "Your Account Has Been Activated"
        assert "Dear Amal" in html

    def test_missing_recipient_is_skipped(self):
        with patch("homecare.tasks.email_tasks.send_email") as task:
            assert notify(NotificationKind.SERVICE_COMPLETED, None) is False

        task.delay.assert_not_called()

    def test_recipient_without_email_is_skipped(self, recipient):
        recipient.email = None
        with patch("homecare.tasks.email_tasks.send_email") as task:
            assert notify(NotificationKind.SERVICE_COMPLETED, recipient) is False

        task.delay.assert_not_called()

    def test_dispatch_failure_is_swallowed(self, recipient):
        """Should log and return False when the broker rejects the task"""
        with patch("homecare.tasks.email_tasks.send_email") as task:
            task.delay.side_effect = ConnectionError("redis down")
            assert notify(NotificationKind.REQUEST_CONFIRMED, recipient, {"id": "r1"}) is False


class TestRender:
    """Message templates"""

    @pytest.mark.parametrize("kind", list(NotificationKind))
    def test_every_kind_renders(self, kind, recipient):
        subject, html = _render(kind, recipient, {"id": "r1", "cost": 150.0})
        assert subject
        assert html.startswith("<div")

    def test_completion_mentions_cost(self, recipient):
        _subject, html = _render(NotificationKind.SERVICE_COMPLETED, recipient, {"id": "r1", "cost": 300.0})
        assert "$300.0" in html


class TestSendEmailTask:
    """Tests for the Celery email task"""

    def test_skipped_without_smtp_host(self):
        assert send_email.run("amal@example.com", "Hello", "<p>Hi</p>") is None

    def test_smtp_failure_returns_none(self):
        with patch("homecare.config.get_settings") as get_settings, \
                patch("homecare.tasks.email_tasks.smtplib.SMTP", side_effect=OSError("connection refused")):
            get_settings.return_value = SimpleNamespace(
                EMAIL_HOST="smtp.example.com",
                EMAIL_PORT=587,
                EMAIL_USER="",
                EMAIL_PASSWORD="",
                EMAIL_FROM="noreply@example.com",
                EMAIL_USE_TLS=True,
            )
            assert send_email.run("amal@example.com", "Hello", "<p>Hi</p>") is None
