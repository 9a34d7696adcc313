"""
Test: Account emails — preview mode and Resend delivery.
"""
import pytest

from sage.services import email_service
from sage.services.email_service import SageEmailer

USER = {
    "username": "jane.doe",
    "email": "jane@school.edu",
    "first_name": "Jane",
    "role": "student",
}


@pytest.fixture
def sent(monkeypatch):
    calls = []
    monkeypatch.setattr(email_service.resend, "api_key", None)
    monkeypatch.setattr(email_service.resend.Emails, "send", lambda params: calls.append(params) or {"id": "1"})
    return calls


class TestPreviewMode:
    def test_not_configured(self):
        assert SageEmailer(api_key="").is_configured() is False

    def test_welcome_email_returned_not_sent(self, sent):
        result = SageEmailer(api_key="").send_welcome_email(USER)
        assert result["success"] is True
        assert "jane.doe" in result["email_content"]
        assert sent == []


class TestDelivery:
    def test_welcome_email_sent(self, sent):
        emailer = SageEmailer(api_key="re_test", from_email="Sage <a@b.c>")
        result = emailer.send_welcome_email(USER)
        assert result["success"] is True
        assert sent[0]["to"] == ["jane@school.edu"]
        assert sent[0]["from"] == "Sage <a@b.c>"
        assert sent[0]["subject"] == "Welcome to Sage - Your Username is jane.doe"

    def test_send_failure_reported(self, monkeypatch):
        monkeypatch.setattr(email_service.resend, "api_key", None)

        def boom(params):
            raise RuntimeError("resend down")

        monkeypatch.setattr(email_service.resend.Emails, "send", boom)
        result = SageEmailer(api_key="re_test").send_welcome_email(USER)
        assert result["success"] is False
        assert result["email_content"]


class TestContent:
    def test_teacher_next_steps(self):
        _, html_body = SageEmailer(api_key="").build_welcome_email({**USER, "role": "teacher"})
        assert "Create your first classroom" in html_body

    def test_recovery_link(self):
        emailer = SageEmailer(api_key="", app_url="https://sage.test")
        subject, html_body = emailer.build_recovery_email(USER, "abc123")
        assert subject == "Sage - Your Account Information"
        assert "https://sage.test/reset-password?token=abc123" in html_body
        assert "jane.doe" in html_body

    def test_names_are_escaped(self):
        _, html_body = SageEmailer(api_key="").build_welcome_email({**USER, "first_name": "<b>Jane</b>"})
        assert "<b>Jane</b>" not in html_body
        assert "&lt;b&gt;Jane&lt;/b&gt;" in html_body
