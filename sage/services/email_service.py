"""
Sage - Email Service
====================
Account emails via the Resend API.

Setup:
1. Add RESEND_API_KEY to .env file
2. Verify your sending domain at https://resend.com/domains

Without an API key the emailer runs in preview mode: emails are built and
logged but not sent, and the HTML is returned so an admin can deliver it.
"""
import html
import logging

import resend

from ..config import RESEND_API_KEY, RESEND_FROM_EMAIL, APP_URL

logger = logging.getLogger(__name__)

EMAIL_STYLE = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; }
.container { max-width: 600px; margin: 0 auto; padding: 20px; }
.header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; text-align: center; }
.username-box { background: #f8f9fa; border: 2px solid #e9ecef; border-radius: 8px; padding: 20px; margin: 20px 0; text-align: center; }
.username { font-size: 24px; font-weight: bold; color: #495057; }
.instructions { background: #e7f3ff; border-left: 4px solid #2196f3; padding: 15px; margin: 20px 0; }
.footer { text-align: center; color: #6c757d; margin-top: 30px; }
"""


class SageEmailer:
    """Send account emails via Resend API."""

    def __init__(self, api_key: str = None, from_email: str = None, app_url: str = None):
        api_key = RESEND_API_KEY if api_key is None else api_key
        self.from_email = from_email or RESEND_FROM_EMAIL
        self.app_url = app_url or APP_URL
        self.resend_available = bool(api_key)
        if self.resend_available:
            resend.api_key = api_key
        else:
            logger.info("Email service running in preview mode (no RESEND_API_KEY)")

    def is_configured(self) -> bool:
        return self.resend_available

    def _wrap(self, title: str, body: str) -> str:
        return (
            f"<html><head><style>{EMAIL_STYLE}</style></head><body><div class=\"container\">"
            f"<div class=\"header\"><h1>Sage</h1><p>{html.escape(title)}</p></div>"
            f"<div class=\"content\">{body}</div>"
            f"<div class=\"footer\"><p>Sage - Helping students find their voice</p></div>"
            f"</div></body></html>"
        )

    def send_email(self, to_email: str, subject: str, html_body: str) -> dict:
        """
        Send one email.

        Returns:
            {"success", "message", "email_content"}
        """
        logger.info("Email generated for %s: %s", to_email, subject)
        if not self.resend_available:
            return {
                "success": True,
                "message": "Email generated - ready for delivery when Resend is configured",
                "email_content": html_body,
            }

        try:
            resend.Emails.send({
                "from": self.from_email,
                "to": [to_email],
                "subject": subject,
                "html": html_body,
            })
            logger.info("Email sent to %s", to_email)
            return {"success": True, "message": "Email sent successfully", "email_content": html_body}
        except Exception as e:
            logger.error("Failed to send email to %s: %s", to_email, e)
            return {
                "success": False,
                "message": "Failed to send email - saved for manual delivery",
                "email_content": html_body,
            }

    def build_welcome_email(self, user: dict):
        role_text = "Student" if user.get("role") == "student" else "Teacher"
        first_name = html.escape(user.get("first_name") or "")
        username = html.escape(user["username"])
        if user.get("role") == "student":
            next_steps = "<li>Join your class with the code from your teacher</li><li>Start your first writing session</li>"
        else:
            next_steps = "<li>Create your first classroom</li><li>Share the join code with your students</li>"

        subject = f"Welcome to Sage - Your Username is {user['username']}"
        body = (
            f"<p>Hi {first_name},</p>"
            f"<p>Your Sage {role_text} account is ready.</p>"
            f"<div class=\"username-box\"><div class=\"username\">{username}</div>"
            f"<div>Your username</div></div>"
            f"<div class=\"instructions\"><ol>{next_steps}</ol></div>"
            f"<p><a class=\"button\" href=\"{html.escape(self.app_url)}\">Sign in to Sage</a></p>"
        )
        return subject, self._wrap(f"Welcome, {role_text}!", body)

    def send_welcome_email(self, user: dict) -> dict:
        subject, html_body = self.build_welcome_email(user)
        return self.send_email(user["email"], subject, html_body)

    def build_recovery_email(self, user: dict, reset_token: str):
        username = html.escape(user["username"])
        reset_url = f"{self.app_url}/reset-password?token={reset_token}"
        subject = "Sage - Your Account Information"
        body = (
            f"<p>Hi {html.escape(user.get('first_name') or '')},</p>"
            f"<p>We received a request to recover your Sage account.</p>"
            f"<div class=\"username-box\"><div class=\"username\">{username}</div>"
            f"<div>Your username</div></div>"
            f"<div class=\"instructions\"><p>To reset your password, open this link within one hour:</p>"
            f"<p><a href=\"{html.escape(reset_url)}\">{html.escape(reset_url)}</a></p></div>"
            f"<p>If you didn't request this, you can ignore this email.</p>"
        )
        return subject, self._wrap("Account recovery", body)

    def send_forgot_credentials_email(self, user: dict, reset_token: str) -> dict:
        subject, html_body = self.build_recovery_email(user, reset_token)
        return self.send_email(user["email"], subject, html_body)
