# finance_tracker/email_service.py
# SMTP email delivery for sign-in codes and password resets

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from .config import get_settings

logger = logging.getLogger(__name__)

APP_NAME = "PHPinancia"


class EmailService:
    """SMTP (STARTTLS) sender. Without SMTP credentials every send logs and returns False."""

    def __init__(self, smtp_server: Optional[str] = None, smtp_port: Optional[int] = None,
                 smtp_user: Optional[str] = None, smtp_password: Optional[str] = None,
                 from_email: Optional[str] = None):
        settings = get_settings()
        self.smtp_server = smtp_server or settings.smtp_server
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.from_email or self.smtp_user
        self.app_url = settings.app_url

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_server and self.smtp_user and self.smtp_password)

    def _send(self, to_email: str, subject: str, text_body: str, html_body: str) -> bool:
        if not self.is_configured:
            logger.warning("SMTP not configured, skipped '%s' email to %s", subject, to_email)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send '%s' email to %s: %s", subject, to_email, e)
            return False

        logger.info("Sent '%s' email to %s", subject, to_email)
        return True

    def send_otp(self, to_email: str, code: str, expires_minutes: int = 10) -> bool:
        """Email a one-time sign-in code."""
        subject = f"Your {APP_NAME} sign-in code"
        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
                <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                    <h2 style="color: #f97316;">Your sign-in code</h2>
                    <p>Use the code below to sign in to {APP_NAME}. It expires in <strong>{expires_minutes} minutes</strong>.</p>
                    <p style="font-size: 32px; letter-spacing: 8px; font-weight: bold;">{code}</p>
                    <p style="color: #666; font-size: 14px;">
                        If you didn't try to sign in, you can ignore this email.
                    </p>
                </div>
            </body>
        </html>
        """
        text_body = (
            f"Your {APP_NAME} sign-in code is {code}.\n\n"
            f"It expires in {expires_minutes} minutes. If you didn't try to sign in, ignore this email."
        )
        return self._send(to_email, subject, text_body, html_body)

    def send_password_reset(self, to_email: str, reset_token: str, reset_url: Optional[str] = None) -> bool:
        """Email a password reset link valid for one hour."""
        reset_url = reset_url or f"{self.app_url}/auth/reset-password"
        link = f"{reset_url}?token={reset_token}"
        subject = f"Password Reset Request - {APP_NAME}"
        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
                <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                    <h2 style="color: #f97316;">Password Reset Request</h2>
                    <p>You requested a password reset for your {APP_NAME} account.</p>
                    <p>This link is valid for <strong>1 hour</strong>.</p>
                    <div style="margin: 30px 0;">
                        <a href="{link}"
                           style="background-color: #f97316; color: white; padding: 12px 24px;
                                  text-decoration: none; border-radius: 6px; display: inline-block;">
                            Reset Password
                        </a>
                    </div>
                    <p style="color: #666; font-size: 14px;">
                        If you didn't request this password reset, please ignore this email.
                        Your password will remain unchanged.
                    </p>
                </div>
            </body>
        </html>
        """
        text_body = (
            f"Password Reset Request - {APP_NAME}\n\n"
            f"Click this link to reset your password (valid for 1 hour):\n{link}\n\n"
            "If you didn't request this password reset, please ignore this email."
        )
        return self._send(to_email, subject, text_body, html_body)
