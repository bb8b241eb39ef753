# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Outbound mail for one-time codes.

Messages are sent over SMTP with STARTTLS.  When SMTP is not configured, or
delivery fails, the code is written to the log instead so local development
and support staff can still complete the flow; the API request never fails
because of mail.
"""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from core.config import settings
from core.logger import logger

_HTML = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #e0e0e0; border-radius: 5px;">
  <h2 style="color: #333;">{title}</h2>
  <p style="font-size: 16px; color: #555;">{intro}</p>
  <div style="background-color: #f5f5f5; padding: 10px; border-radius: 5px; text-align: center; margin: 20px 0;">
    <h1 style="font-size: 32px; letter-spacing: 5px; margin: 0;">{code}</h1>
  </div>
  <p style="font-size: 14px; color: #777;">This code will expire in {minutes} minutes.</p>
  <p style="font-size: 14px; color: #777;">{footer}</p>
</div>
"""


class Mailer:
    """SMTP sender with a log fallback."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_from_email: Optional[str] = None,
        code_ttl_minutes: int = 10,
    ):
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._smtp_user = smtp_user
        self._smtp_password = smtp_password
        self._smtp_from_email = smtp_from_email or smtp_user
        self._code_ttl_minutes = code_ttl_minutes

    @property
    def is_configured(self) -> bool:
        return bool(self._smtp_host and self._smtp_from_email)

    def send_otp(self, to: str, code: str) -> bool:
        return self._send(
            to,
            code,
            subject="Your One-Time Password",
            title="Your One-Time Password",
            intro="Please use the following code to verify your account:",
            footer="If you did not request this code, please ignore this email.",
        )

    def send_verification(self, to: str, code: str) -> bool:
        return self._send(
            to,
            code,
            subject="Verify Your Email Address",
            title="Verify Your Email Address",
            intro="Thank you for registering! Please use the following code to verify your email address:",
            footer="If you did not create an account, please ignore this email.",
        )

    def send_password_reset(self, to: str, code: str) -> bool:
        return self._send(
            to,
            code,
            subject="Password Reset Request",
            title="Password Reset Request",
            intro="We received a request to reset your password. Please use the following code to proceed:",
            footer="If you did not request a password reset, please ignore this email.",
        )

    def _send(self, to: str, code: str, *, subject: str, title: str, intro: str, footer: str) -> bool:
        """
        Returns True when the message went out over SMTP, False when the code
        was only logged.
        """
        if not self.is_configured:
            logger.info("SMTP not configured – %s code for %s: %s", subject, to, code)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self._smtp_from_email
        msg["To"] = to

        text = (
            f"{intro} {code}\n\n"
            f"This code will expire in {self._code_ttl_minutes} minutes.\n\n"
            f"{footer}\n"
        )
        html = _HTML.format(
            title=title, intro=intro, code=code, minutes=self._code_ttl_minutes, footer=footer
        )
        msg.attach(MIMEText(text, "plain"))
        msg.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self._smtp_host, self._smtp_port, timeout=10) as server:
                server.starttls()
                if self._smtp_user:
                    server.login(self._smtp_user, self._smtp_password)
                server.sendmail(self._smtp_from_email, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send '%s' to %s: %s – code: %s", subject, to, exc, code)
            return False

        logger.info("Sent '%s' to %s", subject, to)
        return True


mailer = Mailer(
    smtp_host=settings.smtp_host,
    smtp_port=settings.smtp_port,
    smtp_user=settings.smtp_user,
    smtp_password=settings.smtp_password,
    smtp_from_email=settings.smtp_from_email,
    code_ttl_minutes=settings.otp_expire_minutes,
)


def get_mailer() -> Mailer:
    """FastAPI dependency so tests can swap in a recording mailer."""
    return mailer
