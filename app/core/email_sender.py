"""Send OTP and inquiry emails. If SMTP is not configured, the message is logged only."""
import enum
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache
from typing import Optional

from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class Delivery(str, enum.Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    NOT_CONFIGURED = "not_configured"

    @property
    def ok(self) -> bool:
        return self is Delivery.DELIVERED


class EmailSender:
    """SMTP sender. Never raises on delivery problems; callers get a Delivery result."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    @property
    def from_addr(self) -> Optional[str]:
        return self.settings.email_from or self.settings.smtp_user

    def send(self, to_email: str, subject: str, body: str) -> Delivery:
        s = self.settings
        if not s.smtp_configured:
            logger.info("SMTP not configured; email to %s not sent (subject=%r)", to_email, subject)
            return Delivery.NOT_CONFIGURED
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_addr
        msg["To"] = to_email
        msg.attach(MIMEText(body, "plain"))
        try:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(s.smtp_user, s.smtp_password)
                server.sendmail(self.from_addr, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send email to %s: %s", to_email, e)
            return Delivery.FAILED
        logger.info("Email sent to %s (subject=%r)", to_email, subject)
        return Delivery.DELIVERED

    def send_otp_email(self, to_email: str, otp: str, ttl_minutes: int) -> Delivery:
        subject = "BuildEx Registration OTP"
        body = (
            f"Your OTP for BuildEx registration is: {otp}. "
            f"It is valid for {ttl_minutes} minutes.\n\n"
            "If you didn't sign up, you can ignore this email.\n\nBuildEx"
        )
        return self.send(to_email, subject, body)

    def send_inquiry_email(
        self,
        to_email: Optional[str],
        subject: str,
        message: str,
        customer_name: str,
        customer_email: str,
        customer_phone: Optional[str],
    ) -> Delivery:
        # No builder address: the inquiry goes to our own mailbox
        recipient = to_email or self.from_addr or ""
        body = (
            f"You have a new inquiry from {customer_name} "
            f"({customer_email}, {customer_phone or 'no phone'}).\n\nMessage:\n{message}"
        )
        return self.send(recipient, f"New Inquiry: {subject}", body)


@lru_cache
def get_email_sender() -> EmailSender:
    return EmailSender()
