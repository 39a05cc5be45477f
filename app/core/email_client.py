"""
SMTP delivery for customer order emails.

Connection details come from Settings (SMTP_* variables). Gmail with an
App Password works with:

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USE_SSL=true
    SMTP_USE_TLS=false
"""

import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from app.core.config import Settings


class SmtpMailer:
    """
    Sends single-recipient emails.

    Modes:
      - SMTP_USE_SSL => implicit TLS (smtplib.SMTP_SSL), usually port 465.
      - otherwise plain SMTP, upgraded with STARTTLS when SMTP_USE_TLS.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        s = self.settings
        return bool(s.SMTP_HOST and s.SMTP_USERNAME and s.SMTP_PASSWORD)

    @property
    def sender(self) -> str:
        s = self.settings
        return formataddr((s.SMTP_FROM_NAME, s.SMTP_FROM_EMAIL or s.SMTP_USERNAME or ""))

    def build_message(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(text_body)
        if html_body:
            msg.add_alternative(html_body, subtype="html")
        return msg

    def send(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None:
        """
        Raises:
            RuntimeError: SMTP host or credentials are missing.
            smtplib.SMTPException / OSError: connection or delivery failed.
        """
        if not self.configured:
            raise RuntimeError(
                "SMTP is not configured. Set SMTP_HOST, SMTP_USERNAME and SMTP_PASSWORD."
            )

        msg = self.build_message(to_email, subject, text_body, html_body)

        with self._connect() as server:
            server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD)
            server.send_message(msg)

    def _connect(self) -> smtplib.SMTP:
        s = self.settings
        if s.SMTP_USE_SSL:
            return smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_SECONDS)

        server = smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_SECONDS)
        if s.SMTP_USE_TLS:
            server.starttls()
        return server
