"""
Minimal SMTP sender for transactional emails (password reset).

- Never logs reset links or email bodies.
- If SMTP is not configured the message is refused, not printed.

Settings come from the Flask config: SMTP_HOST, SMTP_PORT, SMTP_USERNAME,
SMTP_PASSWORD, SMTP_FROM, SMTP_STARTTLS, SMTP_SSL.
"""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(
        self,
        host: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        from_email: str = "Spotlight <no-reply@localhost>",
        starttls: bool = True,
        use_ssl: bool = False,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.starttls = starttls
        # port 465 is implicit TLS
        self.use_ssl = use_ssl or (port == 465 and not starttls)

    @classmethod
    def from_config(cls, config) -> "Mailer":
        return cls(
            host=config.get("SMTP_HOST"),
            port=config.get("SMTP_PORT", 587),
            username=config.get("SMTP_USERNAME"),
            password=config.get("SMTP_PASSWORD"),
            from_email=config.get("SMTP_FROM", "Spotlight <no-reply@localhost>"),
            starttls=config.get("SMTP_STARTTLS", True),
            use_ssl=config.get("SMTP_SSL", False),
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    def send(self, *, to_email: str, subject: str, body_text: str) -> tuple[bool, str]:
        """Send a plaintext email. Returns (ok, info)."""
        if not to_email:
            return False, "missing_to"

        if not self.configured:
            logger.error("SMTP not configured; cannot send email (subject=%s)", subject)
            return False, "not_configured"

        msg = EmailMessage()
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(body_text)

        try:
            smtp_cls = smtplib.SMTP_SSL if self.use_ssl else smtplib.SMTP
            with smtp_cls(self.host, self.port, timeout=15) as smtp:
                smtp.ehlo()
                if self.starttls and not self.use_ssl:
                    smtp.starttls()
                    smtp.ehlo()
                smtp.login(self.username, self.password)
                smtp.send_message(msg)
            return True, "sent"
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP send failed (%s:%s) subject=%s: %s", self.host, self.port, subject, e)
            return False, f"smtp_error:{type(e).__name__}"
