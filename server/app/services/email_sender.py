from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import format_datetime, formataddr, make_msgid
from typing import Iterable, Sequence

from app.core.config import settings

logger = logging.getLogger(__name__)


def _clean_recipients(recipients: Iterable[str]) -> list[str]:
    cleaned: list[str] = []
    placeholder_domains = {"example.com", "example.org", "example.net"}
    for address in recipients:
        if not address:
            continue
        normalized = address.strip()
        if not normalized or "@" not in normalized:
            continue
        domain = normalized.split("@")[-1].lower()
        if domain in placeholder_domains:
            continue
        cleaned.append(normalized)
    return list(dict.fromkeys(cleaned))


class EmailSender:
    def __init__(self) -> None:
        self.from_address = settings.EMAIL_FROM_ADDRESS
        self.from_name = settings.EMAIL_FROM_NAME

    def is_configured(self) -> bool:
        return bool(
            self.from_address
            and settings.EMAIL_SMTP_HOST
            and settings.EMAIL_SMTP_USERNAME
            and settings.EMAIL_SMTP_PASSWORD
        )

    def send(self, *, subject: str, html_body: str, text_body: str, to: Sequence[str]) -> bool:
        """Deliver one message over SMTP. Returns False instead of raising on delivery problems."""

        recipients = _clean_recipients(to)
        if not recipients:
            logger.warning("email_send_skipped_no_recipients", extra={"subject": subject})
            return False
        if not self.is_configured():
            logger.warning("email_send_skipped_unconfigured", extra={"subject": subject, "to": recipients})
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.from_name, self.from_address))
        message["To"] = ", ".join(recipients)
        message["Date"] = format_datetime(datetime.now(timezone.utc))
        if "@" in self.from_address:
            message["Message-ID"] = make_msgid(domain=self.from_address.split("@", 1)[1])
        message.set_content(text_body or " ")
        message.add_alternative(html_body, subtype="html")

        try:
            with smtplib.SMTP(settings.EMAIL_SMTP_HOST, settings.EMAIL_SMTP_PORT, timeout=30) as smtp:
                smtp.ehlo()
                if settings.EMAIL_SMTP_USE_TLS:
                    smtp.starttls()
                    smtp.ehlo()
                smtp.login(settings.EMAIL_SMTP_USERNAME, settings.EMAIL_SMTP_PASSWORD)
                smtp.send_message(message, from_addr=self.from_address, to_addrs=recipients)
        except (smtplib.SMTPException, OSError):
            logger.exception("email_send_failed", extra={"subject": subject, "to": recipients})
            return False
        logger.info("email_sent", extra={"subject": subject, "to": recipients})
        return True


email_sender = EmailSender()
