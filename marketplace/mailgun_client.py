"""
Mailgun email delivery over the Mailgun HTTP API.
"""
import logging
import os
from typing import Optional

import requests

from .errors import MailgunError

logger = logging.getLogger("marketplace")

DEFAULT_API_BASE = "https://api.mailgun.net/v3"


class MailgunService:

    def __init__(self):
        self.api_key = os.environ.get("MAILGUN_API_KEY")
        self.domain = os.environ.get("MAILGUN_DOMAIN")
        self.api_base = os.environ.get("MAILGUN_API_BASE", DEFAULT_API_BASE).rstrip("/")
        self.from_email = os.environ.get("MAILGUN_FROM_EMAIL") or f"noreply@{self.domain or 'localhost'}"

    def is_configured(self) -> bool:
        return bool(self.api_key and self.domain)

    def send_email(self, to: str, subject: str, text: str, html: Optional[str] = None) -> bool:
        """
        Send one email. Returns False when Mailgun is not configured and the
        message was only logged.
        """
        if not self.is_configured():
            logger.error("Mailgun configuration missing. Email not sent.")
            logger.info(f"[EMAIL] Would have sent to={to} subject={subject!r}")
            return False

        payload = {
            "from": self.from_email,
            "to": to,
            "subject": subject,
            "text": text,
            "html": html or text.replace("\n", "<br>"),
        }

        try:
            response = requests.post(
                f"{self.api_base}/{self.domain}/messages",
                auth=("api", self.api_key),
                data=payload,
                timeout=30,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"[EMAIL] Mailgun request failed: {e}")
            raise MailgunError("Failed to send email") from e

        if response.status_code >= 400:
            logger.error(f"[EMAIL] Mailgun error {response.status_code}: {response.text}")
            raise MailgunError("Failed to send email", details=response.text)

        logger.info(f"[EMAIL] Sent to {to}: {subject}")
        return True


# Singleton instance
mailgun_service = MailgunService()
