import logging

import httpx

from dealhub.core.config import settings

logger = logging.getLogger(__name__)


class MailApiError(Exception):
    pass


class MailApiClient:
    """Thin client for an HTTP mail API (Mailgun-style form post)."""

    def __init__(self):
        self.base_url = settings.MAIL_API_URL
        self.api_key = settings.MAIL_API_KEY
        self.sender = settings.MAIL_FROM
        self.timeout = 15

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def send(self, *, to: str, subject: str, text: str) -> dict | None:
        if not self.configured:
            logger.warning("Mail API not configured; skipping email to %s (%s)", to, subject)
            return None

        payload = {
            "from": self.sender,
            "to": to,
            "subject": subject,
            "text": text,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(
                f"{self.base_url}/messages",
                data=payload,
                auth=("api", self.api_key),
            )

        if r.status_code != 200:
            raise MailApiError(f"Mail API error: {r.status_code} {r.text}")

        return r.json()
