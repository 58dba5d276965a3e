"""Transactional email through the Brevo HTTP API

The client is built once from an ``EmailConfig``. A missing or invalid
configuration does not raise: the client reports ``unconfigured`` on every
``notify`` call instead, so publishing keeps working without email.
"""

import html
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import httpx
from pydantic import BaseModel, EmailStr, Field
from pydantic import ValidationError as PydanticValidationError

from journal.config import Settings, settings
from journal.models.article import Article

logger = logging.getLogger(__name__)

CATEGORY_DISPLAY_NAMES = {
    "etoile-du-sahel": "Etoile Du Sahel",
    "the-beautiful-game": "The Beautiful Game",
    "all-sports-hub": "All Sports Hub",
}


class EmailConfig(BaseModel):
    api_key: str = Field(..., min_length=1)
    sender_email: EmailStr
    sender_name: str = "Pure Tactics Cartel"
    api_url: str = "https://api.brevo.com/v3/smtp/email"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    PARTIAL = "partial"
    FAILED = "failed"
    UNCONFIGURED = "unconfigured"


@dataclass
class NotifyResult:
    status: DeliveryStatus
    sent: int = 0
    failed: int = 0
    error: Optional[str] = None


class EmailClient:
    """Sends one Brevo request per recipient so recipients never see each other."""

    def __init__(
        self,
        config: Optional[EmailConfig],
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        unconfigured_reason: Optional[str] = None,
    ):
        self.config = config
        self.timeout = timeout
        self._transport = transport
        self._unconfigured_reason = unconfigured_reason or "Email is not configured"

    @classmethod
    def from_settings(cls, app_settings: Settings = settings, **kwargs) -> "EmailClient":
        try:
            config = EmailConfig(
                api_key=app_settings.BREVO_API_KEY,
                sender_email=app_settings.EMAIL_FROM,
                sender_name=app_settings.EMAIL_SENDER_NAME,
                api_url=app_settings.BREVO_API_URL,
            )
        except PydanticValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            logger.warning("Email disabled, invalid configuration for: %s", fields)
            return cls(None, unconfigured_reason=f"Invalid email configuration: {fields}", **kwargs)
        return cls(config, **kwargs)

    @property
    def configured(self) -> bool:
        return self.config is not None

    async def notify(self, recipients: Sequence[str], subject: str, html_body: str) -> NotifyResult:
        if not self.configured:
            return NotifyResult(DeliveryStatus.UNCONFIGURED, failed=len(recipients),
                                error=self._unconfigured_reason)
        if not recipients:
            return NotifyResult(DeliveryStatus.SENT)

        sent = failed = 0
        last_error = None
        headers = {"api-key": self.config.api_key, "accept": "application/json"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for recipient in recipients:
                payload = {
                    "sender": {"name": self.config.sender_name, "email": self.config.sender_email},
                    "to": [{"email": recipient}],
                    "subject": subject,
                    "htmlContent": html_body,
                }
                try:
                    response = await client.post(self.config.api_url, json=payload, headers=headers)
                    response.raise_for_status()
                    sent += 1
                except httpx.HTTPError as e:
                    failed += 1
                    last_error = str(e)
                    logger.warning("Email to %s failed: %s", recipient, e)

        if failed == 0:
            status = DeliveryStatus.SENT
        elif sent == 0:
            status = DeliveryStatus.FAILED
        else:
            status = DeliveryStatus.PARTIAL
        logger.info("Email '%s': %d sent, %d failed", subject, sent, failed)
        return NotifyResult(status, sent=sent, failed=failed, error=last_error)


def article_published_email(article: Article, frontend_url: Optional[str] = None):
    """Subject and HTML body announcing a newly published article."""
    base = (frontend_url if frontend_url is not None else settings.FRONTEND_URL).rstrip("/")
    english = article.translations.en
    title = html.escape(english.title)
    excerpt = html.escape(english.excerpt)
    category = html.escape(CATEGORY_DISPLAY_NAMES.get(article.category, article.category))
    link = html.escape(f"{base}/article/{article.slug}", quote=True)
    subject = f"New article: {english.title}"
    body = f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <p style="color: #666; text-transform: uppercase; font-size: 12px;">{category}</p>
  <h1 style="color: #111;">{title}</h1>
  <p style="color: #333; line-height: 1.6;">{excerpt}</p>
  <p><a href="{link}" style="background: #c8102e; color: #fff; padding: 10px 18px;
     text-decoration: none; border-radius: 4px;">Read the article</a></p>
</div>"""
    return subject, body
