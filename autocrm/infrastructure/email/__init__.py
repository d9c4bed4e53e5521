"""
Email Infrastructure
====================

Transactional email for ticket notifications.

``ResendEmailClient`` talks to the Resend HTTP API with httpx. When no API
key is configured, ``NullEmailNotifier`` stands in and only logs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from html import escape
from typing import Optional

import httpx

from autocrm.config import Settings
from autocrm.core import EmailDeliveryException
from autocrm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass
class TicketResolvedEmail:
    """Content of the "ticket resolved" notification."""
    to: str
    customer_name: str
    ticket_id: str
    ticket_title: str
    resolution_notes: str

    @property
    def subject(self) -> str:
        return f"Ticket #{self.ticket_id} Has Been Resolved"

    def render_html(self) -> str:
        notes = escape(self.resolution_notes).replace("\n", "<br>")
        return (
            "<div style=\"font-family: sans-serif; max-width: 560px;\">"
            f"<h2>Your ticket has been resolved</h2>"
            f"<p>Hi {escape(self.customer_name)},</p>"
            f"<p>Your support ticket <strong>#{escape(self.ticket_id)}</strong> "
            f"(&ldquo;{escape(self.ticket_title)}&rdquo;) has been marked as resolved.</p>"
            f"<h3>Resolution notes</h3><p>{notes}</p>"
            "<p>If the problem comes back, reply on the ticket to reopen it.</p>"
            "<p>Thanks,<br>The AutoCRM Support Team</p>"
            "</div>"
        )


class IEmailNotifier(ABC):
    """Interface for outbound notifications."""

    @abstractmethod
    async def send_ticket_resolved(self, email: TicketResolvedEmail) -> bool:
        """
        Send the resolution notice.

        Returns:
            True if the provider accepted the message, False if skipped

        Raises:
            EmailDeliveryException: If the provider rejects the request
        """

    async def close(self) -> None:
        """Release network resources."""


class NullEmailNotifier(IEmailNotifier):
    """Used when email is not configured."""

    async def send_ticket_resolved(self, email: TicketResolvedEmail) -> bool:
        logger.debug(
            "Email not configured, skipping notification",
            extra={"ticket_id": email.ticket_id}
        )
        return False


class ResendEmailClient(IEmailNotifier):
    """Resend (https://resend.com) API client."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        timeout: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def send_ticket_resolved(self, email: TicketResolvedEmail) -> bool:
        payload = {
            "from": self._sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.render_html(),
        }

        client = await self._get_client()
        try:
            response = await client.post(
                RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EmailDeliveryException(
                f"Resend returned {e.response.status_code}",
                {"body": e.response.text[:500]}
            )
        except httpx.HTTPError as e:
            raise EmailDeliveryException(f"Resend request failed: {str(e)}")

        try:
            email_id = response.json().get("id")
        except (ValueError, AttributeError):
            email_id = None

        logger.info(
            "Resolution email sent",
            extra={"ticket_id": email.ticket_id, "email_id": email_id}
        )
        return True

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


def build_email_notifier(settings: Settings) -> IEmailNotifier:
    """Resend when an API key is configured, otherwise a no-op."""
    if not settings.resend_api_key:
        return NullEmailNotifier()
    return ResendEmailClient(
        api_key=settings.resend_api_key,
        sender=settings.email_from,
        timeout=settings.email_timeout_seconds,
    )


__all__ = [
    "TicketResolvedEmail",
    "IEmailNotifier",
    "NullEmailNotifier",
    "ResendEmailClient",
    "build_email_notifier",
]
