"""
SLA External Service Integrations
==================================

Slack webhook notifications for SLA breaches and warnings.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

import httpx

from supporthub.config import BreachKind, settings
from supporthub.core import NotificationException
from supporthub.shared.infrastructure.logging import get_logger
from supporthub.shared.infrastructure.resilience import CircuitBreaker
from supporthub.sla.application.services import INotificationSink

logger = get_logger(__name__)


@dataclass
class SlackMessage:
    """Slack notification message."""
    ticket_id: str
    ticket_number: str
    breach_kind: str
    alert_type: str
    minutes_remaining: Optional[int] = None


class SlackNotificationSink(INotificationSink):
    """
    Slack webhook client with circuit breaker and retry logic.

    Handles sending structured alerts to Slack with:
    - Circuit breaker to prevent cascade failures
    - Exponential backoff retry
    - Timeout handling

    With no webhook configured every notification is a logged no-op.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        channel: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_retries: int = 3,
    ):
        self._webhook_url = webhook_url if webhook_url is not None else settings.slack_webhook_url
        self._channel = channel or settings.slack_channel
        self._http_client = http_client
        self._max_retries = max_retries
        self._circuit_breaker = CircuitBreaker(
            "slack",
            failure_threshold=5,
            recovery_timeout=60
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=settings.slack_timeout_seconds
            )
        return self._http_client

    def _build_message(self, data: SlackMessage) -> Dict[str, Any]:
        """Build Slack Block Kit message."""
        if data.alert_type == "breach":
            header_text = ":rotating_light: SLA Breached"
            status_text = "BREACHED"
        else:
            header_text = ":warning: SLA At Risk"
            status_text = f"{data.minutes_remaining} min remaining"

        ticket_url = settings.ticket_url_template.format(
            ticket_id=data.ticket_id, ticket_number=data.ticket_number
        )
        clock = data.breach_kind.replace("_", " ").title()

        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": header_text,
                    "emoji": True
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Ticket:*\n<{ticket_url}|{data.ticket_number}>"},
                    {"type": "mrkdwn", "text": f"*Clock:*\n{clock}"},
                    {"type": "mrkdwn", "text": f"*Status:*\n{status_text}"},
                ]
            },
        ]

        return {
            "channel": self._channel,
            "text": f"{header_text}: {data.ticket_number} ({clock})",
            "blocks": blocks
        }

    async def _send(self, data: SlackMessage) -> None:
        """
        Post to the webhook, retrying with backoff.

        Raises:
            NotificationException: circuit open or every attempt failed
        """
        if not self._webhook_url:
            logger.debug("Slack webhook URL not configured, skipping notification")
            return

        if not self._circuit_breaker.allow_request():
            raise NotificationException(
                "circuit open, skipping Slack notification",
                {"ticket_id": data.ticket_id}
            )

        message = self._build_message(data)
        last_error = "no attempt made"

        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._webhook_url, json=message)

                if response.status_code == 200:
                    self._circuit_breaker.record_success()
                    logger.info(
                        "Slack notification sent",
                        extra={"ticket_id": data.ticket_id, "alert_type": data.alert_type}
                    )
                    return

                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    "Slack webhook returned non-200",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(
                    "Slack request error",
                    extra={"error": last_error, "attempt": attempt + 1, "ticket_id": data.ticket_id}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        raise NotificationException(
            f"Slack delivery failed: {last_error}", {"ticket_id": data.ticket_id}
        )

    async def notify_breach(
        self,
        ticket_id: UUID,
        breach_kind: BreachKind,
        ticket_number: Optional[str] = None,
    ) -> None:
        await self._send(SlackMessage(
            ticket_id=str(ticket_id),
            ticket_number=ticket_number or str(ticket_id),
            breach_kind=breach_kind.value,
            alert_type="breach",
        ))

    async def notify_warning(
        self,
        ticket_id: UUID,
        breach_kind: BreachKind,
        minutes_remaining: int,
        ticket_number: Optional[str] = None,
    ) -> None:
        await self._send(SlackMessage(
            ticket_id=str(ticket_id),
            ticket_number=ticket_number or str(ticket_id),
            breach_kind=breach_kind.value,
            alert_type="warning",
            minutes_remaining=minutes_remaining,
        ))

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
