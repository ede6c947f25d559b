"""
Ingestion External Service Integrations
=======================================

- Microsoft Graph mail provider (client-credentials auth over httpx)
- Local filesystem attachment store
"""

import asyncio
import base64
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

import httpx

from supporthub.config import settings
from supporthub.core import ConfigurationException, MailProviderException
from supporthub.ingestion.application.interfaces import IAttachmentStore, IMailProvider
from supporthub.ingestion.domain.entities import InboundMessage, MailAttachment
from supporthub.shared.infrastructure.logging import get_logger
from supporthub.shared.infrastructure.resilience import CircuitBreaker
from supporthub.tenancy.domain.entities import Mailbox

logger = get_logger(__name__)

TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
MESSAGE_FIELDS = (
    "id,subject,from,body,receivedDateTime,internetMessageHeaders,hasAttachments"
)
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def _parse_graph_datetime(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _format_graph_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class GraphMailProvider(IMailProvider):
    """
    Mail provider backed by the Microsoft Graph REST API.

    Handles:
    - App-only token acquisition and caching
    - Exponential backoff retry on throttling and 5xx
    - Circuit breaker so a Graph outage fails polls fast
    """

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_retries: int = 3,
    ):
        self._tenant_id = tenant_id or settings.graph_tenant_id
        self._client_id = client_id or settings.graph_client_id
        self._client_secret = client_secret or settings.graph_client_secret
        self._base_url = (base_url or settings.graph_base_url).rstrip("/")
        self._http_client = http_client
        self._max_retries = max_retries
        self._circuit_breaker = CircuitBreaker("graph", failure_threshold=5, recovery_timeout=60)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    @property
    def is_configured(self) -> bool:
        return bool(self._tenant_id and self._client_id and self._client_secret)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=settings.graph_timeout_seconds)
        return self._http_client

    async def _get_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        if not self.is_configured:
            raise ConfigurationException("Microsoft Graph credentials are not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                TOKEN_URL.format(tenant=self._tenant_id),
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                    "scope": GRAPH_SCOPE,
                },
            )
        except httpx.HTTPError as e:
            raise MailProviderException(f"token request failed: {e}") from e

        if response.status_code != 200:
            raise MailProviderException(
                f"token request returned {response.status_code}",
                {"status_code": response.status_code}
            )

        payload = response.json()
        self._token = payload["access_token"]
        # Refresh a minute before Graph would reject the token
        self._token_expires_at = time.monotonic() + int(payload.get("expires_in", 3600)) - 60
        return self._token

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Authenticated Graph call with retry; raises MailProviderException."""
        if not self._circuit_breaker.allow_request():
            raise MailProviderException("circuit open, skipping Graph call", {"path": path})

        client = await self._get_client()
        last_error = "no attempt made"

        for attempt in range(self._max_retries):
            try:
                token = await self._get_token()
                response = await client.request(
                    method,
                    f"{self._base_url}{path}",
                    params=params,
                    json=json,
                    headers={"Authorization": f"Bearer {token}", **(headers or {})},
                )
                if response.status_code < 400:
                    self._circuit_breaker.record_success()
                    return response

                last_error = f"HTTP {response.status_code}"
                if response.status_code == 401:
                    self._token = None
                elif response.status_code not in RETRYABLE_STATUS:
                    break

                logger.warning(
                    "Graph request failed",
                    extra={"path": path, "status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(
                    "Graph request error",
                    extra={"path": path, "error": last_error, "attempt": attempt + 1}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        raise MailProviderException(f"{method} {path} failed: {last_error}", {"path": path})

    async def list_unseen_messages(
        self,
        mailbox: Mailbox,
        since: Optional[datetime],
        limit: int = 50,
    ) -> List[InboundMessage]:
        lower_bound = _format_graph_datetime(since) if since else "1900-01-01T00:00:00Z"
        response = await self._request(
            "GET",
            f"/users/{mailbox.address}/mailFolders/inbox/messages",
            params={
                "$select": MESSAGE_FIELDS,
                "$top": limit,
                # Graph requires $orderby properties to lead the $filter
                "$filter": f"receivedDateTime gt {lower_bound} and isRead eq false",
                "$orderby": "receivedDateTime asc",
            },
            headers={"Prefer": 'outlook.body-content-type="text"'},
        )

        messages = []
        for item in response.json().get("value", []):
            if not item.get("id"):
                continue
            attachments = ()
            if item.get("hasAttachments"):
                attachments = await self._fetch_attachments(mailbox, item["id"])
            messages.append(self._to_message(item, attachments))
        return messages

    async def _fetch_attachments(self, mailbox: Mailbox, message_id: str) -> tuple:
        response = await self._request(
            "GET", f"/users/{mailbox.address}/messages/{message_id}/attachments"
        )
        attachments = []
        for att in response.json().get("value", []):
            if att.get("@odata.type") != "#microsoft.graph.fileAttachment":
                continue
            if not att.get("contentBytes"):
                continue
            attachments.append(MailAttachment(
                file_name=att.get("name") or "attachment",
                content_type=att.get("contentType") or "application/octet-stream",
                content=base64.b64decode(att["contentBytes"]),
            ))
        return tuple(attachments)

    @staticmethod
    def _to_message(item: Dict[str, Any], attachments: tuple) -> InboundMessage:
        sender = (item.get("from") or {}).get("emailAddress") or {}
        body = item.get("body") or {}
        headers = {
            h["name"]: h["value"]
            for h in item.get("internetMessageHeaders") or []
            if h.get("name") and h.get("value") is not None
        }
        return InboundMessage(
            external_id=item["id"],
            sender_email=(sender.get("address") or "").strip(),
            sender_name=sender.get("name") or "",
            subject=item.get("subject") or "",
            body=body.get("content") or "",
            html_body=body.get("content") if body.get("contentType") == "html" else None,
            received_at=_parse_graph_datetime(item.get("receivedDateTime")),
            headers=headers,
            attachments=attachments,
        )

    async def mark_processed(self, mailbox: Mailbox, external_id: str) -> None:
        await self._request(
            "PATCH",
            f"/users/{mailbox.address}/messages/{external_id}",
            json={"isRead": True},
        )

    async def send(
        self,
        mailbox: Mailbox,
        to: str,
        subject: str,
        body: str,
        headers: Dict[str, str],
    ) -> None:
        await self._request(
            "POST",
            f"/users/{mailbox.address}/sendMail",
            json={
                "message": {
                    "subject": subject,
                    "body": {"contentType": "Text", "content": body},
                    "toRecipients": [{"emailAddress": {"address": to}}],
                    "internetMessageHeaders": [
                        {"name": name, "value": value} for name, value in headers.items()
                    ],
                },
                "saveToSentItems": True,
            },
        )
        logger.info("Mail sent", extra={"mailbox": mailbox.address, "subject": subject})

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_file_name(file_name: str) -> str:
    """Strip directories and unsafe characters from an attachment name."""
    base = Path(file_name.replace("\\", "/")).name.strip(". ")
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", base)
    return cleaned[:200] or "attachment"


class LocalAttachmentStore(IAttachmentStore):
    """Attachment store writing under ``<root>/<tenant>/<ticket>/``."""

    def __init__(self, root: Optional[Path] = None):
        self._root = Path(root or settings.attachment_storage_path).resolve()

    @property
    def root(self) -> Path:
        return self._root

    async def save(self, tenant_id: UUID, ticket_id: UUID, attachment: MailAttachment) -> str:
        relative = Path(str(tenant_id)) / str(ticket_id) / (
            f"{uuid4().hex}_{sanitize_file_name(attachment.file_name)}"
        )
        target = (self._root / relative).resolve()
        if self._root not in target.parents:
            raise ValueError(f"Attachment path escapes storage root: {relative}")

        await asyncio.to_thread(self._write, target, attachment.content)
        logger.debug(
            "Attachment stored",
            extra={"ticket_id": str(ticket_id), "path": str(relative), "size": attachment.size}
        )
        return relative.as_posix()

    @staticmethod
    def _write(target: Path, content: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
