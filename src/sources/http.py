"""HTTP source client for the mailbox search endpoint.

Wire format (one POST per account)::

    POST <base_url>/search
    {"integrationId": ..., "query": ..., "dateFrom": ..., "dateTo": ...,
     "hasAttachments": true, "limit": 20}
    -> {"messages": [{"messageId", "date", "from", "fromName", "subject",
                      "snippet", "attachments": [...]}]}
"""

import logging
import os
from types import TracebackType
from typing import Any

import httpx
from pydantic import ValidationError

from src.core.config import SourceSettings
from src.core.errors import SourceQueryError
from src.core.schemas import AccountRef, RemoteAttachment, RemoteMessage, SourceQuery
from src.sources.base import SourceClient

logger = logging.getLogger(__name__)


class HttpSourceClient(SourceClient):
    """Async context manager that owns one httpx client for all account queries.

    Usage::

        async with HttpSourceClient(settings.sources) as client:
            messages = await client.query(account, SourceQuery(...))
    """

    def __init__(
        self,
        config: SourceSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def source_id(self) -> str:
        return "gmail"

    async def __aenter__(self) -> "HttpSourceClient":
        headers = {"Accept": "application/json"}
        token = _load_token(self._config.token_env)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("%s not set — source queries will be unauthenticated", self._config.token_env)
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=headers,
            timeout=self._config.timeout_s,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def query(self, account: AccountRef, query: SourceQuery) -> list[RemoteMessage]:
        if self._client is None:
            msg = "HttpSourceClient not entered — use 'async with'"
            raise RuntimeError(msg)

        payload = {
            "integrationId": account.id,
            "query": query.free_text or None,
            "dateFrom": query.date_from.isoformat() if query.date_from else None,
            "dateTo": query.date_to.isoformat() if query.date_to else None,
            "hasAttachments": query.must_have_attachments,
            "limit": query.limit,
        }
        try:
            response = await self._client.post("/search", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            msg = f"search returned HTTP {e.response.status_code}"
            raise SourceQueryError(account.id, msg) from e
        except httpx.HTTPError as e:
            msg = f"search request failed: {e!r}"
            raise SourceQueryError(account.id, msg) from e
        except ValueError as e:
            msg = f"search response is not JSON: {e}"
            raise SourceQueryError(account.id, msg) from e

        try:
            messages = [_parse_message(m) for m in data.get("messages") or []]
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            msg = f"malformed search response: {e}"
            raise SourceQueryError(account.id, msg) from e

        logger.debug("Account %s returned %d messages", account.id, len(messages))
        return messages


def _parse_message(raw: dict[str, Any]) -> RemoteMessage:
    """Map one camelCase wire message onto RemoteMessage."""
    return RemoteMessage(
        message_id=raw["messageId"],
        timestamp=raw.get("date"),
        sender_name=raw.get("fromName") or "",
        sender_address=raw.get("from") or "",
        subject=raw.get("subject") or "",
        snippet=raw.get("snippet") or "",
        attachments=[
            RemoteAttachment(
                attachment_id=a["attachmentId"],
                filename=a.get("filename") or "",
                content_type=a.get("mimeType") or "",
                size=a.get("size") or 0,
                is_likely_receipt=bool(a.get("isLikelyReceipt")),
                extracted_amount=a.get("extractedAmount"),
                extracted_currency=a.get("extractedCurrency"),
            )
            for a in raw.get("attachments") or []
        ],
    )


def _load_token(env_var: str) -> str | None:
    """Read the bearer token from the environment. Empty values count as unset."""
    value = os.environ.get(env_var, "").strip()
    return value or None
