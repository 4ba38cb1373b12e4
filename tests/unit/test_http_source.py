"""Tests for the HTTP mailbox source client (httpx mock transport)."""

import json
from datetime import date, datetime, timezone

import httpx
import pytest

from src.core.config import SourceSettings
from src.core.errors import SourceQueryError
from src.core.schemas import AccountRef, SourceQuery
from src.sources.http import HttpSourceClient

ACCOUNT = AccountRef(id="acct-1", email="books@example.com")

RESPONSE = {
    "messages": [
        {
            "messageId": "m1",
            "date": "2024-03-08T09:15:00Z",
            "from": "billing@acme.com",
            "fromName": "Acme Billing",
            "subject": "Invoice 42",
            "snippet": "Thanks for your order",
            "attachments": [
                {
                    "attachmentId": "a1",
                    "filename": "invoice-42.pdf",
                    "mimeType": "application/pdf",
                    "size": 2048,
                    "isLikelyReceipt": True,
                    "extractedAmount": 5100,
                    "extractedCurrency": "EUR",
                },
                {"attachmentId": "a2", "filename": "logo.png", "mimeType": "image/png"},
            ],
        },
        {"messageId": "m2"},
    ],
}


def _settings() -> SourceSettings:
    return SourceSettings(base_url="http://mail.test/api", token_env="TEST_SOURCE_TOKEN")


def _query(**overrides: object) -> SourceQuery:
    defaults: dict[str, object] = {
        "free_text": "acme",
        "date_from": date(2024, 2, 9),
        "date_to": date(2024, 3, 17),
        "limit": 20,
    }
    defaults.update(overrides)
    return SourceQuery(**defaults)  # type: ignore[arg-type]


class TestQuery:
    async def test_payload_and_parsing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_SOURCE_TOKEN", "secret")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=RESPONSE)

        async with HttpSourceClient(_settings(), transport=httpx.MockTransport(handler)) as client:
            messages = await client.query(ACCOUNT, _query())

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://mail.test/api/search"
        assert request.headers["Authorization"] == "Bearer secret"
        assert json.loads(request.content) == {
            "integrationId": "acct-1",
            "query": "acme",
            "dateFrom": "2024-02-09",
            "dateTo": "2024-03-17",
            "hasAttachments": True,
            "limit": 20,
        }

        assert [m.message_id for m in messages] == ["m1", "m2"]
        first = messages[0]
        assert first.timestamp == datetime(2024, 3, 8, 9, 15, tzinfo=timezone.utc)
        assert first.sender_name == "Acme Billing"
        assert first.sender_address == "billing@acme.com"
        assert first.subject == "Invoice 42"
        att = first.attachments[0]
        assert att.attachment_id == "a1"
        assert att.content_type == "application/pdf"
        assert att.is_likely_receipt is True
        assert att.extracted_amount == 5100
        assert first.attachments[1].is_likely_receipt is False
        assert messages[1].attachments == []
        assert messages[1].timestamp is None

    async def test_open_query(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TEST_SOURCE_TOKEN", raising=False)
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"messages": []})

        async with HttpSourceClient(_settings(), transport=httpx.MockTransport(handler)) as client:
            messages = await client.query(ACCOUNT, _query(free_text=None, date_from=None, date_to=None))

        assert messages == []
        assert "Authorization" not in seen[0].headers
        body = json.loads(seen[0].content)
        assert body["query"] is None
        assert body["dateFrom"] is None
        assert body["dateTo"] is None

    async def test_missing_messages_field(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        async with HttpSourceClient(_settings(), transport=httpx.MockTransport(handler)) as client:
            assert await client.query(ACCOUNT, _query()) == []


class TestErrors:
    async def _query_with(self, handler: object) -> None:
        transport = httpx.MockTransport(handler)  # type: ignore[arg-type]
        async with HttpSourceClient(_settings(), transport=transport) as client:
            await client.query(ACCOUNT, _query())

    async def test_http_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "token expired"})

        with pytest.raises(SourceQueryError, match=r"\[acct-1\] search returned HTTP 401") as exc_info:
            await self._query_with(handler)
        assert exc_info.value.account_id == "acct-1"

    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(SourceQueryError, match="request failed"):
            await self._query_with(handler)

    async def test_not_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(SourceQueryError, match="not JSON"):
            await self._query_with(handler)

    async def test_malformed_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"messages": [{"subject": "no id"}]})

        with pytest.raises(SourceQueryError, match="malformed"):
            await self._query_with(handler)

    async def test_query_outside_context(self) -> None:
        client = HttpSourceClient(_settings())
        with pytest.raises(RuntimeError, match="async with"):
            await client.query(ACCOUNT, _query())
