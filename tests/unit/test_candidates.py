"""Tests for candidate normalization."""

from datetime import date, datetime, timedelta, timezone

import pytest

from src.core.schemas import LocalItem, RemoteAttachment, RemoteMessage
from src.pipeline.candidates import is_document_or_image, local_candidate, remote_candidates


def _attachment(
    attachment_id: str = "att-1",
    filename: str = "invoice.pdf",
    content_type: str = "application/pdf",
    **overrides: object,
) -> RemoteAttachment:
    return RemoteAttachment(
        attachment_id=attachment_id,
        filename=filename,
        content_type=content_type,
        size=2048,
        **overrides,  # type: ignore[arg-type]
    )


def _message(attachments: list[RemoteAttachment], **overrides: object) -> RemoteMessage:
    defaults: dict[str, object] = {
        "message_id": "msg-1",
        "timestamp": datetime(2024, 3, 8, 23, 30, tzinfo=timezone.utc),
        "sender_name": "Acme Billing",
        "sender_address": "billing@acme.com",
        "subject": "Your invoice",
        "attachments": attachments,
    }
    defaults.update(overrides)
    return RemoteMessage(**defaults)  # type: ignore[arg-type]


class TestIsDocumentOrImage:
    @pytest.mark.parametrize(
        ("content_type", "filename"),
        [
            ("application/pdf", "x"),
            ("APPLICATION/PDF", "x"),
            ("image/png", "x"),
            ("image/jpeg; name=scan.jpg", "x"),
            ("application/octet-stream", "scan.PDF"),
            ("", "photo.heic"),
        ],
    )
    def test_accepted(self, content_type: str, filename: str) -> None:
        assert is_document_or_image(content_type, filename)

    @pytest.mark.parametrize(
        ("content_type", "filename"),
        [
            ("text/html", "invoice.pdf"),
            ("application/zip", "bundle.zip"),
            ("application/octet-stream", "data.bin"),
            ("text/calendar", "invite.ics"),
        ],
    )
    def test_rejected(self, content_type: str, filename: str) -> None:
        assert not is_document_or_image(content_type, filename)


class TestLocalCandidate:
    def test_fields(self) -> None:
        item = LocalItem(
            id="f1",
            filename="acme.pdf",
            content_type="application/pdf",
            size=100,
            extracted_date=date(2024, 3, 10),
            extracted_amount=4999,
            extracted_currency="EUR",
            extracted_counterparty="ACME",
            email_sender_address="billing@acme.com",
        )
        c = local_candidate(item)
        assert c.id == "local-f1"
        assert c.source == "local"
        assert c.file_id == "f1"
        assert c.amount == 4999
        assert c.counterparty == "ACME"
        assert c.email_from == "billing@acme.com"
        assert c.is_likely_receipt is True
        assert c.account_id is None


class TestRemoteCandidates:
    def test_one_candidate_per_attachment(self) -> None:
        msg = _message([_attachment("a1"), _attachment("a2", "scan.png", "image/png")])
        result = remote_candidates(msg, "acct-1")
        assert [c.id for c in result] == ["remote-acct-1-msg-1-a1", "remote-acct-1-msg-1-a2"]
        assert all(c.source == "remote" for c in result)
        assert all(c.account_id == "acct-1" and c.message_id == "msg-1" for c in result)

    def test_non_documents_dropped(self) -> None:
        msg = _message([
            _attachment("a1", "invite.ics", "text/calendar"),
            _attachment("a2"),
        ])
        result = remote_candidates(msg, "acct-1")
        assert [c.attachment_id for c in result] == ["a2"]

    def test_message_metadata(self) -> None:
        msg = _message([_attachment(is_likely_receipt=True, extracted_amount=5100)])
        c = remote_candidates(msg, "acct-1")[0]
        assert c.date == date(2024, 3, 8)
        assert c.counterparty == "Acme Billing"
        assert c.email_from == "billing@acme.com"
        assert c.email_subject == "Your invoice"
        assert c.amount == 5100
        assert c.is_likely_receipt is True

    def test_sender_address_when_no_name(self) -> None:
        msg = _message([_attachment()], sender_name="")
        assert remote_candidates(msg, "acct-1")[0].counterparty == "billing@acme.com"

    def test_offset_timestamp_uses_utc_date(self) -> None:
        eastern = timezone(timedelta(hours=-5))
        msg = _message([_attachment()], timestamp=datetime(2024, 3, 9, 23, 30, tzinfo=eastern))
        assert remote_candidates(msg, "acct-1")[0].date == date(2024, 3, 10)

    def test_naive_timestamp_date_kept(self) -> None:
        msg = _message([_attachment()], timestamp=datetime(2024, 3, 9, 23, 30))
        assert remote_candidates(msg, "acct-1")[0].date == date(2024, 3, 9)

    def test_no_timestamp(self) -> None:
        msg = _message([_attachment()], timestamp=None)
        assert remote_candidates(msg, "acct-1")[0].date is None

    def test_message_without_attachments(self) -> None:
        assert remote_candidates(_message([]), "acct-1") == []
