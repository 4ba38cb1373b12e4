"""Normalization of local items and remote attachments into Candidates."""

import datetime as dt
import logging

from src.core.schemas import Candidate, LocalItem, RemoteMessage

logger = logging.getLogger(__name__)

_DOCUMENT_EXTENSIONS = (".pdf", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".heic", ".tif", ".tiff")


def is_document_or_image(content_type: str, filename: str = "") -> bool:
    """Return True for PDFs and images.

    Mail providers often label attachments ``application/octet-stream``;
    those are accepted when the filename has a document/image extension.
    """
    ct = content_type.lower().split(";")[0].strip()
    if ct == "application/pdf" or ct.startswith("image/"):
        return True
    if ct in ("application/octet-stream", ""):
        return filename.lower().endswith(_DOCUMENT_EXTENSIONS)
    return False


def local_candidate(item: LocalItem) -> Candidate:
    """Convert a local store item into a Candidate.

    Uploaded documents are assumed to be receipts; the ones explicitly
    flagged otherwise never get this far.
    """
    return Candidate(
        id=f"local-{item.id}",
        source="local",
        filename=item.filename,
        content_type=item.content_type,
        size=item.size,
        date=item.extracted_date,
        amount=item.extracted_amount,
        currency=item.extracted_currency,
        counterparty=item.extracted_counterparty,
        is_likely_receipt=True,
        email_subject=item.email_subject,
        email_from=item.email_sender_address,
        file_id=item.id,
    )


def remote_candidates(message: RemoteMessage, account_id: str) -> list[Candidate]:
    """Explode a message into one Candidate per document/image attachment."""
    result: list[Candidate] = []
    for att in message.attachments:
        if not is_document_or_image(att.content_type, att.filename):
            logger.debug(
                "Skipping attachment '%s' (%s) in message %s",
                att.filename, att.content_type, message.message_id,
            )
            continue
        result.append(
            Candidate(
                id=f"remote-{account_id}-{message.message_id}-{att.attachment_id}",
                source="remote",
                filename=att.filename,
                content_type=att.content_type,
                size=att.size,
                date=_message_date(message.timestamp),
                amount=att.extracted_amount,
                currency=att.extracted_currency,
                counterparty=message.sender_name or message.sender_address or None,
                is_likely_receipt=att.is_likely_receipt,
                email_subject=message.subject or None,
                email_from=message.sender_address or None,
                account_id=account_id,
                message_id=message.message_id,
                attachment_id=att.attachment_id,
            )
        )
    return result


def _message_date(timestamp: dt.datetime | None) -> dt.date | None:
    """Calendar date of a message in UTC. Naive timestamps are taken as-is."""
    if timestamp is None:
        return None
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(dt.timezone.utc)
    return timestamp.date()
