"""Filter chain selecting local store items that can back a transaction.

Filter order:
  1. UnlinkedFilter      — drop items already linked to a transaction
  2. NotReceiptFilter    — drop items flagged "not a receipt"
  3. ContentTypeFilter   — keep PDFs and images only
  4. DateWindowFilter    — only when a window is given; undated items pass
  5. free-text match     — only when text is given; records matched fields
"""

import logging
from collections.abc import Callable

from src.core.schemas import DateWindow, LocalItem
from src.pipeline.candidates import is_document_or_image

logger = logging.getLogger(__name__)

# A filter is a callable that takes local items and returns a subset.
Filter = Callable[[list[LocalItem]], list[LocalItem]]

BODY_TEXT_FIELD = "document text"


class UnlinkedFilter:
    """Remove items that are already attached to any transaction."""

    def __call__(self, items: list[LocalItem]) -> list[LocalItem]:
        result = [i for i in items if not i.is_linked]
        removed = len(items) - len(result)
        if removed:
            logger.debug("UnlinkedFilter: removed %d linked items", removed)
        return result


class NotReceiptFilter:
    """Remove items the user marked as not being a receipt."""

    def __call__(self, items: list[LocalItem]) -> list[LocalItem]:
        result = [i for i in items if not i.is_not_receipt]
        removed = len(items) - len(result)
        if removed:
            logger.debug("NotReceiptFilter: removed %d items", removed)
        return result


class ContentTypeFilter:
    """Keep only documents and images."""

    def __call__(self, items: list[LocalItem]) -> list[LocalItem]:
        result = [i for i in items if is_document_or_image(i.content_type, i.filename)]
        removed = len(items) - len(result)
        if removed:
            logger.debug("ContentTypeFilter: removed %d items", removed)
        return result


class DateWindowFilter:
    """Keep items whose extracted date falls inside the window.

    Items without an extracted date pass: they may simply not have been
    processed yet.
    """

    def __init__(self, window: DateWindow | None) -> None:
        self._window = window

    def __call__(self, items: list[LocalItem]) -> list[LocalItem]:
        if self._window is None or self._window.is_open:
            return items
        result = [
            i for i in items
            if i.extracted_date is None or self._window.contains(i.extracted_date)
        ]
        removed = len(items) - len(result)
        if removed:
            logger.debug("DateWindowFilter: removed %d items", removed)
        return result


def match_free_text(item: LocalItem, text: str, body_min_length: int = 4) -> list[str]:
    """Return the names of the item fields containing ``text``.

    Structured fields are checked first. The extracted body text is only a
    fallback: it is consulted for text of at least ``body_min_length``
    characters and reported only when nothing structured matched.
    """
    needle = text.lower().strip()
    if not needle:
        return []

    def has(value: str | None) -> bool:
        return value is not None and needle in value.lower()

    matched: list[str] = []
    if has(item.filename):
        matched.append("filename")
    if has(item.extracted_counterparty):
        matched.append("partner")
    if has(item.email_subject):
        matched.append("email subject")
    if has(item.email_sender_address) or has(item.email_sender_name):
        matched.append("email sender")
    if has(item.extracted_tax_id):
        matched.append("VAT ID")
    if has(item.extracted_bank_id):
        matched.append("IBAN")
    if has(item.extracted_website):
        matched.append("website")

    if not matched and len(needle) >= body_min_length and has(item.extracted_text):
        matched.append(BODY_TEXT_FIELD)
    return matched


def run_filter_chain(
    items: list[LocalItem],
    filters: list[Filter],
) -> list[LocalItem]:
    """Apply filters in order, returning the surviving items."""
    result = items
    for f in filters:
        result = f(result)
    return result


def select_local_items(
    items: list[LocalItem],
    *,
    window: DateWindow | None = None,
    free_text: str = "",
    body_min_length: int = 4,
) -> list[tuple[LocalItem, list[str]]]:
    """Run the full local selection and pair each survivor with its matched fields.

    Without free text every surviving item is returned with no matched fields.
    """
    filters: list[Filter] = [
        UnlinkedFilter(),
        NotReceiptFilter(),
        ContentTypeFilter(),
        DateWindowFilter(window),
    ]
    survivors = run_filter_chain(list(items), filters)

    if not free_text.strip():
        return [(i, []) for i in survivors]

    result: list[tuple[LocalItem, list[str]]] = []
    for item in survivors:
        matched = match_free_text(item, free_text, body_min_length)
        if matched:
            result.append((item, matched))
    logger.debug(
        "Free text '%s' matched %d of %d local items", free_text, len(result), len(survivors),
    )
    return result
