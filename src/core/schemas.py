"""Core data models for the document matching engine."""

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SourceKind = Literal["local", "remote"]


class AccountRef(BaseModel):
    """Reference to one connected mailbox account."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str = ""
    provider: str = "gmail"

    @field_validator("id")
    @classmethod
    def id_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "account id must not be empty"
            raise ValueError(msg)
        return v.strip()


class TransactionQuery(BaseModel):
    """The transaction a supporting document is searched for.

    Amount is signed, in minor currency units. A missing date or amount is
    allowed; the sub-scores depending on it simply contribute nothing.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    date: dt.date | None = None
    amount: int | None = None
    currency: str = "EUR"
    counterparty: str | None = None
    counterparty_id: str | None = None


class PartnerProfile(BaseModel):
    """Known facts about a counterparty, used only to bias scoring."""

    model_config = ConfigDict(frozen=True)

    name: str
    aliases: list[str] = Field(default_factory=list)
    email_domains: list[str] = Field(default_factory=list)
    preferred_sources: list[SourceKind] = Field(default_factory=list)


class DateWindow(BaseModel):
    """Inclusive date range; either bound may be open."""

    model_config = ConfigDict(frozen=True)

    date_from: dt.date | None = None
    date_to: dt.date | None = None

    def contains(self, value: dt.date) -> bool:
        if self.date_from is not None and value < self.date_from:
            return False
        if self.date_to is not None and value > self.date_to:
            return False
        return True

    @property
    def is_open(self) -> bool:
        return self.date_from is None and self.date_to is None


class LocalItem(BaseModel):
    """A document already held in the local store."""

    model_config = ConfigDict(frozen=True)

    id: str
    filename: str
    content_type: str
    size: int = 0
    transaction_ids: list[str] = Field(default_factory=list)
    is_not_receipt: bool = False
    extracted_date: dt.date | None = None
    extracted_amount: int | None = None
    extracted_currency: str | None = None
    extracted_counterparty: str | None = None
    extracted_tax_id: str | None = None
    extracted_bank_id: str | None = None
    extracted_website: str | None = None
    email_subject: str | None = None
    email_sender_name: str | None = None
    email_sender_address: str | None = None
    extracted_text: str | None = None

    @property
    def is_linked(self) -> bool:
        return bool(self.transaction_ids)


class RemoteAttachment(BaseModel):
    """Attachment metadata returned by a mailbox query (never the bytes)."""

    model_config = ConfigDict(frozen=True)

    attachment_id: str
    filename: str
    content_type: str
    size: int = 0
    is_likely_receipt: bool = False
    extracted_amount: int | None = None
    extracted_currency: str | None = None


class RemoteMessage(BaseModel):
    """A mailbox message with its attachments."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    timestamp: dt.datetime | None = None
    sender_name: str = ""
    sender_address: str = ""
    subject: str = ""
    snippet: str = ""
    attachments: list[RemoteAttachment] = Field(default_factory=list)


class SourceQuery(BaseModel):
    """Parameters for one remote account query."""

    model_config = ConfigDict(frozen=True)

    free_text: str | None = None
    date_from: dt.date | None = None
    date_to: dt.date | None = None
    must_have_attachments: bool = True
    limit: int = 20


class Candidate(BaseModel):
    """Source-agnostic metadata for a potential supporting document.

    Carries linkage ids so a collaborator can fetch the bytes later.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source: SourceKind
    filename: str
    content_type: str
    size: int = 0
    date: dt.date | None = None
    amount: int | None = None
    currency: str | None = None
    counterparty: str | None = None
    is_likely_receipt: bool = False
    email_subject: str | None = None
    email_from: str | None = None
    # local linkage
    file_id: str | None = None
    # remote linkage
    account_id: str | None = None
    message_id: str | None = None
    attachment_id: str | None = None


class ScoredResult(BaseModel):
    """Pairs a frozen Candidate with its score and the reasons behind it."""

    model_config = ConfigDict(frozen=True)

    candidate: Candidate
    score: float = Field(default=0.0, ge=0.0, le=100.0)
    reasons: list[str] = Field(default_factory=list)
    matched_fields: list[str] = Field(default_factory=list)
    label: Literal["Strong", "Likely"] | None = None


class SearchOutcome(BaseModel):
    """Ranked results delivered for one search generation."""

    generation: int
    results: list[ScoredResult] = Field(default_factory=list)
    partial_failures: list[AccountRef] = Field(default_factory=list)
    local_count: int = 0
    remote_count: int = 0

    def to_dict(self) -> dict:
        return {
            "generation": self.generation,
            "partial_failures": [a.id for a in self.partial_failures],
            "results": [
                {
                    "id": r.candidate.id,
                    "source": r.candidate.source,
                    "filename": r.candidate.filename,
                    "date": r.candidate.date.isoformat() if r.candidate.date else None,
                    "amount": r.candidate.amount,
                    "currency": r.candidate.currency,
                    "counterparty": r.candidate.counterparty,
                    "score": r.score,
                    "label": r.label,
                    "reasons": r.reasons,
                    "matched_fields": r.matched_fields,
                }
                for r in self.results
            ],
        }
