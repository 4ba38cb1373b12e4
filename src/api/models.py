"""Request and response models for the scoring service.

These Pydantic models define the wire contract (camelCase JSON) shared by
the FastAPI service and the remote scoring client.
"""

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.core.schemas import Candidate, PartnerProfile, SourceKind, TransactionQuery


class _Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AttachmentInput(_Wire):
    """One candidate to score, keyed by its candidate id."""

    key: str = Field(..., min_length=1)
    filename: str = ""
    mime_type: str = ""
    source_kind: SourceKind = "remote"
    amount: int | None = None
    currency: str | None = None
    date: dt.date | None = None
    partner: str | None = None
    email_subject: str | None = None
    email_from: str | None = None
    integration_id: str | None = None
    is_likely_receipt: bool = False

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "AttachmentInput":
        return cls(
            key=candidate.id,
            filename=candidate.filename,
            mime_type=candidate.content_type,
            source_kind=candidate.source,
            amount=candidate.amount,
            currency=candidate.currency,
            date=candidate.date,
            partner=candidate.counterparty,
            email_subject=candidate.email_subject,
            email_from=candidate.email_from,
            integration_id=candidate.account_id,
            is_likely_receipt=candidate.is_likely_receipt,
        )

    def to_candidate(self) -> Candidate:
        return Candidate(
            id=self.key,
            source=self.source_kind,
            filename=self.filename,
            content_type=self.mime_type,
            date=self.date,
            amount=self.amount,
            currency=self.currency,
            counterparty=self.partner,
            is_likely_receipt=self.is_likely_receipt,
            email_subject=self.email_subject,
            email_from=self.email_from,
            account_id=self.integration_id,
        )


class TransactionInput(_Wire):
    """The transaction being matched."""

    id: str = ""
    amount: int | None = None
    currency: str = "EUR"
    date: dt.date | None = None
    partner: str | None = None
    partner_id: str | None = None

    @classmethod
    def from_query(cls, query: TransactionQuery) -> "TransactionInput":
        return cls(
            id=query.id,
            amount=query.amount,
            currency=query.currency,
            date=query.date,
            partner=query.counterparty,
            partner_id=query.counterparty_id,
        )

    def to_query(self) -> TransactionQuery:
        return TransactionQuery(
            id=self.id,
            amount=self.amount,
            currency=self.currency,
            date=self.date,
            counterparty=self.partner,
            counterparty_id=self.partner_id,
        )


class PartnerInput(_Wire):
    """Optional partner profile used to bias scoring."""

    name: str
    aliases: list[str] = Field(default_factory=list)
    email_domains: list[str] = Field(default_factory=list)
    preferred_sources: list[SourceKind] = Field(default_factory=list)

    @classmethod
    def from_profile(cls, partner: PartnerProfile) -> "PartnerInput":
        return cls(
            name=partner.name,
            aliases=list(partner.aliases),
            email_domains=list(partner.email_domains),
            preferred_sources=list(partner.preferred_sources),
        )

    def to_profile(self) -> PartnerProfile:
        return PartnerProfile(
            name=self.name,
            aliases=self.aliases,
            email_domains=self.email_domains,
            preferred_sources=self.preferred_sources,
        )


class ScoreRequest(_Wire):
    """Request to /score."""

    attachments: list[AttachmentInput]
    transaction: TransactionInput
    partner: PartnerInput | None = None


class ScoreEntry(_Wire):
    """Score for one attachment key."""

    key: str
    score: float = Field(..., ge=0.0, le=100.0)
    label: Literal["Strong", "Likely"] | None = None
    reasons: list[str] = Field(default_factory=list)


class ScoreResponse(_Wire):
    """Response from /score."""

    scores: list[ScoreEntry]


class HealthResponse(_Wire):
    """Response from /health."""

    status: str
    backend: str
