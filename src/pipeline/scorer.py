"""Rule-based scoring of candidates against a transaction.

Score range: 0-100. The total is a plain sum of independently capped
sub-scores, evaluated in this order:

  amount proximity   40 / 38 / 30 / 20 / 0    (exact / ≤1% / ≤5% / ≤10%)
  date proximity     25 / 22 / 15 / 8 / 3 / 0 (0 / ≤3 / ≤7 / ≤14 / ≤30 days)
  counterparty       20                       (binary)
  preferred source   10                       (binary)
  likely receipt      5                       (binary)

A missing signal contributes 0, never a penalty.
"""

import datetime as dt
import logging
from abc import ABC, abstractmethod

from src.core.schemas import Candidate, PartnerProfile, ScoredResult, TransactionQuery

logger = logging.getLogger(__name__)

AMOUNT_CAP = 40
DATE_CAP = 25
COUNTERPARTY_CAP = 20
PREFERRED_SOURCE_CAP = 10
LIKELY_RECEIPT_CAP = 5

# (max relative difference in percent, points, reason)
AMOUNT_TIERS: list[tuple[int, int, str]] = [
    (1, 38, "Amount ±1%"),
    (5, 30, "Amount ±5%"),
    (10, 20, "Amount ±10%"),
]

# (max day difference, points, reason)
DATE_TIERS: list[tuple[int, int, str]] = [
    (0, 25, "Same day"),
    (3, 22, "Within 3 days"),
    (7, 15, "Within 7 days"),
    (14, 8, "Within 14 days"),
    (30, 3, "Within 30 days"),
]


def score_amount(candidate_amount: int | None, query_amount: int | None) -> tuple[int, str | None]:
    """Score amount proximity on absolute minor units.

    Zero counts as missing. Integer cross-multiplication keeps the tier
    boundaries exact: ``|Δ| * 100 <= |q| * pct``.
    """
    if not candidate_amount or not query_amount:
        return 0, None
    c = abs(candidate_amount)
    q = abs(query_amount)
    diff = abs(c - q)
    if diff == 0:
        return AMOUNT_CAP, "Exact amount"
    for pct, points, reason in AMOUNT_TIERS:
        if diff * 100 <= q * pct:
            return points, reason
    return 0, None


def score_date(candidate_date: dt.date | None, query_date: dt.date | None) -> tuple[int, str | None]:
    """Score date proximity by absolute calendar-day difference."""
    if candidate_date is None or query_date is None:
        return 0, None
    days = abs((candidate_date - query_date).days)
    for max_days, points, reason in DATE_TIERS:
        if days <= max_days:
            return points, reason
    return 0, None


def score_counterparty(
    candidate: Candidate,
    query: TransactionQuery,
    partner: PartnerProfile | None,
) -> tuple[int, str | None]:
    """Binary counterparty match.

    Names are the partner's name and aliases, or the transaction's
    counterparty when no partner is known. Containment is checked in both
    directions, case-insensitively. A sender address on one of the
    partner's email domains also counts.
    """
    if partner is not None:
        names = [partner.name, *partner.aliases]
    else:
        names = [query.counterparty] if query.counterparty else []
    names = [n.lower().strip() for n in names if n and n.strip()]

    if candidate.counterparty and names:
        value = candidate.counterparty.lower().strip()
        if value and any(n in value or value in n for n in names):
            return COUNTERPARTY_CAP, "Partner match"

    if partner is not None and partner.email_domains and candidate.email_from:
        domain = _email_domain(candidate.email_from)
        known = {d.lower().lstrip("@") for d in partner.email_domains}
        if domain and domain in known:
            return COUNTERPARTY_CAP, f"Sender domain matches {domain}"

    return 0, None


def score_candidate(
    candidate: Candidate,
    query: TransactionQuery,
    partner: PartnerProfile | None = None,
    *,
    matched_fields: list[str] | None = None,
    label_strong: float = 75.0,
    label_likely: float = 40.0,
) -> ScoredResult:
    """Score a single candidate. Pure: same inputs, same score and reasons."""
    score = 0
    reasons: list[str] = []

    for points, reason in (
        score_amount(candidate.amount, query.amount),
        score_date(candidate.date, query.date),
        score_counterparty(candidate, query, partner),
    ):
        if points and reason:
            score += points
            reasons.append(reason)

    if partner is not None and candidate.source in partner.preferred_sources:
        score += PREFERRED_SOURCE_CAP
        reasons.append("Preferred source")

    if candidate.is_likely_receipt:
        score += LIKELY_RECEIPT_CAP
        reasons.append("Likely receipt")

    return ScoredResult(
        candidate=candidate,
        score=float(score),
        reasons=reasons,
        matched_fields=list(matched_fields or []),
        label=score_label(score, label_strong, label_likely),
    )


def score_candidates(
    candidates: list[Candidate],
    query: TransactionQuery,
    partner: PartnerProfile | None = None,
    *,
    matched_fields: dict[str, list[str]] | None = None,
    label_strong: float = 75.0,
    label_likely: float = 40.0,
) -> list[ScoredResult]:
    """Score a batch of candidates, preserving input order."""
    fields = matched_fields or {}
    return [
        score_candidate(
            c, query, partner,
            matched_fields=fields.get(c.id),
            label_strong=label_strong,
            label_likely=label_likely,
        )
        for c in candidates
    ]


def score_label(score: float, strong: float = 75.0, likely: float = 40.0) -> str | None:
    """Map a score onto the 'Strong' / 'Likely' labels."""
    if score >= strong:
        return "Strong"
    if score >= likely:
        return "Likely"
    return None


def _email_domain(address: str) -> str | None:
    _, sep, domain = address.strip().rstrip(">").rpartition("@")
    if not sep or "." not in domain:
        return None
    return domain.lower()


class Scorer(ABC):
    """Batch scorer. One call per search, so remote backends are cheap."""

    @property
    @abstractmethod
    def backend_id(self) -> str:
        """Unique identifier for this backend (e.g. 'local')."""

    @abstractmethod
    async def score(
        self,
        candidates: list[Candidate],
        query: TransactionQuery,
        partner: PartnerProfile | None = None,
        *,
        matched_fields: dict[str, list[str]] | None = None,
    ) -> list[ScoredResult]:
        """Return one ScoredResult per candidate, in input order."""


class RuleScorer(Scorer):
    """In-process scorer running the rules above."""

    def __init__(self, label_strong: float = 75.0, label_likely: float = 40.0) -> None:
        self._label_strong = label_strong
        self._label_likely = label_likely

    @property
    def backend_id(self) -> str:
        return "local"

    async def score(
        self,
        candidates: list[Candidate],
        query: TransactionQuery,
        partner: PartnerProfile | None = None,
        *,
        matched_fields: dict[str, list[str]] | None = None,
    ) -> list[ScoredResult]:
        return score_candidates(
            candidates, query, partner,
            matched_fields=matched_fields,
            label_strong=self._label_strong,
            label_likely=self._label_likely,
        )
