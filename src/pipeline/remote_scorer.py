"""Scoring delegated to the remote scoring service (POST /score)."""

import logging

import httpx

from src.api.models import (
    AttachmentInput,
    PartnerInput,
    ScoreRequest,
    ScoreResponse,
    TransactionInput,
)
from src.core.config import ScoringSettings
from src.core.errors import ScoringError
from src.core.schemas import Candidate, PartnerProfile, ScoredResult, TransactionQuery
from src.pipeline.scorer import RuleScorer, Scorer, score_label

logger = logging.getLogger(__name__)


class HttpScorer(Scorer):
    """Posts the whole batch to the scoring service in one request.

    On any failure every candidate is returned with score 0 and no
    reasons, so the search still delivers a result set.
    """

    def __init__(
        self,
        config: ScoringSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not config.remote_url:
            msg = "HttpScorer requires scoring.remote_url"
            raise ValueError(msg)
        self._config = config
        self._transport = transport

    @property
    def backend_id(self) -> str:
        return "remote"

    async def score(
        self,
        candidates: list[Candidate],
        query: TransactionQuery,
        partner: PartnerProfile | None = None,
        *,
        matched_fields: dict[str, list[str]] | None = None,
    ) -> list[ScoredResult]:
        fields = matched_fields or {}
        if not candidates:
            return []

        try:
            response = await self._post(candidates, query, partner)
        except Exception:
            logger.warning(
                "Remote scoring failed for %d candidates — defaulting to 0",
                len(candidates),
                exc_info=True,
            )
            return [
                ScoredResult(candidate=c, matched_fields=list(fields.get(c.id, [])))
                for c in candidates
            ]

        by_key = {entry.key: entry for entry in response.scores}
        missing = [c.id for c in candidates if c.id not in by_key]
        if missing:
            logger.warning("Remote scoring omitted %d candidates: %s", len(missing), missing)

        results: list[ScoredResult] = []
        for c in candidates:
            entry = by_key.get(c.id)
            score = entry.score if entry else 0.0
            results.append(
                ScoredResult(
                    candidate=c,
                    score=score,
                    reasons=list(entry.reasons) if entry else [],
                    matched_fields=list(fields.get(c.id, [])),
                    label=score_label(score, self._config.label_strong, self._config.label_likely),
                )
            )
        return results

    async def _post(
        self,
        candidates: list[Candidate],
        query: TransactionQuery,
        partner: PartnerProfile | None,
    ) -> ScoreResponse:
        request = ScoreRequest(
            attachments=[AttachmentInput.from_candidate(c) for c in candidates],
            transaction=TransactionInput.from_query(query),
            partner=PartnerInput.from_profile(partner) if partner else None,
        )
        async with httpx.AsyncClient(
            timeout=self._config.timeout_s, transport=self._transport,
        ) as client:
            response = await client.post(
                self._config.remote_url,  # type: ignore[arg-type]
                json=request.model_dump(mode="json", by_alias=True),
            )
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict) or "scores" not in data:
            msg = "Scoring response missing 'scores' field"
            raise ScoringError(msg)
        return ScoreResponse.model_validate(data)


def build_scorer(config: ScoringSettings) -> Scorer:
    """Return the scorer for the configured backend."""
    if config.backend == "remote":
        return HttpScorer(config)
    return RuleScorer(config.label_strong, config.label_likely)
