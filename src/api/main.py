"""FastAPI application exposing the rule scorer as a scoring delegate.

Endpoints:
- POST /score  — batch-score attachments against one transaction
- GET /health  — liveness check
"""

import logging

from fastapi import FastAPI

from src.api.models import HealthResponse, ScoreEntry, ScoreRequest, ScoreResponse
from src.pipeline.scorer import score_candidates

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Document Match Scoring API",
    description="Scores candidate receipts/invoices against a bank transaction",
    version="0.1.0",
)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", backend="local")


@app.post("/score", response_model=ScoreResponse, response_model_by_alias=True)
async def score(request: ScoreRequest) -> ScoreResponse:
    """Score every attachment in the request.

    The response carries one entry per attachment key, in request order.
    """
    candidates = [a.to_candidate() for a in request.attachments]
    query = request.transaction.to_query()
    partner = request.partner.to_profile() if request.partner else None

    results = score_candidates(candidates, query, partner)
    logger.info(
        "Scored %d attachments for transaction '%s'", len(results), query.id or "<unnamed>",
    )
    return ScoreResponse(
        scores=[
            ScoreEntry(key=r.candidate.id, score=r.score, label=r.label, reasons=r.reasons)
            for r in results
        ],
    )
