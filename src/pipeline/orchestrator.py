"""Orchestrator: wires sequencer, fan-out, scorer, and ranking.

Data flow:
  1. Sequencer stamps a new generation
  2. Fan-out → local candidates + parallel remote queries (join all)
  3. Generation check
  4. Scorer → one batch call
  5. Generation check
  6. Ranking → best-first list, published as ``latest``
"""

import json
import logging

from src.core.config import Settings
from src.core.errors import SearchError
from src.core.schemas import (
    AccountRef,
    DateWindow,
    LocalItem,
    PartnerProfile,
    SearchOutcome,
    TransactionQuery,
)
from src.pipeline.fanout import FanOutOrchestrator
from src.pipeline.ranking import assemble
from src.pipeline.remote_scorer import build_scorer
from src.pipeline.scorer import Scorer
from src.pipeline.sequencer import SearchSequencer
from src.sources.base import SourceClient

logger = logging.getLogger(__name__)


class MatchingEngine:
    """Unified search for documents supporting one transaction.

    A search started while an older one is still in flight supersedes it:
    the older search returns None and never touches ``latest``.
    """

    def __init__(
        self,
        settings: Settings,
        source_client: SourceClient | None = None,
        scorer: Scorer | None = None,
    ) -> None:
        self._settings = settings
        self._fanout = FanOutOrchestrator(source_client, settings.search)
        self._scorer = scorer or build_scorer(settings.scoring)
        self._sequencer = SearchSequencer()
        self._latest: SearchOutcome | None = None

    @property
    def latest(self) -> SearchOutcome | None:
        """The most recently delivered outcome."""
        return self._latest

    @property
    def generation(self) -> int:
        return self._sequencer.current

    def clear(self) -> None:
        """Drop published results; in-flight searches become stale."""
        self._sequencer.begin()
        self._latest = None

    async def search(
        self,
        query: TransactionQuery,
        local_items: list[LocalItem],
        *,
        free_text: str = "",
        partner: PartnerProfile | None = None,
        accounts: list[AccountRef] | None = None,
        date_window: DateWindow | None = None,
        local_only: bool = False,
    ) -> SearchOutcome | None:
        """Search all sources, score, and rank.

        Args:
            query: Transaction to find supporting documents for.
            local_items: Already-loaded local store collection.
            free_text: Optional text to narrow local items and remote queries.
            partner: Optional partner profile biasing the score.
            accounts: Accounts to query; defaults to the connected accounts.
            date_window: Explicit window, authoritative for all sources.
            local_only: Skip remote sources entirely.

        Returns:
            SearchOutcome, or None if a newer search began before this one
            finished.

        Raises:
            SearchError: If local selection failed for the current generation.
        """
        generation = self._sequencer.begin()
        if accounts is None:
            accounts = [a.ref() for a in self._settings.connected_accounts]

        logger.info(
            "Search #%d for transaction '%s' (text=%r, local_only=%s)",
            generation, query.id, free_text, local_only,
        )

        try:
            fanned = await self._fanout.search(
                query,
                local_items,
                free_text=free_text,
                accounts=accounts,
                date_window=date_window,
                local_only=local_only,
            )
        except Exception as e:
            if not self._sequencer.is_current(generation):
                return None
            msg = f"Search #{generation} failed: {e}"
            raise SearchError(generation, msg) from e

        if not self._sequencer.is_current(generation):
            logger.debug("Discarding stale fan-out of search #%d", generation)
            return None

        scored = await self._scorer.score(
            fanned.candidates, query, partner, matched_fields=fanned.matched_fields,
        )

        if not self._sequencer.is_current(generation):
            logger.debug("Discarding stale scores of search #%d", generation)
            return None

        outcome = SearchOutcome(
            generation=generation,
            results=assemble(scored, self._settings.search.max_results),
            partial_failures=fanned.partial_failures,
            local_count=fanned.local_count,
            remote_count=fanned.remote_count,
        )
        self._latest = outcome

        logger.info(
            "Search #%d: %d local, %d remote, %d ranked, %d failed accounts",
            generation,
            outcome.local_count,
            outcome.remote_count,
            len(outcome.results),
            len(outcome.partial_failures),
        )
        return outcome


def export_results_json(outcome: SearchOutcome) -> str:
    """Export a search outcome as a JSON string."""
    return json.dumps(outcome.to_dict(), indent=2)
