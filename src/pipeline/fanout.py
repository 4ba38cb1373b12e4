"""Source fan-out: local selection plus one parallel query per connected account.

A failing account contributes nothing and is reported as a partial
failure. It never aborts the other queries or the search.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from src.core.config import SearchSettings
from src.core.schemas import (
    AccountRef,
    Candidate,
    DateWindow,
    LocalItem,
    RemoteMessage,
    SourceQuery,
    TransactionQuery,
)
from src.pipeline.candidates import local_candidate, remote_candidates
from src.pipeline.matcher import select_local_items
from src.sources.base import SourceClient

logger = logging.getLogger(__name__)


@dataclass
class FanOutResult:
    """Candidates from all sources, local first, then accounts in given order."""

    candidates: list[Candidate] = field(default_factory=list)
    partial_failures: list[AccountRef] = field(default_factory=list)
    matched_fields: dict[str, list[str]] = field(default_factory=dict)
    local_count: int = 0
    remote_count: int = 0


def default_window(query: TransactionQuery, settings: SearchSettings) -> DateWindow | None:
    """Window around the transaction date used when the caller gave none."""
    if query.date is None:
        return None
    return DateWindow(
        date_from=query.date - timedelta(days=settings.days_before),
        date_to=query.date + timedelta(days=settings.days_after),
    )


class FanOutOrchestrator:
    """Collects candidates from the local collection and every connected account."""

    def __init__(self, source_client: SourceClient | None, settings: SearchSettings) -> None:
        self._client = source_client
        self._settings = settings

    def local(
        self,
        local_items: list[LocalItem],
        *,
        free_text: str = "",
        date_window: DateWindow | None = None,
    ) -> tuple[list[Candidate], dict[str, list[str]]]:
        """Select and normalize local items. Errors propagate to the caller."""
        selected = select_local_items(
            local_items,
            window=date_window,
            free_text=free_text,
            body_min_length=self._settings.body_text_min_length,
        )
        candidates: list[Candidate] = []
        matched: dict[str, list[str]] = {}
        for item, fields in selected:
            candidate = local_candidate(item)
            candidates.append(candidate)
            if fields:
                matched[candidate.id] = fields
        return candidates, matched

    async def remote(
        self,
        query: TransactionQuery,
        accounts: list[AccountRef],
        *,
        free_text: str = "",
        date_window: DateWindow | None = None,
    ) -> tuple[list[Candidate], list[AccountRef]]:
        """Query all accounts in parallel and flatten the successful results."""
        if self._client is None or not accounts:
            return [], []

        window = date_window if date_window is not None else default_window(query, self._settings)
        source_query = SourceQuery(
            free_text=free_text.strip() or None,
            date_from=window.date_from if window else None,
            date_to=window.date_to if window else None,
            must_have_attachments=True,
            limit=self._settings.remote_limit,
        )

        logger.info("Querying %d accounts in parallel", len(accounts))
        outcomes = await asyncio.gather(
            *(self._query_account(self._client, a, source_query) for a in accounts),
        )

        candidates: list[Candidate] = []
        failures: list[AccountRef] = []
        for account, messages in outcomes:
            if messages is None:
                failures.append(account)
                continue
            for message in messages:
                candidates.extend(remote_candidates(message, account.id))
        return candidates, failures

    async def search(
        self,
        query: TransactionQuery,
        local_items: list[LocalItem],
        *,
        free_text: str = "",
        accounts: list[AccountRef] | None = None,
        date_window: DateWindow | None = None,
        local_only: bool = False,
    ) -> FanOutResult:
        """Run the local selection and, unless ``local_only``, the remote fan-out.

        An explicit ``date_window`` filters local items and replaces the
        default remote window. Without one, local items are not date-filtered
        and remote queries use the default window around the transaction.
        """
        local, matched = self.local(local_items, free_text=free_text, date_window=date_window)

        remote: list[Candidate] = []
        failures: list[AccountRef] = []
        if local_only:
            logger.debug("Local-only search — skipping remote sources")
        else:
            remote, failures = await self.remote(
                query, list(accounts or []), free_text=free_text, date_window=date_window,
            )

        logger.info(
            "Fan-out: %d local, %d remote candidates, %d failed accounts",
            len(local), len(remote), len(failures),
        )
        return FanOutResult(
            candidates=local + remote,
            partial_failures=failures,
            matched_fields=matched,
            local_count=len(local),
            remote_count=len(remote),
        )

    async def _query_account(
        self,
        client: SourceClient,
        account: AccountRef,
        query: SourceQuery,
    ) -> tuple[AccountRef, list[RemoteMessage] | None]:
        """Query one account. Returns None instead of messages on any failure."""
        try:
            messages = await client.query(account, query)
        except Exception:
            logger.warning(
                "Source query failed for account '%s' — continuing without it",
                account.id,
                exc_info=True,
            )
            return account, None
        logger.debug("Account '%s': %d messages", account.id, len(messages))
        return account, messages
