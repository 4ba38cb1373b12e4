"""Ranking assembly: one best-first list from all scored candidates."""

from src.core.schemas import ScoredResult


def assemble(scored: list[ScoredResult], max_results: int | None = None) -> list[ScoredResult]:
    """Sort by score descending.

    ``sorted`` is stable (also with ``reverse=True``), so equal scores keep
    their production order: local first, then accounts in configured order.
    """
    ranked = sorted(scored, key=lambda r: r.score, reverse=True)
    if max_results is not None:
        return ranked[:max_results]
    return ranked
