"""Exception types raised by the matching engine."""


class SourceQueryError(Exception):
    """A single remote account query failed.

    Recovered by the fan-out: the account contributes no candidates and is
    reported as a partial failure.
    """

    def __init__(self, account_id: str, message: str) -> None:
        self.account_id = account_id
        super().__init__(f"[{account_id}] {message}")


class ScoringError(Exception):
    """The scoring delegate returned an unusable response."""


class SearchError(Exception):
    """Terminal failure of one search generation."""

    def __init__(self, generation: int, message: str) -> None:
        self.generation = generation
        super().__init__(message)
