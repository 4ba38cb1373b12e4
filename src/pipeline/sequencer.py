"""Search generations: lets a newer search supersede an in-flight one.

Nothing is cancelled. A continuation compares its generation with the
current one on arrival and drops its result when they differ.
"""

import logging
import threading

logger = logging.getLogger(__name__)


class SearchSequencer:
    """Monotonically increasing generation counter.

    Usage::

        seq = SearchSequencer()
        gen = seq.begin()
        ...  # await something
        if seq.is_current(gen):
            ...  # publish
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = 0

    @property
    def current(self) -> int:
        with self._lock:
            return self._current

    def begin(self) -> int:
        """Start a new generation and return its id."""
        with self._lock:
            self._current += 1
            generation = self._current
        logger.debug("Began search generation %d", generation)
        return generation

    def is_current(self, generation: int) -> bool:
        """Return True if no newer generation has begun since ``generation``."""
        with self._lock:
            current = self._current
        if generation != current:
            logger.debug("Generation %d is stale (current %d)", generation, current)
            return False
        return True
