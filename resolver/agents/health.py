"""Advisory availability cache for external services."""

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class ServiceHealth:
    """Remembers whether a service answered last time.

    A service marked down is skipped until `recheck_seconds` have passed,
    after which the next call is allowed through as a probe.
    """

    def __init__(self, name: str, recheck_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.recheck_seconds = recheck_seconds
        self._clock = clock
        self._healthy = True
        self._checked_at: float | None = None

    @property
    def healthy(self) -> bool:
        return self._healthy

    def should_attempt(self) -> bool:
        if self._healthy or self._checked_at is None:
            return True
        return self._clock() - self._checked_at >= self.recheck_seconds

    def mark_ok(self) -> None:
        if not self._healthy:
            logger.info("%s is reachable again", self.name)
        self._healthy = True
        self._checked_at = self._clock()

    def mark_failed(self) -> None:
        if self._healthy:
            logger.warning(
                "%s marked unavailable — skipping calls for %.0fs",
                self.name,
                self.recheck_seconds,
            )
        self._healthy = False
        self._checked_at = self._clock()
