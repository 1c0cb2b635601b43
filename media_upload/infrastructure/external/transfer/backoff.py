"""Retry delay policies for the resumable transport."""

from __future__ import annotations

import random
from collections.abc import Sequence

# Seconds; immediate first retry, then escalating waits up to one minute
DEFAULT_RETRY_DELAYS: tuple[float, ...] = (0, 3, 5, 10, 20, 60, 60)


class FixedScheduleBackoff:
    """Fixed escalating delay schedule (BackoffPolicy).

    Attempt n (1-based) waits delays[n - 1] seconds; once the schedule is
    exhausted next_delay returns None and the caller gives up.
    """

    def __init__(self, delays: Sequence[float] = DEFAULT_RETRY_DELAYS) -> None:
        if any(d < 0 for d in delays):
            raise ValueError("Retry delays must not be negative")
        self.delays = tuple(delays)

    @property
    def max_attempts(self) -> int:
        return len(self.delays)

    def next_delay(self, attempt: int) -> float | None:
        if attempt < 1 or attempt > len(self.delays):
            return None
        return self.delays[attempt - 1]


class ExponentialBackoff:
    """Exponential delays with full jitter, capped (BackoffPolicy)."""

    def __init__(
        self,
        base: float = 1.0,
        cap: float = 60.0,
        max_attempts: int = 7,
        rng: random.Random | None = None,
    ) -> None:
        if base <= 0 or cap <= 0:
            raise ValueError("base and cap must be positive")
        self.base = base
        self.cap = cap
        self.max_attempts = max_attempts
        self._rng = rng or random.Random()

    def next_delay(self, attempt: int) -> float | None:
        if attempt < 1 or attempt > self.max_attempts:
            return None
        ceiling = min(self.cap, self.base * (2 ** (attempt - 1)))
        return self._rng.uniform(0, ceiling)
