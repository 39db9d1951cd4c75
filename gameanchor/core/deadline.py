"""Request deadline — bounds every network call by what is left of the request."""

from __future__ import annotations

import time
from collections.abc import Callable


class Deadline:
    """A monotonic deadline for one upload request.

    Parameters
    ----------
    seconds:
        Total budget for the request.
    clock:
        Monotonic clock, injectable for tests.
    """

    def __init__(self, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def timeout_for(self, stage_timeout: float) -> float:
        """The effective timeout for a stage: its own limit or what remains."""
        return min(stage_timeout, self.remaining())
