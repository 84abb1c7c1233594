"""
Retry policy shared by the fetch and download pipelines.

The policy is plain data plus a backoff function, so tests can swap in a
deterministic backoff and a wait that never sleeps.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional
import random

MAX_RETRIES = 3


@dataclass
class ExponentialBackoff:
    """Exponential backoff with jitter.

    delay(attempt) = min(max_delay, base * factor ** attempt), of which a
    ``jitter`` fraction is randomized so that concurrent pipelines hitting
    the same upstream do not retry in lockstep.
    """

    base: float = 1.0
    factor: float = 2.0
    max_delay: float = 30.0
    jitter: float = 0.5
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        delay = min(self.max_delay, self.base * (self.factor ** attempt))
        if self.jitter:
            fixed = delay * (1 - self.jitter)
            delay = fixed + self.rng.uniform(0, delay - fixed)
        if retry_after is not None:
            delay = max(delay, min(retry_after, self.max_delay))
        return delay


@dataclass
class FixedBackoff:
    """Constant delay; mostly useful in tests."""

    seconds: float = 0.0

    def delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        return self.seconds


@dataclass
class RetryPolicy:
    """How many attempts a pipeline gets and how long it waits between them."""

    max_retries: int = MAX_RETRIES
    backoff: object = field(default_factory=ExponentialBackoff)

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")

    def can_retry(self, attempt: int) -> bool:
        """Whether another attempt may follow the failed 0-based ``attempt``."""
        return attempt + 1 < self.max_retries

    def delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        return self.backoff.delay(attempt, retry_after)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        b = settings.backoff
        return cls(
            max_retries=settings.max_retries,
            backoff=ExponentialBackoff(base=b.base, factor=b.factor, max_delay=b.max, jitter=b.jitter),
        )


# A wait function returns True when it was interrupted by cancellation
WaitFn = Callable[[float], bool]
