"""Retry policy for fetching configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy for config server requests.

    Attributes:
        max_attempts: Total attempts including the first one. 0 and 1 both
            mean a single attempt without retry.
        base_delay_ms: Delay after the first failed attempt.
        backoff_multiplier: Factor applied to the delay after each failure.
    """

    max_attempts: int = 3
    base_delay_ms: float = 1000.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("backoff_multiplier must be > 0")

    @property
    def attempts(self) -> int:
        """Number of attempts actually made."""
        return max(1, int(self.max_attempts))

    def delay_ms(self, attempt_index: int) -> float:
        """Delay to wait after the failed attempt with 0-based ``attempt_index``."""
        return float(self.base_delay_ms) * float(self.backoff_multiplier) ** attempt_index

    @staticmethod
    def from_dict(d: Optional[Dict[str, Any]]) -> "RetryPolicy":
        """Create a RetryPolicy from a dictionary, defaults for missing fields."""
        if not d:
            return RetryPolicy()
        unknown = set(d) - {"max_attempts", "base_delay_ms", "backoff_multiplier"}
        if unknown:
            raise ValueError(f"Unknown retry options: {', '.join(sorted(unknown))}")
        return RetryPolicy(**d)


@dataclass(frozen=True)
class RetryEvent:
    application: str
    profile: str
    failure_attempt: int
    max_attempts: int
    delay_ms: float
    error_type: str
    error_message: str


OnRetryFn = Callable[[RetryEvent], None]
SleepFn = Callable[[float], Awaitable[None]]
