"""Geometric backoff schedule shared by request retries and state polling."""

from dataclasses import dataclass

from cloudrest.constants import RetryDefaults


@dataclass(frozen=True)
class BackoffSchedule:
    """Delay calculator growing geometrically up to a cap.

    ``delay(n) = min(initial_period * growth_factor ** (n - 1), max_period)``

    Attributes:
        initial_period: Delay in seconds before the first retry
        max_period: Upper bound in seconds of any single delay
        growth_factor: Multiplier applied per attempt
    """

    initial_period: float = RetryDefaults.BACKOFF_INITIAL_PERIOD
    max_period: float = RetryDefaults.BACKOFF_MAX_PERIOD
    growth_factor: float = RetryDefaults.BACKOFF_GROWTH_FACTOR

    def __post_init__(self) -> None:
        if self.initial_period < 0:
            raise ValueError("initial_period must be >= 0")
        if self.max_period < self.initial_period:
            raise ValueError("max_period must be >= initial_period")
        if self.growth_factor < 1:
            raise ValueError("growth_factor must be >= 1")

    def delay(self, attempt: int) -> float:
        """Calculate delay for given attempt number.

        Args:
            attempt: Attempt number (1-based)

        Returns:
            Delay in seconds, never above ``max_period``
        """
        if attempt <= 0:
            return 0.0
        # Stop growing once past the cap so large attempt numbers cannot overflow
        delay = self.initial_period
        for _ in range(attempt - 1):
            delay *= self.growth_factor
            if delay >= self.max_period:
                return self.max_period
        return min(delay, self.max_period)

    def capped(self, delay: float) -> float:
        return max(0.0, min(delay, self.max_period))
