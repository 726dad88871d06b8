"""Bounded polling until a condition holds.

Used to wait for a remote resource to reach a desired state, e.g. a server
becoming ``ACTIVE`` or a bucket becoming visible after creation.
"""

import concurrent.futures
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from cloudrest.backoff import BackoffSchedule
from cloudrest.exceptions import ExecutionError, IllegalStateError
from cloudrest.utils.cancellation import CancellationToken
from cloudrest.utils.clock import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures raised by a check that mean "not satisfied yet" rather than "broken".
# The builtin TimeoutError also covers concurrent.futures.TimeoutError.
DEFAULT_IGNORED_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ExecutionError,
    IllegalStateError,
    concurrent.futures.CancelledError,
    TimeoutError,
)


@dataclass(frozen=True)
class PollBounds:
    """Limits of a polling loop.

    Either bound (or both) may be set; whichever trips first ends the loop.

    Attributes:
        timeout: Wall clock budget in seconds
        max_attempts: Maximum number of times the check is invoked
        initial_period: Sleep before the second invocation
        max_period: Upper bound of any single sleep
        growth_factor: Multiplier applied to the sleep per invocation
    """

    timeout: float | None = None
    max_attempts: int | None = None
    initial_period: float = 0.05
    max_period: float = 1.0
    growth_factor: float = 1.5

    def __post_init__(self) -> None:
        if self.timeout is None and self.max_attempts is None:
            raise ValueError("PollBounds needs a timeout, max_attempts or both")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError("timeout must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @property
    def schedule(self) -> BackoffSchedule:
        return BackoffSchedule(
            initial_period=self.initial_period,
            max_period=self.max_period,
            growth_factor=self.growth_factor,
        )

    @classmethod
    def deadline(cls, timeout: float, **kwargs: float) -> "PollBounds":
        return cls(timeout=timeout, **kwargs)

    @classmethod
    def attempts(cls, max_attempts: int, **kwargs: float) -> "PollBounds":
        return cls(max_attempts=max_attempts, **kwargs)


def await_condition(
    check: Callable[[], bool],
    bounds: PollBounds,
    *,
    clock: Clock | None = None,
    cancel_token: CancellationToken | None = None,
    ignored_exceptions: tuple[type[BaseException], ...] = DEFAULT_IGNORED_EXCEPTIONS,
) -> bool:
    """Invoke ``check`` until it returns True or a bound is exceeded.

    Args:
        check: Zero-argument callable polled for the condition
        bounds: Deadline and/or attempt limits, plus the sleep schedule
        clock: Time source; the system clock by default
        cancel_token: Cancelling it stops the loop, including mid-sleep
        ignored_exceptions: Exceptions from ``check`` treated as "not yet";
            anything else propagates and ends the loop

    Returns:
        bool: True if the condition was met, False on bound exceeded or cancel
    """
    clock = clock or SYSTEM_CLOCK
    schedule = bounds.schedule
    start = clock.now()
    deadline = start + bounds.timeout if bounds.timeout is not None else None
    attempt = 0

    while True:
        if cancel_token is not None and cancel_token.cancelled:
            logger.debug("Polling cancelled after %d attempt(s)", attempt)
            return False

        attempt += 1
        try:
            if check():
                logger.debug("Condition met on attempt %d", attempt)
                return True
        except ignored_exceptions as e:
            logger.debug("Condition not met on attempt %d: %s", attempt, e)

        if bounds.max_attempts is not None and attempt >= bounds.max_attempts:
            logger.debug("Giving up polling after %d attempt(s)", attempt)
            return False

        delay = schedule.delay(attempt)
        if deadline is not None:
            remaining = deadline - clock.now()
            if remaining <= 0:
                logger.debug(
                    "Giving up polling after %.2fs (timeout %.2fs)",
                    clock.now() - start,
                    bounds.timeout,
                )
                return False
            delay = min(delay, remaining)

        if not clock.sleep(delay, cancel_token):
            logger.debug("Polling interrupted during backoff of %.2fs", delay)
            return False


class RetryablePredicate(Generic[T]):
    """Wraps a predicate over a value so that applying it polls until true.

    Example:
        >>> is_active = RetryablePredicate(
        ...     lambda server_id: api.get_server(server_id).status == "ACTIVE",
        ...     PollBounds.deadline(600, initial_period=1, max_period=10),
        ... )
        >>> is_active.apply("srv-1")
    """

    def __init__(
        self,
        predicate: Callable[[T], bool],
        bounds: PollBounds,
        clock: Clock | None = None,
        ignored_exceptions: tuple[type[BaseException], ...] = DEFAULT_IGNORED_EXCEPTIONS,
    ) -> None:
        self.predicate = predicate
        self.bounds = bounds
        self.clock = clock
        self.ignored_exceptions = ignored_exceptions

    def apply(self, value: T, cancel_token: CancellationToken | None = None) -> bool:
        return await_condition(
            lambda: self.predicate(value),
            self.bounds,
            clock=self.clock,
            cancel_token=cancel_token,
            ignored_exceptions=self.ignored_exceptions,
        )

    __call__ = apply

    def __repr__(self) -> str:
        return f"RetryablePredicate({self.predicate!r}, {self.bounds!r})"
