"""Bounded retry with geometric backoff for transient provider failures."""

import logging

from requests import Response

from cloudrest.backoff import BackoffSchedule
from cloudrest.constants import RequestHeader, RetryDefaults
from cloudrest.http.command import CommandState
from cloudrest.http.payloads import is_replayable, release_response, rewind_body
from cloudrest.utils.cancellation import CancellationToken
from cloudrest.utils.clock import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)


class BackoffLimitedRetryHandler:
    """Decides whether a failed attempt is retried, and waits before it is.

    Each granted retry counts one more attempt on the ``CommandState`` it is
    handed; once ``max_retries`` retries were granted the answer is no. The handler
    holds no per-call state, so one instance serves any number of concurrent
    calls.
    """

    def __init__(
        self,
        max_retries: int = RetryDefaults.MAX_RETRIES,
        schedule: BackoffSchedule | None = None,
        clock: Clock | None = None,
        respect_retry_after: bool = RetryDefaults.RESPECT_RETRY_AFTER,
    ) -> None:
        """Initialize the handler.

        Args:
            max_retries: Maximum number of retries per logical call
            schedule: Delay per retry; the default schedule if None
            clock: Time source used to sleep
            respect_retry_after: Wait at least a numeric Retry-After header
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.schedule = schedule or BackoffSchedule()
        self.clock = clock or SYSTEM_CLOCK
        self.respect_retry_after = respect_retry_after

    def imposed_delay(self, retry_count: int) -> float:
        return self.schedule.delay(retry_count)

    def should_retry(
        self,
        state: CommandState,
        failed_response: Response | None,
        delay: float | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        """Count the failure and, if still within bounds, back off.

        The failed response is drained and closed whatever the answer.

        Args:
            state: State of the logical call the failure belongs to
            failed_response: Response of the failed attempt, if there was one
            delay: Provider suggested delay overriding the schedule
            cancel_token: Cancelling it interrupts the backoff

        Returns:
            bool: True if the caller should send the request again
        """
        try:
            return self._count_and_wait(state, failed_response, delay, cancel_token)
        finally:
            release_response(failed_response)

    def should_retry_after_error(
        self,
        state: CommandState,
        error: BaseException,
        cancel_token: CancellationToken | None = None,
    ) -> bool:
        """Same ladder for a transport failure that produced no response."""
        state.last_failure = error
        return self._count_and_wait(state, None, None, cancel_token)

    def _count_and_wait(
        self,
        state: CommandState,
        failed_response: Response | None,
        delay: float | None,
        cancel_token: CancellationToken | None,
    ) -> bool:
        # attempt_count keeps matching the physical attempts sent, so the
        # limit is checked before counting the next one
        if state.retry_count >= self.max_retries:
            logger.error(
                "Giving up on %s after %d attempt(s)",
                state.describe(),
                state.attempt_count,
            )
            return False

        request = state.current_request
        if request is not None and not is_replayable(request):
            logger.error("Cannot retry %s, request body is not replayable", state.describe())
            return False

        retry_count = state.retry_count + 1
        wait = self._delay_for(retry_count, failed_response, delay)
        logger.warning(
            "Retry %d/%d for %s (status %s), waiting %.2fs",
            retry_count,
            self.max_retries,
            state.describe(),
            failed_response.status_code if failed_response is not None else "n/a",
            wait,
        )
        if not self.clock.sleep(wait, cancel_token):
            logger.info("Backoff for %s interrupted by cancellation", state.describe())
            return False
        # counted once the next attempt is certain to go out
        state.attempt_count += 1
        if request is not None:
            rewind_body(request)
        return True

    def _delay_for(
        self,
        retry_count: int,
        failed_response: Response | None,
        delay: float | None,
    ) -> float:
        wait = self.imposed_delay(retry_count) if delay is None else delay
        if self.respect_retry_after and failed_response is not None:
            retry_after = _parse_retry_after(failed_response)
            if retry_after is not None:
                wait = max(wait, retry_after)
        return self.schedule.capped(wait)


def _parse_retry_after(response: Response) -> float | None:
    value = response.headers.get(RequestHeader.RETRY_AFTER)
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form is not honoured
        return None
