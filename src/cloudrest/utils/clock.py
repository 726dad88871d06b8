import time
from abc import ABC, abstractmethod

from cloudrest.utils.cancellation import CancellationToken


class Clock(ABC):
    """Time source used by backoff and polling, replaceable in tests."""

    @abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds."""

    @abstractmethod
    def sleep(self, seconds: float, cancel_token: CancellationToken | None = None) -> bool:
        """Block the calling thread.

        Args:
            seconds: Time to sleep
            cancel_token: Token whose cancellation interrupts the sleep

        Returns:
            bool: False when the sleep was interrupted by cancellation
        """


class SystemClock(Clock):
    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float, cancel_token: CancellationToken | None = None) -> bool:
        if cancel_token is not None:
            return not cancel_token.wait(seconds)
        if seconds > 0:
            time.sleep(seconds)
        return True


SYSTEM_CLOCK = SystemClock()
