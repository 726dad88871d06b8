from dataclasses import dataclass
from enum import Enum

from cloudrest.exceptions import ExceptionKind


class RetryAction(Enum):
    RETRY = "RETRY"
    REDIRECT = "REDIRECT"
    FAIL = "FAIL"


@dataclass(frozen=True)
class RetryDecision:
    """What to do with a failed attempt.

    Build through ``retry``, ``redirect`` or ``fail``; exactly one payload
    field is meaningful per action.
    """

    action: RetryAction
    delay: float | None = None
    target: str | None = None
    keep_path: bool = False
    kind: ExceptionKind | None = None

    @classmethod
    def retry(cls, delay: float | None = None) -> "RetryDecision":
        """Transient failure; hand over to the backoff handler.

        Args:
            delay: Provider suggested wait in seconds; the schedule decides if None
        """
        return cls(RetryAction.RETRY, delay=delay)

    @classmethod
    def redirect(cls, target: str, keep_path: bool = False) -> "RetryDecision":
        """Send the request elsewhere.

        Args:
            target: Absolute or relative URL; with ``keep_path`` only its
                scheme (if any) and authority are used, e.g. ``//host:8443``
            keep_path: Keep the current request's path and query
        """
        return cls(RetryAction.REDIRECT, target=target, keep_path=keep_path)

    @classmethod
    def fail(cls, kind: ExceptionKind) -> "RetryDecision":
        return cls(RetryAction.FAIL, kind=kind)

    @property
    def is_retry(self) -> bool:
        return self.action is RetryAction.RETRY

    @property
    def is_redirect(self) -> bool:
        return self.action is RetryAction.REDIRECT

    @property
    def is_fail(self) -> bool:
        return self.action is RetryAction.FAIL
