import logging
from dataclasses import dataclass, field
from enum import Enum

from requests import PreparedRequest

from cloudrest.utils.clock import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)


class CommandPhase(Enum):
    SENDING = "SENDING"
    AWAITING_RESPONSE = "AWAITING_RESPONSE"
    RETRYING = "RETRYING"
    REDIRECTING = "REDIRECTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (CommandPhase.SUCCEEDED, CommandPhase.FAILED)


@dataclass
class CommandState:
    """Mutable record of one logical call.

    Owned by exactly one in-flight call and never shared. ``attempt_count``
    starts at 1 for the first physical attempt and grows by one per retry;
    redirects are counted separately in ``redirect_count``.
    """

    original_request: PreparedRequest
    current_request: PreparedRequest | None = None
    attempt_count: int = 1
    redirect_count: int = 0
    last_failure: BaseException | None = None
    phase: CommandPhase = CommandPhase.SENDING
    clock: Clock = field(default=SYSTEM_CLOCK, repr=False)
    started_at: float = field(init=False)
    finished_at: float | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.current_request is None:
            self.current_request = self.original_request
        self.started_at = self.clock.now()

    @property
    def retry_count(self) -> int:
        return self.attempt_count - 1

    @property
    def elapsed(self) -> float:
        """Seconds spent in the call so far, or in total once it finished."""
        end = self.finished_at if self.finished_at is not None else self.clock.now()
        return end - self.started_at

    def transition(self, phase: CommandPhase) -> None:
        if self.phase.is_terminal:
            raise RuntimeError(f"Command already finished as {self.phase.value}")
        logger.debug("Command %s -> %s", self.phase.value, phase.value)
        self.phase = phase
        if phase.is_terminal:
            self.finished_at = self.clock.now()

    def describe(self) -> str:
        request = self.current_request
        return f"{request.method} {request.url}" if request is not None else "<no request>"
