from .cancellation import CancellationToken
from .clock import SYSTEM_CLOCK, Clock, SystemClock

__all__ = ["CancellationToken", "Clock", "SYSTEM_CLOCK", "SystemClock"]
