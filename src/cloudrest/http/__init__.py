from .command import CommandPhase, CommandState
from .payloads import is_replayable, release_response
from .transport import RequestsTransport, Transport

__all__ = [
    "CommandPhase",
    "CommandState",
    "RequestsTransport",
    "Transport",
    "is_replayable",
    "release_response",
]
