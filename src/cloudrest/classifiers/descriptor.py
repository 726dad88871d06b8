from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class ErrorDescriptor:
    """Decoded view of a failed response.

    Attributes:
        http_status_code: Status of the failed response
        provider_code: Provider error code, e.g. ``InvalidInstanceID.NotFound``
        message: Provider message, or the HTTP reason when none was decoded
        raw_body: Body text as received
        details: Extra fields found by the decoder, e.g. ``Endpoint``
        decode_error: Why the body could not be decoded, when it could not
        headers: Response headers, for classifiers that need e.g. Retry-After
    """

    http_status_code: int
    provider_code: str | None = None
    message: str = ""
    raw_body: str = ""
    details: Mapping[str, Any] = field(default_factory=dict)
    decode_error: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def summary(self) -> str:
        """Message surfaced to callers, keeping status, code and decode failure."""
        parts = [f"HTTP {self.http_status_code}"]
        if self.provider_code:
            parts.append(f"[{self.provider_code}]")
        text = " ".join(parts)
        if self.message:
            text = f"{text}: {self.message}"
        if self.decode_error:
            text = f"{text} (error body could not be decoded: {self.decode_error})"
        return text
