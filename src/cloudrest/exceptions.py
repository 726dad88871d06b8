import logging
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cloudrest.classifiers.descriptor import ErrorDescriptor
    from cloudrest.http.command import CommandState

logger = logging.getLogger(__name__)


class ExceptionKind(Enum):
    """Portable classification of a failed logical call."""

    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    AUTHORIZATION_FAILURE = "AUTHORIZATION_FAILURE"
    INSUFFICIENT_RESOURCES = "INSUFFICIENT_RESOURCES"
    ILLEGAL_STATE = "ILLEGAL_STATE"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    ILLEGAL_ARGUMENT = "ILLEGAL_ARGUMENT"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    TOO_MANY_RETRIES = "TOO_MANY_RETRIES"
    UNKNOWN = "UNKNOWN"
    CANCELLED = "CANCELLED"

    @property
    def is_exhaustion(self) -> bool:
        """True when the remote kept failing transiently or kept redirecting."""
        return self in (ExceptionKind.TOO_MANY_RETRIES, ExceptionKind.TOO_MANY_REDIRECTS)


class CloudRestError(Exception):
    DEFAULT_MESSAGE = "Something went wrong while calling the provider"
    kind: ExceptionKind = ExceptionKind.UNKNOWN
    actual_err: Exception | None = None
    status_code: int | None = None

    def __init__(
        self,
        message: str = DEFAULT_MESSAGE,
        status_code: int | None = None,
        actual_err: Exception | None = None,
        provider_code: str | None = None,
        raw_body: str | None = None,
        decode_error: str | None = None,
        state: "CommandState | None" = None,
    ) -> None:
        """Initialize the CloudRestError exception.

        Args:
            message: Error message description, as reported by the provider
                whenever one could be decoded
            status_code: HTTP status code of the failed response
            actual_err: The original exception that caused this error
            provider_code: Provider specific error code, e.g. ``OperationAborted``
            raw_body: Undecoded body of the failed response
            decode_error: Why the error body could not be decoded, if it could not
            state: Command state of the logical call at the time of failure
        """
        super().__init__(message)
        self.message = message
        self.provider_code = provider_code
        self.raw_body = raw_body
        self.decode_error = decode_error
        self.state = state
        if actual_err:
            self.actual_err = actual_err

        if status_code:
            self.status_code = status_code
        elif actual_err is not None:
            response = getattr(actual_err, "response", None)
            if getattr(actual_err, "status_code", None):
                self.status_code = actual_err.status_code
            elif response is not None and getattr(response, "status_code", None):
                self.status_code = response.status_code

    def __str__(self) -> str:
        """Return string representation of the CloudRestError."""
        return self.message


class ResourceNotFoundError(CloudRestError):
    DEFAULT_MESSAGE = "The requested resource does not exist"
    kind = ExceptionKind.RESOURCE_NOT_FOUND


class AuthorizationError(CloudRestError):
    DEFAULT_MESSAGE = "The provider rejected the credentials or the permissions"
    kind = ExceptionKind.AUTHORIZATION_FAILURE


class InsufficientResourcesError(CloudRestError):
    DEFAULT_MESSAGE = "The provider does not have capacity for the request"
    kind = ExceptionKind.INSUFFICIENT_RESOURCES


class IllegalStateError(CloudRestError):
    DEFAULT_MESSAGE = "The resource is not in a state that allows the request"
    kind = ExceptionKind.ILLEGAL_STATE


class UnsupportedOperationError(CloudRestError):
    DEFAULT_MESSAGE = "The provider does not support the operation"
    kind = ExceptionKind.UNSUPPORTED_OPERATION


class IllegalArgumentError(CloudRestError):
    DEFAULT_MESSAGE = "The provider rejected a request argument"
    kind = ExceptionKind.ILLEGAL_ARGUMENT


class TooManyRedirectsError(CloudRestError):
    DEFAULT_MESSAGE = "Redirect limit exceeded"
    kind = ExceptionKind.TOO_MANY_REDIRECTS


class TooManyRetriesError(CloudRestError):
    DEFAULT_MESSAGE = "Retry limit exceeded"
    kind = ExceptionKind.TOO_MANY_RETRIES


class UnknownRemoteError(CloudRestError):
    kind = ExceptionKind.UNKNOWN


class CommandCancelledError(CloudRestError):
    DEFAULT_MESSAGE = "The call was cancelled"
    kind = ExceptionKind.CANCELLED


class ExecutionError(CloudRestError):
    """Raised by a polled check when the remote side is not ready yet."""

    DEFAULT_MESSAGE = "The check could not be completed"


class ErrorBodyDecodeError(CloudRestError):
    DEFAULT_MESSAGE = "Unable to decode the error body"


_ERRORS_BY_KIND: dict[ExceptionKind, type[CloudRestError]] = {
    ExceptionKind.RESOURCE_NOT_FOUND: ResourceNotFoundError,
    ExceptionKind.AUTHORIZATION_FAILURE: AuthorizationError,
    ExceptionKind.INSUFFICIENT_RESOURCES: InsufficientResourcesError,
    ExceptionKind.ILLEGAL_STATE: IllegalStateError,
    ExceptionKind.UNSUPPORTED_OPERATION: UnsupportedOperationError,
    ExceptionKind.ILLEGAL_ARGUMENT: IllegalArgumentError,
    ExceptionKind.TOO_MANY_REDIRECTS: TooManyRedirectsError,
    ExceptionKind.TOO_MANY_RETRIES: TooManyRetriesError,
    ExceptionKind.UNKNOWN: UnknownRemoteError,
    ExceptionKind.CANCELLED: CommandCancelledError,
}


def error_for_kind(kind: ExceptionKind, message: str, **kwargs: Any) -> CloudRestError:
    """Build the exception matching ``kind``.

    Args:
        kind: Classified kind of the failure
        message: Message to surface
        **kwargs: Passed to CloudRestError

    Returns:
        CloudRestError: Instance of the subclass registered for ``kind``
    """
    return _ERRORS_BY_KIND[kind](message, **kwargs)


def error_from_descriptor(
    kind: ExceptionKind,
    descriptor: "ErrorDescriptor",
    state: "CommandState | None" = None,
    actual_err: Exception | None = None,
) -> CloudRestError:
    """Surface a classified failure with the original status and message attached."""
    message = descriptor.summary()
    if kind.is_exhaustion and state is not None:
        if kind is ExceptionKind.TOO_MANY_RETRIES:
            message = f"Gave up after {state.attempt_count} attempt(s). {message}"
        else:
            message = f"Gave up after {state.redirect_count} redirect(s). {message}"
    logger.debug("Surfacing %s for status %s", kind.value, descriptor.http_status_code)
    return error_for_kind(
        kind,
        message,
        status_code=descriptor.http_status_code,
        provider_code=descriptor.provider_code,
        raw_body=descriptor.raw_body,
        decode_error=descriptor.decode_error,
        state=state,
        actual_err=actual_err,
    )
