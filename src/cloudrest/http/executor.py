"""Runs one logical API call across as many physical attempts as it takes."""

import logging
from collections.abc import Callable, Iterable

from requests import PreparedRequest, Request, Response
from requests.exceptions import ConnectionError, RequestException, Timeout

from cloudrest.classifiers.chain import ClassifierChain
from cloudrest.config import RetrySettings
from cloudrest.constants import HttpStatus, RequestHeader
from cloudrest.exceptions import (
    CloudRestError,
    CommandCancelledError,
    ExceptionKind,
    TooManyRedirectsError,
    TooManyRetriesError,
    UnknownRemoteError,
    error_from_descriptor,
)
from cloudrest.handlers.backoff_limited import BackoffLimitedRetryHandler
from cloudrest.handlers.redirection import RedirectionRetryHandler, is_redirect
from cloudrest.http.command import CommandPhase, CommandState
from cloudrest.http.payloads import release_response
from cloudrest.http.transport import RequestsTransport, Transport
from cloudrest.utils.cancellation import CancellationToken
from cloudrest.utils.clock import SYSTEM_CLOCK, Clock

logger = logging.getLogger(__name__)

RequestFilter = Callable[[PreparedRequest], PreparedRequest | None]
CommandListener = Callable[[CommandState], None]


class CommandExecutor:
    """Executes requests with bounded retries, backoff and redirects.

    The executor and its collaborators keep no per-call state: every call to
    ``execute`` gets its own ``CommandState``, so one executor can serve many
    threads.

    Example:
        >>> executor = CommandExecutor(RequestsTransport(), aws_classifier_chain())
        >>> response = executor.execute(Request("PUT", "https://bucket.s3.amazonaws.com/"))
    """

    def __init__(
        self,
        transport: Transport,
        classifier_chain: ClassifierChain | None = None,
        retry_handler: BackoffLimitedRetryHandler | None = None,
        redirect_handler: RedirectionRetryHandler | None = None,
        clock: Clock | None = None,
        request_filters: Iterable[RequestFilter] = (),
        listeners: Iterable[CommandListener] = (),
    ) -> None:
        """Initialize the executor.

        Args:
            transport: Sends each physical attempt
            classifier_chain: Default chain for failed responses
            retry_handler: Decides on and waits for retries
            redirect_handler: Decides on and rewrites redirects
            clock: Time source for elapsed time and backoff
            request_filters: Applied to a copy of the request before every
                attempt, e.g. to sign it with a fresh date
            listeners: Called with the final state of every call
        """
        self.clock = clock or SYSTEM_CLOCK
        self.transport = transport
        self.classifier_chain = classifier_chain or ClassifierChain()
        self.retry_handler = retry_handler or BackoffLimitedRetryHandler(clock=self.clock)
        self.redirect_handler = redirect_handler or RedirectionRetryHandler()
        self.request_filters = tuple(request_filters)
        self.listeners = list(listeners)

    def add_listener(self, listener: CommandListener) -> None:
        self.listeners.append(listener)

    def execute(
        self,
        request: PreparedRequest | Request,
        classifier_chain: ClassifierChain | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Response:
        """Run the logical call until it succeeds or fails for good.

        Args:
            request: Request to send; a ``requests.Request`` is prepared first
            classifier_chain: Chain overriding the executor's default
            cancel_token: Checked before every attempt and during backoff

        Returns:
            Response: The successful (2xx) response, body not yet read

        Raises:
            CloudRestError: Subclass matching the failure's ExceptionKind,
                carrying the original status, message and the call's state
        """
        if isinstance(request, Request):
            request = request.prepare()
        state = CommandState(original_request=request, clock=self.clock)
        chain = classifier_chain or self.classifier_chain

        try:
            response = self._run(state, chain, cancel_token)
        except CloudRestError as e:
            if e.state is None:
                e.state = state
            state.last_failure = e
            state.transition(CommandPhase.FAILED)
            logger.info(
                "%s failed as %s after %d attempt(s), %d redirect(s) in %.2fs",
                state.describe(),
                e.kind.value,
                state.attempt_count,
                state.redirect_count,
                state.elapsed,
            )
            self._notify(state)
            raise
        except Exception as e:
            state.last_failure = e
            state.transition(CommandPhase.FAILED)
            logger.exception("%s failed unexpectedly", state.describe())
            self._notify(state)
            raise

        state.transition(CommandPhase.SUCCEEDED)
        logger.debug(
            "%s succeeded with HTTP %s after %d attempt(s), %d redirect(s) in %.2fs",
            state.describe(),
            response.status_code,
            state.attempt_count,
            state.redirect_count,
            state.elapsed,
        )
        self._notify(state)
        return response

    def _run(
        self,
        state: CommandState,
        chain: ClassifierChain,
        cancel_token: CancellationToken | None,
    ) -> Response:
        while True:
            self._raise_if_cancelled(state, cancel_token)
            state.transition(CommandPhase.SENDING)
            logger.debug(
                "Attempt %d (redirect %d) for %s",
                state.attempt_count,
                state.redirect_count,
                state.describe(),
            )

            try:
                response = self.transport.send(self._prepare_attempt(state.current_request))
            except (ConnectionError, Timeout) as e:
                error_type = "timeout" if isinstance(e, Timeout) else "connection"
                logger.warning("Request %s error for %s: %s", error_type, state.describe(), e)
                state.transition(CommandPhase.RETRYING)
                if self.retry_handler.should_retry_after_error(state, e, cancel_token):
                    continue
                self._raise_if_cancelled(state, cancel_token)
                raise TooManyRetriesError(
                    f"Gave up after {state.attempt_count} attempt(s) on "
                    f"{state.describe()}: request {error_type} error: {e}",
                    actual_err=e,
                    state=state,
                ) from e
            except RequestException as e:
                state.last_failure = e
                raise UnknownRemoteError(
                    f"Request exception on {state.describe()}: {e}",
                    actual_err=e,
                    state=state,
                ) from e

            state.transition(CommandPhase.AWAITING_RESPONSE)
            if response.status_code in HttpStatus.OK_RANGE:
                return response

            if is_redirect(response) and response.headers.get(RequestHeader.LOCATION):
                state.transition(CommandPhase.REDIRECTING)
                status_code = response.status_code
                if self.redirect_handler.should_retry(state, response):
                    continue
                raise TooManyRedirectsError(
                    f"Gave up after {state.redirect_count} redirect(s) on "
                    f"{state.describe()}: HTTP {status_code}",
                    status_code=status_code,
                    state=state,
                )

            try:
                descriptor, decision = chain.classify(response)
            except Exception:
                release_response(response)
                raise

            if decision.is_retry:
                state.transition(CommandPhase.RETRYING)
                if self.retry_handler.should_retry(
                    state, response, decision.delay, cancel_token
                ):
                    continue
                self._raise_if_cancelled(state, cancel_token)
                raise error_from_descriptor(ExceptionKind.TOO_MANY_RETRIES, descriptor, state)

            if decision.is_redirect:
                state.transition(CommandPhase.REDIRECTING)
                if self.redirect_handler.should_retry(
                    state, response, decision.target, decision.keep_path
                ):
                    continue
                raise error_from_descriptor(ExceptionKind.TOO_MANY_REDIRECTS, descriptor, state)

            release_response(response)
            raise error_from_descriptor(decision.kind or ExceptionKind.UNKNOWN, descriptor, state)

    def _prepare_attempt(self, request: PreparedRequest) -> PreparedRequest:
        if not self.request_filters:
            return request
        attempt = request.copy()
        for request_filter in self.request_filters:
            attempt = request_filter(attempt) or attempt
        return attempt

    @staticmethod
    def _raise_if_cancelled(
        state: CommandState, cancel_token: CancellationToken | None
    ) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            raise CommandCancelledError(
                f"Cancelled {state.describe()} at attempt {state.attempt_count}",
                state=state,
            )

    def _notify(self, state: CommandState) -> None:
        for listener in self.listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Command listener %r failed", listener)


def build_executor(
    classifier_chain: ClassifierChain | None = None,
    settings: RetrySettings | None = None,
    transport: Transport | None = None,
    clock: Clock | None = None,
    **kwargs,
) -> CommandExecutor:
    """Executor wired from ``RetrySettings``.

    Args:
        classifier_chain: Provider chain, e.g. ``aws_classifier_chain(settings)``
        settings: Retry settings; read from the environment if None
        transport: Transport to use; a ``RequestsTransport`` with the
            configured timeout if None
        clock: Time source
        **kwargs: Passed through to ``CommandExecutor``

    Returns:
        CommandExecutor: Ready to execute requests
    """
    settings = settings or RetrySettings.from_env()
    clock = clock or SYSTEM_CLOCK
    return CommandExecutor(
        transport=transport or RequestsTransport(timeout=settings.request_timeout),
        classifier_chain=classifier_chain,
        retry_handler=BackoffLimitedRetryHandler(
            max_retries=settings.max_retries,
            schedule=settings.schedule,
            clock=clock,
            respect_retry_after=settings.respect_retry_after,
        ),
        redirect_handler=RedirectionRetryHandler(max_redirects=settings.max_redirects),
        clock=clock,
        **kwargs,
    )
