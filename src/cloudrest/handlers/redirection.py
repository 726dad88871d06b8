"""Bounded redirect following that keeps the request consistent with its target."""

import logging
from urllib.parse import urljoin, urlsplit, urlunsplit

from requests import PreparedRequest, Response

from cloudrest.constants import DEFAULT_PORTS, HTTPMethod, HttpStatus, RequestHeader, RetryDefaults
from cloudrest.http.command import CommandState
from cloudrest.http.payloads import is_replayable, release_response, rewind_body

logger = logging.getLogger(__name__)

_BODY_HEADERS = (
    RequestHeader.CONTENT_TYPE,
    RequestHeader.CONTENT_LENGTH,
    RequestHeader.CONTENT_MD5,
    "Transfer-Encoding",
)


def is_redirect(response: Response) -> bool:
    return response.status_code in HttpStatus.REDIRECTS


def _authority(url: str) -> str:
    """``host[:port]`` of ``url`` with the scheme's default port omitted."""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is None or DEFAULT_PORTS.get(parts.scheme) == port:
        return host
    return f"{host}:{port}"


def _origin(url: str) -> tuple[str, str, int | None]:
    parts = urlsplit(url)
    return parts.scheme, parts.hostname or "", parts.port or DEFAULT_PORTS.get(parts.scheme)


class RedirectionRetryHandler:
    """Follows redirects up to ``max_redirects`` per logical call.

    Notes:
        - Redirects are not backed off and never count as retries.
        - The original request is never mutated; the state's current request
          is replaced by a rewritten copy.
    """

    def __init__(
        self,
        max_redirects: int = RetryDefaults.MAX_REDIRECTS,
        keep_authorization_across_hosts: bool = False,
    ) -> None:
        if max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")
        self.max_redirects = max_redirects
        self.keep_authorization_across_hosts = keep_authorization_across_hosts

    def should_retry(
        self,
        state: CommandState,
        redirect_response: Response,
        target: str | None = None,
        keep_path: bool = False,
    ) -> bool:
        """Point the state's request at the redirect target, if allowed.

        Args:
            state: State of the logical call being redirected
            redirect_response: The redirect response; drained and closed here
            target: Redirect target; read from the Location header if None
            keep_path: Move only to the target's endpoint, keeping the
                current path and query

        Returns:
            bool: True if the caller should send the rewritten request
        """
        try:
            return self._follow(state, redirect_response, target, keep_path)
        finally:
            release_response(redirect_response)

    def _follow(
        self,
        state: CommandState,
        response: Response,
        target: str | None,
        keep_path: bool,
    ) -> bool:
        # redirect_count keeps matching the redirects actually followed
        if state.redirect_count >= self.max_redirects:
            logger.error(
                "Giving up on %s after %d redirect(s)",
                state.describe(),
                state.redirect_count,
            )
            return False

        location = target or response.headers.get(RequestHeader.LOCATION)
        if not location:
            logger.warning(
                "HTTP %s for %s carries no redirect target",
                response.status_code,
                state.describe(),
            )
            return False

        current = state.current_request or state.original_request
        if keep_path:
            resolved = self.relocate(current, location)
        else:
            resolved = self.resolve(state.original_request, location)

        redirected = self.rewrite(current, resolved, response.status_code)
        if not is_replayable(redirected):
            logger.error(
                "Cannot follow redirect for %s, request body is not replayable",
                state.describe(),
            )
            return False
        rewind_body(redirected)

        state.redirect_count += 1
        state.current_request = redirected
        logger.info(
            "Redirect %d/%d: HTTP %s to %s",
            state.redirect_count,
            self.max_redirects,
            response.status_code,
            state.describe(),
        )
        return True

    @staticmethod
    def resolve(original: PreparedRequest, location: str) -> str:
        """Absolute target for ``location``.

        A relative location keeps the original scheme, host and port; an
        absolute one replaces them along with the path.
        """
        return urljoin(original.url, location.strip())

    @staticmethod
    def relocate(request: PreparedRequest, endpoint: str) -> str:
        """``request``'s URL moved to ``endpoint``.

        ``endpoint`` is ``scheme://host[:port]`` or ``//host[:port]``; a
        missing scheme keeps the request's own.
        """
        current = urlsplit(request.url)
        moved = urlsplit(endpoint.strip())
        return urlunsplit(
            (
                moved.scheme or current.scheme,
                moved.netloc,
                current.path,
                current.query,
                current.fragment,
            )
        )

    def rewrite(self, request: PreparedRequest, url: str, status_code: int) -> PreparedRequest:
        redirected = request.copy()
        redirected.prepare_url(url, None)

        if status_code == HttpStatus.SEE_OTHER and request.method != HTTPMethod.HEAD.value:
            redirected.method = HTTPMethod.GET.value
            redirected.body = None
            for header in _BODY_HEADERS:
                redirected.headers.pop(header, None)

        if RequestHeader.HOST in redirected.headers:
            redirected.headers[RequestHeader.HOST] = _authority(url)

        if (
            not self.keep_authorization_across_hosts
            and _origin(request.url) != _origin(url)
            and redirected.headers.pop(RequestHeader.AUTHORIZATION, None) is not None
        ):
            logger.debug("Dropped Authorization header on redirect to %s", _authority(url))
        return redirected
