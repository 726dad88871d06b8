import logging
from abc import ABC, abstractmethod

import requests
from requests import PreparedRequest, Response
from requests.adapters import HTTPAdapter

from cloudrest.constants import RetryDefaults

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Sends one physical attempt.

    Implementations must not follow redirects or retry on their own; the
    executor owns both decisions. Transport failures are raised as
    ``requests.exceptions.RequestException`` subclasses.
    """

    @abstractmethod
    def send(self, request: PreparedRequest) -> Response:
        """Send the request and return the response with its body unread."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class RequestsTransport(Transport):
    """Transport backed by a pooled ``requests.Session``."""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float | tuple[float, float] | None = RetryDefaults.REQUEST_TIMEOUT,
        verify: bool | str = True,
        pool_connections: int = 10,
        pool_maxsize: int = 20,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Session to send through; a pooled one is created if None
            timeout: Per-attempt timeout in seconds, or (connect, read)
            verify: TLS verification flag or CA bundle path
            pool_connections: Number of connection pools
            pool_maxsize: Maximum number of connections per pool
        """
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify = verify
        if self._owns_session:
            # Retries are decided by the executor, never by urllib3
            adapter = HTTPAdapter(
                max_retries=0,
                pool_connections=pool_connections,
                pool_maxsize=pool_maxsize,
                pool_block=False,
            )
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

    def send(self, request: PreparedRequest) -> Response:
        logger.debug("Sending %s %s", request.method, request.url)
        response = self.session.send(
            request,
            allow_redirects=False,
            stream=True,
            timeout=self.timeout,
            verify=self.verify,
        )
        logger.debug(
            "Received %s %s for %s %s",
            response.status_code,
            response.reason,
            request.method,
            request.url,
        )
        return response

    def close(self) -> None:
        if self._owns_session:
            self.session.close()
