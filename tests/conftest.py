"""Pytest configuration and fixtures for cloudrest tests."""

import io
from collections.abc import Callable
from http import HTTPStatus

import pytest
from _pytest.monkeypatch import MonkeyPatch
from requests import PreparedRequest, Response
from requests.structures import CaseInsensitiveDict

from cloudrest.constants import RetryEnv
from cloudrest.http.transport import Transport
from cloudrest.utils.cancellation import CancellationToken
from cloudrest.utils.clock import Clock


class FakeClock(Clock):
    """Clock that never blocks; sleeping advances time and is recorded."""

    def __init__(self, start: float = 1000.0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.current

    def sleep(self, seconds: float, cancel_token: CancellationToken | None = None) -> bool:
        if cancel_token is not None and cancel_token.cancelled:
            return False
        self.sleeps.append(seconds)
        self.current += seconds
        return True


class FakeTransport(Transport):
    """Transport answering from a script.

    Each script entry is a ``Response`` to return, an exception to raise, or
    a callable taking the sent request and returning a ``Response``.
    """

    def __init__(self, *script) -> None:
        self.script = list(script)
        self.sent: list[PreparedRequest] = []

    def send(self, request: PreparedRequest) -> Response:
        self.sent.append(request)
        if not self.script:
            raise AssertionError(f"Unexpected request {request.method} {request.url}")
        entry = self.script.pop(0)
        if isinstance(entry, BaseException):
            raise entry
        if callable(entry):
            return entry(request)
        return entry


def build_response(
    status: int = 200,
    body: bytes | str = b"",
    headers: dict[str, str] | None = None,
    url: str = "https://api.example.com/",
    reason: str | None = None,
) -> Response:
    """Real ``requests.Response`` with its body streamed from memory."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    response = Response()
    response.status_code = status
    response.raw = io.BytesIO(body)
    response.headers = CaseInsensitiveDict(headers or {})
    response.reason = reason if reason is not None else HTTPStatus(status).phrase
    response.url = url
    response.encoding = "utf-8"
    return response


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_response() -> Callable[..., Response]:
    """Factory for responses, see ``build_response``."""
    return build_response


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    """Factory for scripted transports."""
    return FakeTransport


@pytest.fixture
def clean_env(monkeypatch: MonkeyPatch) -> MonkeyPatch:
    """Clean environment variables before each test."""
    # Remove any retry-related environment variables
    for name in vars(RetryEnv):
        if name.startswith("_"):
            continue
        monkeypatch.delenv(f"CLOUDREST_{name}", raising=False)
    return monkeypatch


@pytest.fixture
def set_env(monkeypatch: MonkeyPatch) -> Callable[..., None]:
    """Helper fixture to set environment variables."""

    def _set_env(prefix: str, **kwargs: object) -> None:
        """Set environment variables with given prefix.

        Args:
            prefix: Environment variable prefix (e.g., 'CLOUDREST')
            **kwargs: Key-value pairs to set (e.g., max_retries=5)
        """
        for key, value in kwargs.items():
            monkeypatch.setenv(f"{prefix}_{key.upper()}", str(value))

    return _set_env
