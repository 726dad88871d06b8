"""Retry core configuration.

Settings come from constructor arguments or from prefixed environment
variables, optionally loaded from a ``.env`` file first.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from cloudrest.backoff import BackoffSchedule
from cloudrest.constants import RetryDefaults, RetryEnv

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "on"}


def _env_name(prefix: str, name: str) -> str:
    return f"{prefix}_{name}" if prefix else name


def _parse_codes(value: str | None) -> frozenset[str]:
    if not value:
        return frozenset()
    return frozenset(code.strip() for code in value.split(",") if code.strip())


@dataclass(frozen=True)
class RetrySettings:
    """Tunables of the retry core.

    Attributes:
        max_retries: Retries per logical call before TOO_MANY_RETRIES
        max_redirects: Redirects per logical call before TOO_MANY_REDIRECTS
        backoff_initial_period: Delay in seconds before the first retry
        backoff_max_period: Cap in seconds of any single delay
        backoff_growth_factor: Multiplier applied to the delay per retry
        request_timeout: Per-attempt transport timeout in seconds
        respect_retry_after: Wait at least a numeric Retry-After header
        transient_codes: Provider codes to retry; empty means the preset's own
        retry_rate_limits: Retry provider rate limit codes (e.g. RequestLimitExceeded)
    """

    max_retries: int = RetryDefaults.MAX_RETRIES
    max_redirects: int = RetryDefaults.MAX_REDIRECTS
    backoff_initial_period: float = RetryDefaults.BACKOFF_INITIAL_PERIOD
    backoff_max_period: float = RetryDefaults.BACKOFF_MAX_PERIOD
    backoff_growth_factor: float = RetryDefaults.BACKOFF_GROWTH_FACTOR
    request_timeout: float = RetryDefaults.REQUEST_TIMEOUT
    respect_retry_after: bool = RetryDefaults.RESPECT_RETRY_AFTER
    transient_codes: frozenset[str] = field(default_factory=frozenset)
    retry_rate_limits: bool = RetryDefaults.RETRY_RATE_LIMITS
    env_prefix: str = field(default=RetryDefaults.ENV_PREFIX, compare=False, repr=False)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        prefix = self.env_prefix
        if self.max_retries < 0:
            raise ValueError(f"{_env_name(prefix, RetryEnv.MAX_RETRIES)} must be >= 0")
        if self.max_redirects < 0:
            raise ValueError(f"{_env_name(prefix, RetryEnv.MAX_REDIRECTS)} must be >= 0")
        if self.backoff_initial_period <= 0:
            raise ValueError(
                f"{_env_name(prefix, RetryEnv.BACKOFF_INITIAL_PERIOD)} must be > 0"
            )
        if self.backoff_max_period < self.backoff_initial_period:
            raise ValueError(
                f"{_env_name(prefix, RetryEnv.BACKOFF_MAX_PERIOD)} must be >= "
                f"{_env_name(prefix, RetryEnv.BACKOFF_INITIAL_PERIOD)}"
            )
        if self.backoff_growth_factor < 1:
            raise ValueError(
                f"{_env_name(prefix, RetryEnv.BACKOFF_GROWTH_FACTOR)} must be >= 1"
            )
        if self.request_timeout <= 0:
            raise ValueError(f"{_env_name(prefix, RetryEnv.REQUEST_TIMEOUT)} must be > 0")

    @property
    def schedule(self) -> BackoffSchedule:
        return BackoffSchedule(
            initial_period=self.backoff_initial_period,
            max_period=self.backoff_max_period,
            growth_factor=self.backoff_growth_factor,
        )

    @classmethod
    def from_env(
        cls,
        prefix: str = RetryDefaults.ENV_PREFIX,
        env_file: str | os.PathLike | None = None,
    ) -> "RetrySettings":
        """Load settings from environment variables.

        Environment variables (using prefix):
            {prefix}_MAX_RETRIES: Retries per call (default: 5)
            {prefix}_MAX_REDIRECTS: Redirects per call (default: 5)
            {prefix}_BACKOFF_INITIAL_PERIOD: First delay in seconds (default: 0.05)
            {prefix}_BACKOFF_MAX_PERIOD: Delay cap in seconds (default: 5.0)
            {prefix}_BACKOFF_GROWTH_FACTOR: Delay multiplier (default: 1.5)
            {prefix}_REQUEST_TIMEOUT: Per-attempt timeout in seconds (default: 60)
            {prefix}_RESPECT_RETRY_AFTER: true/false (default: true)
            {prefix}_TRANSIENT_CODES: Comma separated provider codes (default: preset)
            {prefix}_RETRY_RATE_LIMITS: true/false (default: false)

        Args:
            prefix: Environment variable prefix
            env_file: ``.env`` file to load first; existing variables win

        Returns:
            RetrySettings: Validated settings
        """
        if env_file is not None:
            if load_dotenv(env_file, override=False):
                logger.debug("Loaded retry settings from %s", env_file)
            else:
                logger.warning("No retry settings loaded from %s", env_file)

        def get(name: str, default: object) -> str:
            return os.getenv(_env_name(prefix, name), str(default))

        def get_bool(name: str, default: bool) -> bool:
            return get(name, default).strip().lower() in _TRUE_VALUES

        try:
            settings = cls(
                env_prefix=prefix,
                max_retries=int(get(RetryEnv.MAX_RETRIES, RetryDefaults.MAX_RETRIES)),
                max_redirects=int(get(RetryEnv.MAX_REDIRECTS, RetryDefaults.MAX_REDIRECTS)),
                backoff_initial_period=float(
                    get(RetryEnv.BACKOFF_INITIAL_PERIOD, RetryDefaults.BACKOFF_INITIAL_PERIOD)
                ),
                backoff_max_period=float(
                    get(RetryEnv.BACKOFF_MAX_PERIOD, RetryDefaults.BACKOFF_MAX_PERIOD)
                ),
                backoff_growth_factor=float(
                    get(RetryEnv.BACKOFF_GROWTH_FACTOR, RetryDefaults.BACKOFF_GROWTH_FACTOR)
                ),
                request_timeout=float(
                    get(RetryEnv.REQUEST_TIMEOUT, RetryDefaults.REQUEST_TIMEOUT)
                ),
                respect_retry_after=get_bool(
                    RetryEnv.RESPECT_RETRY_AFTER, RetryDefaults.RESPECT_RETRY_AFTER
                ),
                transient_codes=_parse_codes(
                    os.getenv(_env_name(prefix, RetryEnv.TRANSIENT_CODES))
                ),
                retry_rate_limits=get_bool(
                    RetryEnv.RETRY_RATE_LIMITS, RetryDefaults.RETRY_RATE_LIMITS
                ),
            )
        except ValueError as e:
            raise ValueError(f"Invalid {prefix} retry settings: {e}") from e
        logger.debug("Retry settings for prefix %s: %s", prefix, settings)
        return settings
