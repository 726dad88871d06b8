"""Unit tests for RetrySettings."""

import os

import pytest

from cloudrest.config import RetrySettings


class TestRetrySettings:
    """Tests for RetrySettings construction and validation."""

    def test_defaults(self):
        settings = RetrySettings()

        assert settings.max_retries == 5
        assert settings.max_redirects == 5
        assert settings.backoff_initial_period == pytest.approx(0.05)
        assert settings.backoff_max_period == pytest.approx(5.0)
        assert settings.backoff_growth_factor == pytest.approx(1.5)
        assert settings.request_timeout == pytest.approx(60.0)
        assert settings.respect_retry_after is True
        assert settings.transient_codes == frozenset()
        assert settings.retry_rate_limits is False

    def test_schedule(self):
        schedule = RetrySettings(backoff_initial_period=0.5).schedule

        assert schedule.delay(2) == pytest.approx(0.75)

    @pytest.mark.parametrize(
        ("kwargs", "variable"),
        [
            ({"max_retries": -1}, "CLOUDREST_MAX_RETRIES"),
            ({"max_redirects": -1}, "CLOUDREST_MAX_REDIRECTS"),
            ({"backoff_initial_period": 0}, "CLOUDREST_BACKOFF_INITIAL_PERIOD"),
            ({"backoff_max_period": 0.01}, "CLOUDREST_BACKOFF_MAX_PERIOD"),
            ({"backoff_growth_factor": 0.9}, "CLOUDREST_BACKOFF_GROWTH_FACTOR"),
            ({"request_timeout": 0}, "CLOUDREST_REQUEST_TIMEOUT"),
        ],
    )
    def test_validation_names_variable(self, kwargs, variable):
        with pytest.raises(ValueError, match=variable):
            RetrySettings(**kwargs)


class TestFromEnv:
    """Tests for RetrySettings.from_env."""

    def test_defaults_when_unset(self, clean_env):
        assert RetrySettings.from_env() == RetrySettings()

    def test_reads_prefixed_variables(self, clean_env, set_env):
        set_env(
            "CLOUDREST",
            max_retries=3,
            max_redirects=1,
            backoff_initial_period=0.5,
            backoff_max_period=10,
            backoff_growth_factor=2,
            request_timeout=15,
            respect_retry_after="false",
            transient_codes="OperationAborted, SlowDown,,",
            retry_rate_limits="true",
        )

        settings = RetrySettings.from_env()

        assert settings.max_retries == 3
        assert settings.max_redirects == 1
        assert settings.backoff_initial_period == pytest.approx(0.5)
        assert settings.backoff_max_period == pytest.approx(10.0)
        assert settings.backoff_growth_factor == pytest.approx(2.0)
        assert settings.request_timeout == pytest.approx(15.0)
        assert settings.respect_retry_after is False
        assert settings.transient_codes == frozenset({"OperationAborted", "SlowDown"})
        assert settings.retry_rate_limits is True

    def test_custom_prefix(self, clean_env, set_env):
        set_env("S3", max_retries=8)

        settings = RetrySettings.from_env(prefix="S3")

        assert settings.max_retries == 8
        assert settings.env_prefix == "S3"

    def test_invalid_number(self, clean_env, set_env):
        set_env("CLOUDREST", max_retries="many")

        with pytest.raises(ValueError, match="Invalid CLOUDREST retry settings"):
            RetrySettings.from_env()

    def test_validation_names_prefixed_variable(self, clean_env, set_env):
        set_env("S3", backoff_growth_factor=0.5)

        with pytest.raises(ValueError, match="S3_BACKOFF_GROWTH_FACTOR"):
            RetrySettings.from_env(prefix="S3")

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DOTENV_TEST_MAX_RETRIES=9\nDOTENV_TEST_RETRY_RATE_LIMITS=yes\n")

        try:
            settings = RetrySettings.from_env(prefix="DOTENV_TEST", env_file=env_file)
        finally:
            os.environ.pop("DOTENV_TEST_MAX_RETRIES", None)
            os.environ.pop("DOTENV_TEST_RETRY_RATE_LIMITS", None)

        assert settings.max_retries == 9
        assert settings.retry_rate_limits is True

    def test_environment_wins_over_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("DOTENV_WIN_MAX_RETRIES=9\n")
        monkeypatch.setenv("DOTENV_WIN_MAX_RETRIES", "2")

        settings = RetrySettings.from_env(prefix="DOTENV_WIN", env_file=env_file)

        assert settings.max_retries == 2
