#!/usr/bin/env python3
"""
Unit tests for retry_with_timeout and RetryContext resolution.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from pkgforge.core.errors import ConfigurationError, RetryExhaustedError, RetryTimeoutError
from pkgforge.core.retry import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_TIMEOUT,
    RetryContext,
    RetryStrategy,
    retry_with_timeout,
)


def flaky(failures, result="ok"):
    """Callable failing `failures` times, then returning result."""
    calls = {"count": 0}

    def work():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise ValueError(f"failure {calls['count']}")
        return result

    return work, calls


@pytest.mark.unit
class TestRetryWithTimeout:
    """Test the retry loop."""

    def test_first_attempt_success(self):
        work, calls = flaky(0)

        assert retry_with_timeout(3, 60, work) == "ok"
        assert calls["count"] == 1

    def test_succeeds_on_third_attempt(self):
        work, calls = flaky(2)

        assert retry_with_timeout(3, 60, work) == "ok"
        assert calls["count"] == 3

    def test_exhausted_after_max_attempts(self):
        work, calls = flaky(2)

        with pytest.raises(RetryExhaustedError) as excinfo:
            retry_with_timeout(2, 60, work, description="remote build")

        assert calls["count"] == 2
        assert excinfo.value.attempts == 2
        assert excinfo.value.message.startswith("remote build failed maximum number of 2 tries")
        assert isinstance(excinfo.value.__cause__, ValueError)
        assert str(excinfo.value.cause) == "failure 2"

    def test_on_retry_called_after_each_failure(self):
        work, _ = flaky(2)
        on_retry = MagicMock()

        retry_with_timeout(3, 60, work, on_retry=on_retry)

        assert [c.args[:2] for c in on_retry.call_args_list] == [(1, 3), (2, 3)]

    def test_configuration_error_is_not_retried(self):
        work = MagicMock(side_effect=ConfigurationError("No method defined to install build dependencies"))

        with pytest.raises(ConfigurationError):
            retry_with_timeout(3, 60, work)

        assert work.call_count == 1

    @pytest.mark.parametrize("attempts, timeout", [(0, 60), (-1, 60), (3, 0), (3, -5)])
    def test_non_positive_parameters_rejected(self, attempts, timeout):
        work, calls = flaky(0)

        with pytest.raises(ConfigurationError):
            retry_with_timeout(attempts, timeout, work)

        assert calls["count"] == 0

    def test_deadline_stops_retrying(self):
        work, calls = flaky(10)

        with patch("pkgforge.core.retry.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 10.0]
            with pytest.raises(RetryTimeoutError) as excinfo:
                retry_with_timeout(5, 5, work)

        assert calls["count"] == 1
        assert excinfo.value.attempts == 1
        mock_time.sleep.assert_not_called()

    def test_timeout_error_is_an_exhausted_error(self):
        assert issubclass(RetryTimeoutError, RetryExhaustedError)

    def test_delay_clipped_to_remaining_budget(self):
        work, calls = flaky(1)

        with patch("pkgforge.core.retry.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 1.0]
            retry_with_timeout(
                3, 5, work, strategy=RetryStrategy.LINEAR_BACKOFF, base_delay=10.0
            )

        assert calls["count"] == 2
        mock_time.sleep.assert_called_once_with(4.0)

    def test_exponential_backoff_delays(self):
        work, _ = flaky(3)

        with patch("pkgforge.core.retry.time") as mock_time:
            mock_time.monotonic.return_value = 0.0
            retry_with_timeout(
                4, 1000, work, strategy=RetryStrategy.EXPONENTIAL_BACKOFF, base_delay=1.0
            )

        assert [c.args[0] for c in mock_time.sleep.call_args_list] == [1.0, 2.0, 4.0]

    def test_immediate_strategy_never_sleeps(self):
        work, _ = flaky(2)

        with patch("pkgforge.core.retry.time") as mock_time:
            mock_time.monotonic.return_value = 0.0
            retry_with_timeout(3, 60, work)

        mock_time.sleep.assert_not_called()


@pytest.mark.unit
class TestRetryContext:
    """Test resolution of retry parameters."""

    def test_defaults(self):
        context = RetryContext.resolve(None, {})

        assert context.retry_count == DEFAULT_RETRY_COUNT == 1
        assert context.timeout == DEFAULT_TIMEOUT == 7200

    def test_environment_values(self):
        context = RetryContext.resolve(None, {"RETRY_COUNT": "4", "TIMEOUT": "90"})

        assert context.retry_count == 4
        assert context.timeout == 90.0

    def test_project_values_take_precedence(self):
        project = SimpleNamespace(retry_count=2, timeout=30)

        context = RetryContext.resolve(project, {"RETRY_COUNT": "4", "TIMEOUT": "90"})

        assert context == RetryContext(retry_count=2, timeout=30.0)

    def test_unset_project_values_fall_through(self):
        project = SimpleNamespace(retry_count=None, timeout=None)

        context = RetryContext.resolve(project, {"TIMEOUT": "15"})

        assert context == RetryContext(retry_count=1, timeout=15.0)

    def test_empty_environment_value_ignored(self):
        context = RetryContext.resolve(None, {"RETRY_COUNT": ""})

        assert context.retry_count == 1

    @pytest.mark.parametrize("environ", [
        {"RETRY_COUNT": "many"},
        {"RETRY_COUNT": "0"},
        {"TIMEOUT": "-1"},
        {"TIMEOUT": "soon"},
    ])
    def test_invalid_environment_fails_fast(self, environ):
        with pytest.raises(ConfigurationError, match="Invalid"):
            RetryContext.resolve(None, environ)

    def test_invalid_project_value_fails_fast(self):
        project = SimpleNamespace(retry_count="three", timeout=None)

        with pytest.raises(ConfigurationError, match="retry_count"):
            RetryContext.resolve(project, {})

    def test_reads_process_environment_by_default(self, monkeypatch):
        monkeypatch.setenv("RETRY_COUNT", "6")
        monkeypatch.delenv("TIMEOUT", raising=False)

        assert RetryContext.resolve(None).retry_count == 6
