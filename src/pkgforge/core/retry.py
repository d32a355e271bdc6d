#!/usr/bin/env python3
"""
Retry logic for fallible remote operations.

Provides retry_with_timeout(), which runs a unit of work with a bounded
number of attempts and a cumulative wall-clock budget, and RetryContext,
which resolves the attempt count and timeout from the project, the
environment and the builtin defaults.
"""

import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, TypeVar

from pkgforge.core.errors import (
    ConfigurationError,
    RetryExhaustedError,
    RetryTimeoutError,
    create_error_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY_COUNT = 1
DEFAULT_TIMEOUT = 7200

RETRY_COUNT_ENV = "RETRY_COUNT"
TIMEOUT_ENV = "TIMEOUT"


class RetryStrategy(Enum):
    """Delay strategies between attempts."""
    IMMEDIATE = "immediate"
    LINEAR_BACKOFF = "linear_backoff"
    EXPONENTIAL_BACKOFF = "exponential_backoff"


def _delay_for(strategy: RetryStrategy, attempt: int, base_delay: float, max_delay: float) -> float:
    if strategy == RetryStrategy.EXPONENTIAL_BACKOFF:
        return min(base_delay * (2 ** (attempt - 1)), max_delay)
    if strategy == RetryStrategy.LINEAR_BACKOFF:
        return min(base_delay * attempt, max_delay)
    return 0.0


def retry_with_timeout(
    max_attempts: int,
    timeout: float,
    work: Callable[[], T],
    description: str = "operation",
    strategy: RetryStrategy = RetryStrategy.IMMEDIATE,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    on_retry: Optional[Callable[[int, int, Exception], None]] = None,
) -> T:
    """
    Run work until it succeeds, max_attempts is reached or timeout elapses.

    The deadline is checked between attempts only; an attempt already running
    when it passes is allowed to finish. Delays are clipped to the remaining
    budget. A ConfigurationError raised by work is not retried.

    Args:
        max_attempts: Total number of attempts, at least 1
        timeout: Wall-clock budget in seconds for all attempts together
        work: Zero-argument callable
        description: Name of the operation for log messages
        strategy: Delay strategy between attempts
        base_delay: Base delay in seconds for the backoff strategies
        max_delay: Upper bound for a single delay
        on_retry: Callback invoked with (attempt, max_attempts, error) after
            every failed attempt

    Returns:
        Whatever work returned

    Raises:
        ConfigurationError: If max_attempts or timeout is not positive, or
            raised by work
        RetryTimeoutError: If the deadline elapsed before success
        RetryExhaustedError: If every attempt failed
    """
    if max_attempts < 1:
        raise ConfigurationError(f"Retry count must be at least 1, got {max_attempts}")
    if timeout <= 0:
        raise ConfigurationError(f"Retry timeout must be positive, got {timeout}")

    deadline = time.monotonic() + timeout
    last_error: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            return work()
        except ConfigurationError:
            raise
        except Exception as e:
            last_error = e
            logger.warning(
                "%s failed (attempt %d/%d): %s", description, attempt, max_attempts, e
            )
            if on_retry:
                on_retry(attempt, max_attempts, e)

        if attempt == max_attempts:
            break

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise RetryTimeoutError(
                f"{description} timed out after {timeout}s "
                f"({attempt} of {max_attempts} attempts): {last_error}",
                attempts=attempt,
                cause=last_error,
                context=create_error_context(operation=description, phase="retry"),
                suggestions=[f"Raise the timeout with the {TIMEOUT_ENV} environment variable"],
            ) from last_error

        delay = min(_delay_for(strategy, attempt, base_delay, max_delay), remaining)
        if delay > 0:
            logger.info("Retrying %s in %.1fs...", description, delay)
            time.sleep(delay)

    raise RetryExhaustedError(
        f"{description} failed maximum number of {max_attempts} tries: {last_error}",
        attempts=max_attempts,
        cause=last_error,
        context=create_error_context(operation=description, phase="retry"),
        suggestions=[f"Raise the attempt count with the {RETRY_COUNT_ENV} environment variable"],
    ) from last_error


def _parse(value: Any, convert: Callable[[Any], Any], source: str, name: str):
    try:
        parsed = convert(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid {name} from {source}: {value!r}",
            cause=e,
            suggestions=[f"Set {name} to a positive number"],
        ) from e
    if parsed <= 0:
        raise ConfigurationError(
            f"Invalid {name} from {source}: {value!r} must be positive",
            suggestions=[f"Set {name} to a positive number"],
        )
    return parsed


@dataclass(frozen=True)
class RetryContext:
    """Resolved retry parameters for one retried step."""

    retry_count: int = DEFAULT_RETRY_COUNT
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def resolve(cls, project: Any, environ: Optional[Mapping[str, str]] = None) -> "RetryContext":
        """Resolve project value, then environment value, then default.

        Raises:
            ConfigurationError: If a supplied value is not a positive number
        """
        if environ is None:
            environ = os.environ

        retry_count = getattr(project, "retry_count", None)
        if retry_count is not None:
            retry_count = _parse(retry_count, int, "project", "retry_count")
        elif environ.get(RETRY_COUNT_ENV):
            retry_count = _parse(environ[RETRY_COUNT_ENV], int, "environment", RETRY_COUNT_ENV)
        else:
            retry_count = DEFAULT_RETRY_COUNT

        timeout = getattr(project, "timeout", None)
        if timeout is not None:
            timeout = _parse(timeout, float, "project", "timeout")
        elif environ.get(TIMEOUT_ENV):
            timeout = _parse(environ[TIMEOUT_ENV], float, "environment", TIMEOUT_ENV)
        else:
            timeout = DEFAULT_TIMEOUT

        return cls(retry_count=retry_count, timeout=timeout)
