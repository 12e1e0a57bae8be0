"""
Tests for error classification and retry

Tests for the error taxonomy and the backoff strategy used by ledger queries.
"""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock

from ledgerchat.core.recovery import (
    ConfigurationError,
    ExponentialBackoffStrategy,
    InsufficientFundsError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RetryConfig,
    RetryStrategy,
    TimeoutError,
    classify_error,
)
from ledgerchat.core.recovery.errors import ErrorCategory


# =============================================================================
# Error Classification Tests
# =============================================================================

class TestErrorClassification:
    """Tests for error classification."""

    def test_rate_limit_error(self):
        error = RateLimitError(retry_after=30.0)

        assert error.category == ErrorCategory.RATE_LIMIT
        assert error.retry_after == 30.0
        assert error.context.recoverable is True

    def test_network_error_keeps_endpoint(self):
        error = NetworkError(endpoint="https://mirror.test")

        assert error.context.recoverable is True
        assert error.context.details["endpoint"] == "https://mirror.test"

    def test_not_found_is_unrecoverable(self):
        error = NotFoundError(entity_id="0.0.42")

        assert error.category == ErrorCategory.NOT_FOUND
        assert error.context.recoverable is False

    def test_insufficient_funds_error(self):
        error = InsufficientFundsError(required="105 HBAR", available="10 HBAR", token="HBAR")

        assert error.category == ErrorCategory.INSUFFICIENT_FUNDS
        assert error.context.recoverable is False
        assert error.context.details["required"] == "105 HBAR"

    def test_configuration_error(self):
        context = classify_error(ConfigurationError("missing operator key"))

        assert context.category == ErrorCategory.CONFIGURATION
        assert context.recoverable is False

    @pytest.mark.parametrize(
        "error,category,recoverable",
        [
            (asyncio.TimeoutError(), ErrorCategory.TIMEOUT, True),
            (Exception("Request timed out"), ErrorCategory.TIMEOUT, True),
            (Exception("429 Too Many Requests"), ErrorCategory.RATE_LIMIT, True),
            (Exception("Connection refused"), ErrorCategory.NETWORK, True),
            (Exception("INSUFFICIENT_PAYER_BALANCE"), ErrorCategory.INSUFFICIENT_FUNDS, False),
            (ValueError("something odd"), ErrorCategory.UNKNOWN, False),
        ],
    )
    def test_classify_foreign_errors(self, error, category, recoverable):
        context = classify_error(error)

        assert context.category == category
        assert context.recoverable is recoverable

    def test_classify_httpx_connect_error(self):
        request = httpx.Request("GET", "https://mirror.test")
        context = classify_error(httpx.ConnectError("boom", request=request))

        assert context.category == ErrorCategory.NETWORK


# =============================================================================
# Retry Strategy Tests
# =============================================================================

class TestRetryStrategy:
    """Tests for retry strategies."""

    def test_delay_grows_and_is_capped(self):
        config = RetryConfig(initial_delay_seconds=1.0, max_delay_seconds=5.0, jitter=False)

        assert config.get_delay(0) == 1.0
        assert config.get_delay(1) == 2.0
        assert config.get_delay(10) == 5.0

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        operation = AsyncMock(side_effect=[NetworkError("blip"), TimeoutError("slow"), "ok"])
        strategy = ExponentialBackoffStrategy(max_attempts=3, initial_delay=0)

        result = await strategy.execute(operation, "get_account")

        assert result == "ok"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        operation = AsyncMock(side_effect=NetworkError("down"))
        strategy = ExponentialBackoffStrategy(max_attempts=2, initial_delay=0)

        with pytest.raises(NetworkError):
            await strategy.execute(operation, "get_account")
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_unrecoverable_error_is_not_retried(self):
        operation = AsyncMock(side_effect=NotFoundError("no such account"))
        strategy = ExponentialBackoffStrategy(max_attempts=5, initial_delay=0)

        with pytest.raises(NotFoundError):
            await strategy.execute(operation)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_after_is_honoured_up_to_cap(self):
        strategy = RetryStrategy(RetryConfig(max_delay_seconds=0.0))

        assert strategy._get_delay(RateLimitError(retry_after=30.0), 0) == 0.0

    def test_last_attempt_is_never_retried(self):
        strategy = RetryStrategy(RetryConfig(max_attempts=3))

        assert strategy.should_retry(NetworkError(), 1) is True
        assert strategy.should_retry(NetworkError(), 2) is False
