"""
Retry Strategies

Backoff for idempotent ledger reads (mirror node queries). Transaction
submission never goes through a retry strategy.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import RecoverableError, UnrecoverableError, classify_error

T = TypeVar("T")


@dataclass
class RetryConfig:
    """How many times to try an operation and how long to wait in between."""

    max_attempts: int = 3
    initial_delay_seconds: float = 0.5
    max_delay_seconds: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_factor: float = 0.1

    def get_delay(self, attempt: int) -> float:
        """Delay after the given zero-based attempt, capped at max_delay_seconds."""
        base = self.initial_delay_seconds * (self.exponential_base ** attempt)
        delay = min(base, self.max_delay_seconds)
        if self.jitter and delay > 0:
            spread = delay * self.jitter_factor
            delay = random.uniform(delay - spread, delay + spread)
        return max(delay, 0.0)


class RetryStrategy:
    """
    Re-run a read until it succeeds, fails unrecoverably, or attempts run out.

    Whether an error is worth another attempt comes from the error taxonomy:
    RecoverableError subclasses yes, UnrecoverableError subclasses no,
    anything else by ``classify_error``.
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or RetryConfig()
        self.logger = logger or logging.getLogger(__name__)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str = "ledger read",
    ) -> T:
        attempts = max(self.config.max_attempts, 1)
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not self.should_retry(e, attempt):
                    if attempt:
                        self.logger.warning(f"{operation_name} gave up after {attempt + 1} attempts: {e}")
                    raise
                delay = self._get_delay(e, attempt)
                self.logger.info(
                    f"{operation_name} failed ({type(e).__name__}: {e}); "
                    f"attempt {attempt + 2}/{attempts} in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
                attempt += 1

    def should_retry(self, error: Exception, attempt: int) -> bool:
        if attempt + 1 >= self.config.max_attempts:
            return False
        if isinstance(error, UnrecoverableError):
            return False
        if isinstance(error, RecoverableError):
            return True
        return classify_error(error).recoverable

    def _get_delay(self, error: Exception, attempt: int) -> float:
        # Rate limits carry their own wait
        retry_after = getattr(error, "retry_after", None)
        if isinstance(error, RecoverableError) and retry_after:
            return min(retry_after, self.config.max_delay_seconds)
        return self.config.get_delay(attempt)


class ExponentialBackoffStrategy(RetryStrategy):
    """RetryStrategy built from plain backoff parameters, with jitter."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(
            RetryConfig(
                max_attempts=max_attempts,
                initial_delay_seconds=initial_delay,
                max_delay_seconds=max_delay,
                exponential_base=exponential_base,
            ),
            logger,
        )
