"""
Reusable retry policy for fallible async calls.

Wraps tenacity so callers (the Congress.gov client, the analysis generator)
never carry their own retry loops.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)

from legisync.core.exceptions import FatalFailure, TransientFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """
    Bounded exponential backoff, optionally with full jitter.

    Example:
        >>> policy = RetryPolicy(max_attempts=3, base_delay=1.0)
        >>> body = await policy.call(client.get_json, "/bill/119/hr/1")
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        max_delay: float = 30.0,
        jitter: bool = True,
        retry_on: Tuple[Type[BaseException], ...] = (TransientFailure,),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize retry policy.

        Args:
            max_attempts: Total attempts including the first call
            base_delay: Delay before the first retry (seconds)
            multiplier: Growth factor between retries
            max_delay: Upper bound for a single delay (seconds)
            jitter: Draw each delay uniformly from [0, computed delay]
            retry_on: Exception types that trigger a retry
            sleep: Async sleep function (tests pass a no-op)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.jitter = jitter
        self.retry_on = retry_on
        self._sleep = sleep

    def _wait_strategy(self):
        if self.jitter:
            return wait_random_exponential(
                multiplier=self.base_delay,
                max=self.max_delay,
                exp_base=self.multiplier,
            )
        return wait_exponential(
            multiplier=self.base_delay,
            max=self.max_delay,
            exp_base=self.multiplier,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait_strategy(),
            retry=retry_if_exception_type(self.retry_on),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
        )

    async def call(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        description: Optional[str] = None,
        **kwargs: Any,
    ) -> T:
        """
        Await ``fn(*args, **kwargs)`` under this policy.

        Returns:
            Whatever ``fn`` returns on the first successful attempt

        Raises:
            FatalFailure: Retryable failures exhausted every attempt
            Exception: Non-retryable errors propagate unchanged
        """
        label = description or getattr(fn, "__name__", "call")
        try:
            return await self._retrying()(fn, *args, **kwargs)
        except RetryError as e:
            attempt = e.last_attempt
            last_error = attempt.exception()
            logger.error(f"❌ {label} failed after {attempt.attempt_number} attempt(s): {last_error}")
            raise FatalFailure(
                f"{label} failed after {attempt.attempt_number} attempt(s): {last_error}",
                last_error=last_error,
                attempts=attempt.attempt_number,
            ) from last_error
