"""Bounded retry policy applied to every upstream call.

Only rate limiting (HTTP 429) is retried, with linear backoff: the delay
before attempt n+1 is n * base_delay. Every other failure propagates on the
first attempt, and an undecodable body is a schema break that retrying
cannot fix.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from chanscope.domain.events.api_events import (
    ApiCallFailed, ApiCallInitiated, ApiCallSucceeded, RetryScheduled, dispatch_event,
)
from chanscope.domain.models.common import BackoffPolicy
from chanscope.domain.models.errors import MalformedResponseError, UpstreamError
from chanscope.infrastructure.http.http_client import HttpOutcome, OutcomeKind
from chanscope.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0

CallFn = Callable[[], Awaitable[HttpOutcome]]


class RetryPolicy:
    """Executes upstream calls with bounded, linear backoff on rate limiting."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the RetryPolicy.

        Args:
            max_attempts: Total attempts allowed, including the first one.
            base_delay: Seconds multiplied by the attempt number to get each delay.
            rate_limiter: Optional client-side pacing consulted before every attempt.
            sleep: Coroutine used for backoff delays; injectable for tests.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.rate_limiter = rate_limiter
        self._sleep = sleep
        logger.info(
            f"RetryPolicy initialized: max_attempts={max_attempts}, base_delay={base_delay}s, "
            f"rate_limiter={'on' if rate_limiter else 'off'}"
        )

    @classmethod
    def from_backoff(cls, policy: BackoffPolicy, **kwargs: Any) -> "RetryPolicy":
        return cls(max_attempts=policy["max_attempts"], base_delay=policy["base_delay"], **kwargs)

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following `attempt` (1-based)."""
        return attempt * self.base_delay

    async def execute(self, call: CallFn, endpoint: str = "upstream") -> Any:
        """Runs `call` until it succeeds, fails hard, or attempts run out.

        Args:
            call: Zero-argument coroutine function issuing the same request each time.
            endpoint: Name used in logs and events.

        Returns:
            The decoded body of the successful response.

        Raises:
            UpstreamError: On any non-2xx other than 429, on transport failure,
                or on 429 once attempts are exhausted.
            MalformedResponseError: If a 2xx body could not be decoded.
        """
        last_outcome: Optional[HttpOutcome] = None

        for attempt in range(1, self.max_attempts + 1):
            if self.rate_limiter is not None:
                await self.rate_limiter.wait_for_permission()

            dispatch_event(ApiCallInitiated(endpoint=endpoint, attempt_number=attempt))
            start_time = time.perf_counter()
            outcome = await call()
            latency_ms = (time.perf_counter() - start_time) * 1000
            last_outcome = outcome

            if outcome.kind is OutcomeKind.SUCCESS:
                dispatch_event(ApiCallSucceeded(endpoint=endpoint, latency_ms=latency_ms, attempt_number=attempt))
                return outcome.body

            if outcome.kind is OutcomeKind.MALFORMED:
                dispatch_event(ApiCallFailed(endpoint=endpoint, status=outcome.status, error_message=outcome.reason))
                raise MalformedResponseError(f"{endpoint}: {outcome.reason} from {outcome.url}")

            if outcome.kind is OutcomeKind.FAILURE:
                logger.error(f"Non-retryable failure calling {endpoint} on attempt {attempt}: {outcome.status} {outcome.reason}")
                dispatch_event(ApiCallFailed(endpoint=endpoint, status=outcome.status, error_message=outcome.reason))
                raise UpstreamError(outcome.status, outcome.reason or "request failed", outcome.url)

            # Rate limited
            if attempt < self.max_attempts:
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Rate limited calling {endpoint} on attempt {attempt}/{self.max_attempts}. "
                    f"Waiting {delay:.2f}s..."
                )
                dispatch_event(RetryScheduled(endpoint=endpoint, attempt_number=attempt, delay_seconds=delay))
                await self._sleep(delay)

        logger.error(f"Max attempts ({self.max_attempts}) reached for {endpoint} while rate limited.")
        url = last_outcome.url if last_outcome else None
        dispatch_event(ApiCallFailed(endpoint=endpoint, status=429, error_message="rate limit retries exhausted"))
        raise UpstreamError(429, f"rate limited after {self.max_attempts} attempts", url)
