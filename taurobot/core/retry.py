"""Bounded retry with fixed or exponential backoff.

Retry is applied once, at the orchestrator, around a whole fetch+extract
attempt. Fetchers and browser sessions never retry on their own.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
    wait_fixed,
)

from taurobot.core.exceptions import SessionError
from taurobot.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


# Exceptions that should trigger a retry. FetchError is not retried: a failed
# plain fetch falls back to the last snapshot.
RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    SessionError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 2
    initial_delay: float = 5.0
    max_delay: float = 60.0
    jitter: float = 1.0
    exponential: bool = True
    retryable_exceptions: tuple[type[BaseException], ...] = field(
        default_factory=lambda: RETRYABLE_EXCEPTIONS
    )


def _wait_strategy(config: RetryConfig) -> Any:
    if config.exponential:
        return wait_exponential_jitter(
            initial=config.initial_delay,
            max=config.max_delay,
            jitter=config.jitter,
        )
    return wait_fixed(config.initial_delay)


def _log_retry(name: str) -> Callable[[RetryCallState], None]:
    def before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "retrying_operation",
            operation=name,
            attempt=state.attempt_number,
            error=str(exc),
            error_type=type(exc).__name__,
            delay=round(state.next_action.sleep, 2) if state.next_action else None,
        )

    return before_sleep


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    name: str = "operation",
) -> T:
    """Run ``operation`` up to ``config.max_attempts`` times.

    Only ``config.retryable_exceptions`` trigger another attempt; anything
    else propagates immediately. The last exception is re-raised once
    attempts are exhausted.

    Usage:
        records = await run_with_retry(lambda: scrape(source), RetryConfig(max_attempts=3))
    """
    if config is None:
        config = RetryConfig()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, config.max_attempts)),
        wait=_wait_strategy(config),
        retry=retry_if_exception_type(config.retryable_exceptions),
        before_sleep=_log_retry(name),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await operation()
    raise RuntimeError("Retry loop exited without result")  # pragma: no cover
