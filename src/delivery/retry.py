"""
Module: delivery/retry.py
Description: Retry policy for webhook delivery.

Retries transient HTTP failures with exponential backoff and jitter.
Queue-service calls are never retried here; this policy only wraps the
hop from the trigger to a webhook sink.
"""

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
import httpx

from utils.logger import get_logger

logger = get_logger(__name__)

RETRYABLE_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.HTTPStatusError,
)


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.warning(
        "Webhook delivery attempt failed, retrying",
        attempt=retry_state.attempt_number,
        error=str(outcome.exception()) if outcome else None,
        next_wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None
    )


def delivery_retrying(max_attempts: int, max_wait_seconds: float = 10) -> AsyncRetrying:
    """
    Build the retry controller for one webhook delivery.

    Args:
        max_attempts: Total attempts, including the first
        max_wait_seconds: Upper bound of a single backoff wait

    Returns:
        AsyncRetrying usable as `async for attempt in ...`
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_random_exponential(multiplier=0.5, max=max_wait_seconds),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=_log_retry,
        reraise=True
    )
