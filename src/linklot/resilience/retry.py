"""
Retry Strategies using Tenacity.

Standard retry policy for JSON-RPC reads. Writes are never retried
automatically: a resubmitted transaction could apply a mutation twice.
"""

from __future__ import annotations

from typing import Any, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from linklot.core.exceptions import NetworkError
from linklot.core.logging import get_logger

logger = get_logger("resilience.retry")

# Exponential backoff (1s, 2s, 4s, 8s, 16s)
DEFAULT_ATTEMPTS = 5


def is_transient_error(exception: BaseException) -> bool:
    """Check if exception is a transient network/infrastructure error."""
    if isinstance(exception, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exception, NetworkError):
        if exception.is_rate_limited() or exception.is_server_error():
            return True
    msg = str(exception).lower()
    return any(
        x in msg
        for x in [
            "timeout",
            "connection refused",
            "502",
            "503",
            "504",
            "rate limit",
        ]
    )


def _log_retry(retry_state: Any) -> None:
    logger.warning(f"Retrying RPC read... (Attempt {retry_state.attempt_number})")


async def execute_with_retry(
    func: Callable[..., Any],
    *args: Any,
    attempts: int = DEFAULT_ATTEMPTS,
    min_wait: float = 1,
    max_wait: float = 16,
    **kwargs: Any,
) -> Any:
    """Execute an async function with the standard retry policy (transient errors only)."""
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(is_transient_error),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        stop=stop_after_attempt(attempts),
        reraise=True,
        before_sleep=_log_retry,
    ):
        with attempt:
            return await func(*args, **kwargs)
