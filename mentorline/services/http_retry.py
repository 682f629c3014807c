"""Retry policy for outbound HTTP calls.

Transient failures (transport errors, 408, 429 and 5xx responses) are retried
with exponential backoff. When retries are exhausted the last response is
returned to the caller, or the last transport error is raised.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from mentorline.logging_config import get_logger

logger = get_logger("http_retry")

RETRYABLE_STATUS_CODES = {408, 429}


def is_transient_response(response: httpx.Response) -> bool:
    return response.status_code in RETRYABLE_STATUS_CODES or response.status_code >= 500


def _log_retry(name: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            reason = f"exception: {outcome.exception()}"
        else:
            reason = f"HTTP {outcome.result().status_code}" if outcome else "unknown"
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(f"{name} retry {retry_state.attempt_number} after {delay:.1f}s due to {reason}")

    return before_sleep


def _return_last_response(retry_state: RetryCallState) -> httpx.Response:
    # re-raises the transport error when the last attempt failed with one
    return retry_state.outcome.result()


class RetryPolicy:
    def __init__(
        self,
        name: str,
        max_retries: int = 3,
        base_delay_seconds: float = 2.0,
        max_delay_seconds: float = 30.0,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.name = name
        self.max_retries = max_retries
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.sleep = sleep or asyncio.sleep

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError) | retry_if_result(is_transient_response),
            wait=wait_exponential(multiplier=self.base_delay_seconds, max=self.max_delay_seconds),
            stop=stop_after_attempt(self.max_retries + 1),
            before_sleep=_log_retry(self.name),
            retry_error_callback=_return_last_response,
            sleep=self.sleep,
        )

    async def request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return await self._retrying()(client.request, method, url, **kwargs)
