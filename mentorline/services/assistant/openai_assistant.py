"""OpenAI Assistants v2 client.

The API refuses to add messages to a thread while one of its runs is active,
and runs complete asynchronously. Both constraints are handled here by
polling the run status at a fixed interval:

- before adding a message, wait (up to a soft ceiling) for the latest run to
  leave the active states, then add; if the add still loses the race, wait
  once more and retry exactly once;
- after starting a run, poll until it completes, fails, or the run timeout
  elapses, cancelling the upstream run on timeout or task cancellation.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx

from mentorline.logging_config import get_logger
from mentorline.services.assistant.base import AssistantService
from mentorline.services.errors import AssistantAPIError, RunFailedError, RunTimeoutError
from mentorline.services.http_retry import RetryPolicy

logger = get_logger("assistant.openai")

ACTIVE_RUN_STATUSES = {"queued", "in_progress", "requires_action"}
FAILED_RUN_STATUSES = {"failed", "cancelled", "expired"}


class OpenAIAssistantService(AssistantService):
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        *,
        poll_interval_seconds: float = 1.0,
        active_run_timeout_seconds: float = 60.0,
        run_timeout_seconds: float = 300.0,
        retry_policy: Optional[RetryPolicy] = None,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.poll_interval_seconds = poll_interval_seconds
        self.active_run_timeout_seconds = active_run_timeout_seconds
        self.run_timeout_seconds = run_timeout_seconds
        self.retry_policy = retry_policy or RetryPolicy("openai")
        self._sleep = sleep or asyncio.sleep
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            headers={
                "Authorization": f"Bearer {api_key}",
                "OpenAI-Beta": "assistants=v2",
            },
            timeout=60.0,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict:
        response = await self.retry_policy.request(self._client, method, path.lstrip("/"), **kwargs)
        logger.debug(f"OpenAI {method} {path}: status={response.status_code}")

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"OpenAI API error on {method} {path}: {response.status_code} - {message}")
            raise AssistantAPIError(response.status_code, message)

        return response.json()

    async def create_thread(self) -> str:
        data = await self._request("POST", "threads", json={})
        thread_id = data["id"]
        logger.info(f"Created OpenAI thread: {thread_id}")
        return thread_id

    async def get_latest_run_status(self, thread_id: str) -> Optional[str]:
        data = await self._request("GET", f"threads/{thread_id}/runs", params={"limit": 1, "order": "desc"})
        runs = data.get("data") or []
        if not runs:
            return None
        return runs[0].get("status")

    async def wait_for_active_run(self, thread_id: str) -> None:
        """Block until the thread has no active run, giving up quietly at the ceiling."""
        waited = 0.0
        while True:
            status = await self.get_latest_run_status(thread_id)
            if status not in ACTIVE_RUN_STATUSES:
                return
            if waited >= self.active_run_timeout_seconds:
                logger.warning(
                    "Run still active after wait ceiling, proceeding anyway",
                    extra={"context": {"thread_id": thread_id, "status": status, "waited_seconds": waited}},
                )
                return
            await self._sleep(self.poll_interval_seconds)
            waited += self.poll_interval_seconds

    async def add_user_message(self, thread_id: str, text: str) -> None:
        await self.wait_for_active_run(thread_id)
        payload = {"role": "user", "content": text}
        try:
            await self._request("POST", f"threads/{thread_id}/messages", json=payload)
        except AssistantAPIError as e:
            if not e.is_active_run_conflict:
                raise
            logger.warning(f"Run became active on thread {thread_id} before message add, retrying once")
            await self.wait_for_active_run(thread_id)
            await self._request("POST", f"threads/{thread_id}/messages", json=payload)
        logger.debug(f"Added user message to thread {thread_id}")

    async def run_assistant(self, thread_id: str, assistant_id: str) -> str:
        run = await self._request("POST", f"threads/{thread_id}/runs", json={"assistant_id": assistant_id})
        run_id = run["id"]
        logger.debug(f"Started run {run_id} for thread {thread_id} with assistant {assistant_id}")

        try:
            await self._wait_for_run_completion(thread_id, run_id)
        except asyncio.CancelledError:
            logger.warning(f"Run {run_id} polling cancelled, cancelling upstream run")
            await self._cancel_run(thread_id, run_id)
            raise

        return await self._latest_reply(thread_id)

    async def _wait_for_run_completion(self, thread_id: str, run_id: str) -> None:
        waited = 0.0
        while True:
            await self._sleep(self.poll_interval_seconds)
            waited += self.poll_interval_seconds

            run = await self._request("GET", f"threads/{thread_id}/runs/{run_id}")
            status = run.get("status")
            if status == "completed":
                return

            if status in FAILED_RUN_STATUSES:
                detail = _describe_last_error(run.get("last_error"))
                logger.error(f"Run {run_id} ended with status {status}: {detail}")
                raise RunFailedError(run_id, status, detail)

            if waited >= self.run_timeout_seconds:
                logger.error(
                    "Run did not complete in time",
                    extra={"context": {"thread_id": thread_id, "run_id": run_id, "status": status}},
                )
                await self._cancel_run(thread_id, run_id)
                raise RunTimeoutError(run_id, waited)

    async def _cancel_run(self, thread_id: str, run_id: str) -> None:
        try:
            await self._request("POST", f"threads/{thread_id}/runs/{run_id}/cancel")
        except (AssistantAPIError, httpx.HTTPError) as e:
            logger.warning(f"Could not cancel run {run_id}: {e}")

    async def _latest_reply(self, thread_id: str) -> str:
        data = await self._request("GET", f"threads/{thread_id}/messages", params={"limit": 1, "order": "desc"})
        messages = data.get("data") or []
        if messages:
            for block in messages[0].get("content") or []:
                if block.get("type") == "text":
                    logger.debug(f"Retrieved response from thread {thread_id}")
                    return block["text"]["value"]
        raise AssistantAPIError(200, f"No text reply found on thread {thread_id}")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.text


def _describe_last_error(last_error: Any) -> str:
    if not last_error:
        return "Unknown error"
    if isinstance(last_error, dict):
        code = last_error.get("code")
        message = last_error.get("message") or "Unknown error"
        return f"{code}: {message}" if code else message
    return str(last_error)
