"""
Status Poller
=============
Client side of the status relay: starts a generation, then polls
/status/{clientId} until the run completes or fails.

State machine:
    idle → requesting → polling → completed | error
                          ↓
                      cancelling   (loop keeps polling until it reads "error")

Retry policy per poll:
    - Transport errors and 5xx answers are retried up to max_retries
      times, waiting min(1s * 2**attempt, max_backoff) between attempts
    - 4xx answers are not retried and raise ApiClientError immediately

Only one request per session is in flight at a time: the next poll is
issued after the previous one resolved and the interval elapsed.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional

import httpx

from portal.core.config import STATUS_POLL_INTERVAL, MAX_RETRY_ATTEMPTS
from portal.core.constants import TERMINAL_STATUSES, USER_AGENT

logger = logging.getLogger(__name__)

PollerState = Literal["idle", "requesting", "polling", "cancelling", "completed", "error"]


class ApiClientError(Exception):
    """Non-retryable API failure, or retries exhausted."""

    def __init__(self, message: str, status: Optional[int] = None, details: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.details = details

    @property
    def is_client_error(self) -> bool:
        return self.status is not None and 400 <= self.status < 500


class StatusPoller:
    """
    Drives one generation session against the portal API.

    Usage:
        async with StatusPoller("http://localhost:8000") as poller:
            final = await poller.run(form)
    """

    def __init__(
        self,
        base_url: str,
        poll_interval: float = STATUS_POLL_INTERVAL,
        max_retries: int = MAX_RETRY_ATTEMPTS,
        max_backoff: float = 30.0,
        on_update: Optional[Callable[[Dict[str, Any]], None]] = None,
        on_complete: Optional[Callable[[Dict[str, Any]], None]] = None,
        on_error: Optional[Callable[[ApiClientError], None]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_retries = max_retries
        self.max_backoff = max_backoff
        self.on_update = on_update
        self.on_complete = on_complete
        self.on_error = on_error

        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(
            headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            timeout=20.0,
        )
        self._task: Optional[asyncio.Task] = None

        self.state: PollerState = "idle"
        self.client_id: Optional[str] = None
        self.last_status: Optional[Dict[str, Any]] = None
        self.timeline: List[Dict[str, Any]] = []

    async def __aenter__(self) -> "StatusPoller":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _retry_delay(self, attempt: int) -> float:
        return min(1.0 * 2 ** attempt, self.max_backoff)

    def _fail(self, error: ApiClientError) -> ApiClientError:
        self.state = "error"
        if self.on_error:
            self.on_error(error)
        return error

    def _add_timeline_event(self, record: Dict[str, Any]) -> None:
        self.timeline.append({
            "client_id": record.get("clientId", self.client_id),
            "status": record.get("status", ""),
            "progress": record.get("progress", 0),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @staticmethod
    def _error_from_response(response: httpx.Response) -> ApiClientError:
        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text}
        message = body.get("error") if isinstance(body, dict) else None
        return ApiClientError(
            message or f"HTTP error! status: {response.status_code}",
            status=response.status_code,
            details=body.get("details") if isinstance(body, dict) else None,
        )

    async def _request_with_retry(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying transport errors and 5xx answers."""
        attempt = 0
        while True:
            try:
                response = await self._client.request(method, self._url(path), **kwargs)
                if response.status_code >= 500:
                    raise httpx.HTTPStatusError(
                        f"Server error {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                return response
            except (httpx.TransportError, httpx.HTTPStatusError) as e:
                if attempt >= self.max_retries:
                    status = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                    logger.error("%s %s failed after %d retries: %s", method, path, attempt, e)
                    raise ApiClientError(f"Request failed: {e}", status=status) from e
                delay = self._retry_delay(attempt)
                logger.warning(
                    "%s %s failed (%s), retrying in %.1fs (%d/%d)",
                    method, path, e, delay, attempt + 1, self.max_retries
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def start_generation(self, form: Dict[str, Any]) -> Dict[str, Any]:
        """Submit the form. Returns the /generate response body."""
        self.state = "requesting"
        try:
            # Mutations are not retried: a retry could dispatch a second run
            response = await self._client.post(self._url("/generate"), json=form)
        except httpx.TransportError as e:
            raise self._fail(ApiClientError(f"Request failed: {e}")) from e

        if not response.is_success:
            raise self._fail(self._error_from_response(response))

        data = response.json()
        self.client_id = data["clientId"]
        logger.info("Generation requested, clientId=%s", self.client_id)
        return data

    async def fetch_status(self, client_id: str) -> Dict[str, Any]:
        """Single status read with retry/backoff."""
        response = await self._request_with_retry("GET", f"/status/{client_id}")
        if response.is_client_error:
            raise self._error_from_response(response)
        return response.json()

    async def poll(self, client_id: str) -> Dict[str, Any]:
        """Poll until the record reaches a terminal status; returns that record."""
        self.client_id = client_id
        if self.state != "cancelling":
            self.state = "polling"

        while True:
            try:
                record = await self.fetch_status(client_id)
            except ApiClientError as e:
                self._fail(e)
                raise

            previous = self.last_status
            self.last_status = record
            if previous is None or (previous.get("status"), previous.get("progress")) != (
                record.get("status"), record.get("progress")
            ):
                logger.info(
                    "Status update for %s: %s (%s%%)",
                    client_id, record.get("status"), record.get("progress")
                )
                self._add_timeline_event(record)

            if self.on_update:
                self.on_update(record)

            status = record.get("status")
            if status in TERMINAL_STATUSES:
                self.state = "completed" if status == "completed" else "error"
                if status == "completed" and self.on_complete:
                    self.on_complete(record)
                return record

            await asyncio.sleep(self.poll_interval)

    async def run(self, form: Dict[str, Any]) -> Dict[str, Any]:
        """Submit the form and poll the resulting job to completion."""
        data = await self.start_generation(form)
        return await self.poll(data["clientId"])

    def start(self, client_id: str) -> asyncio.Task:
        """Schedule poll() as a background task; stop() tears it down."""
        if self._task is not None and not self._task.done():
            raise RuntimeError("Poller is already running")
        self._task = asyncio.create_task(self.poll(client_id))
        return self._task

    async def cancel_generation(self, client_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Ask the server to cancel. Does not stop the poll loop: the loop ends
        when it reads the resulting error status.
        """
        client_id = client_id or self.client_id
        if not client_id:
            raise ValueError("No client id to cancel")

        self.state = "cancelling"
        response = await self._request_with_retry("POST", f"/generate/{client_id}/cancel")
        if response.is_client_error:
            raise self._fail(self._error_from_response(response))
        logger.info("Cancellation requested for %s", client_id)
        return response.json()

    async def check_health(self) -> bool:
        try:
            response = await self._client.get(self._url("/health"))
            return response.is_success
        except httpx.HTTPError:
            return False

    async def stop(self) -> None:
        """Cancel a scheduled poll task and release the HTTP client."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        elif self._task is not None and not self._task.cancelled():
            # Failures were already reported through on_error
            self._task.exception()
        self._task = None
        if self._owns_client:
            await self._client.aclose()

    def get_timeline(self) -> List[Dict[str, Any]]:
        return self.timeline
