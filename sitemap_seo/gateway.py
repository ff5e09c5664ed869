"""Rate-limited fetch gateway — every outbound request goes through the proxy, one at a time."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from sitemap_seo.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_REQUESTS_PER_SECOND = 100.0
DEFAULT_RETRIES = 2
DEFAULT_RETRY_DELAY = 1.0


class Fetcher(Protocol):
    """Protocol for anything that can fetch a URL as text."""

    async def fetch(self, url: str) -> str: ...


@dataclass
class FetchRequest:
    """A queued fetch awaiting its turn at the proxy."""

    url: str
    retries_remaining: int
    future: asyncio.Future[str]


def _error_message(response: httpx.Response) -> str:
    """Pull the proxy's ``{"error": ...}`` message out of a failed response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return response.reason_phrase or f"HTTP {response.status_code}"


class FetchGateway:
    """Serializes and rate-limits fetches through the external proxy.

    All callers share one FIFO queue drained by a single worker task, so the
    effective outbound rate is bounded by ``requests_per_second`` no matter how
    many coroutines call :meth:`fetch` at once. Failed attempts are re-enqueued
    after ``retry_delay`` seconds until ``retries`` extra attempts are spent.
    """

    def __init__(
        self,
        proxy_base_url: str,
        *,
        requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self._endpoint = f"{proxy_base_url.rstrip('/')}/api/fetch"
        self._min_request_interval = 1.0 / requests_per_second
        self._retries = retries
        self._retry_delay = retry_delay
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

        self._queue: asyncio.Queue[FetchRequest] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._pending_retries: set[asyncio.Task[None]] = set()
        self._last_request_time: float | None = None
        self._closed = False

    @property
    def min_request_interval(self) -> float:
        return self._min_request_interval

    async def __aenter__(self) -> FetchGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def fetch(self, url: str) -> str:
        """Queue *url* behind every earlier request and return the proxied body text."""
        if self._closed:
            raise FetchError(url, None, "fetch gateway closed")

        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(
            FetchRequest(url=url, retries_remaining=self._retries, future=future)
        )
        self._ensure_worker()
        return await future

    async def close(self) -> None:
        """Stop the worker, fail anything still queued, and release the HTTP client."""
        if self._closed:
            return
        self._closed = True

        tasks = list(self._pending_retries)
        if self._worker is not None:
            tasks.append(self._worker)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        while not self._queue.empty():
            request = self._queue.get_nowait()
            self._fail(request, FetchError(request.url, None, "fetch gateway closed"))

        if self._owns_client:
            await self._client.aclose()
        logger.debug("fetch gateway closed")

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="fetch-gateway-worker")

    async def _run(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                if request.future.done():
                    # caller went away while queued
                    continue
                await self._wait_for_slot()
                await self._dispatch(request)
            except asyncio.CancelledError:
                # already off the queue, so close() cannot fail it
                self._fail(request, FetchError(request.url, None, "fetch gateway closed"))
                raise
            finally:
                self._queue.task_done()

    async def _wait_for_slot(self) -> None:
        if self._last_request_time is None:
            return
        loop = asyncio.get_running_loop()
        elapsed = loop.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            await asyncio.sleep(self._min_request_interval - elapsed)

    async def _dispatch(self, request: FetchRequest) -> None:
        loop = asyncio.get_running_loop()
        logger.debug(
            "dispatching fetch",
            extra={"url": request.url, "retries_remaining": request.retries_remaining},
        )
        try:
            response = await self._client.get(self._endpoint, params={"url": request.url})
        except Exception as exc:
            failure = FetchError(request.url, None, str(exc) or type(exc).__name__)
        else:
            if response.is_success:
                logger.debug(
                    "fetch succeeded",
                    extra={"url": request.url, "content_length": len(response.text)},
                )
                if not request.future.done():
                    request.future.set_result(response.text)
                return
            failure = FetchError(request.url, response.status_code, _error_message(response))
        finally:
            # measured from completion of the previous request
            self._last_request_time = loop.time()

        self._retry_or_fail(request, failure)

    def _retry_or_fail(self, request: FetchRequest, failure: FetchError) -> None:
        if request.retries_remaining <= 0:
            logger.warning(
                "fetch failed, retries exhausted",
                extra={
                    "url": request.url,
                    "status_code": failure.status_code,
                    "error": failure.message,
                },
            )
            self._fail(request, failure)
            return

        logger.info(
            "fetch failed, retrying",
            extra={
                "url": request.url,
                "status_code": failure.status_code,
                "error": failure.message,
                "retries_remaining": request.retries_remaining,
                "retry_delay": self._retry_delay,
            },
        )
        retry = FetchRequest(
            url=request.url,
            retries_remaining=request.retries_remaining - 1,
            future=request.future,
        )
        task = asyncio.create_task(self._requeue_after_delay(retry))
        self._pending_retries.add(task)
        task.add_done_callback(self._pending_retries.discard)

    async def _requeue_after_delay(self, request: FetchRequest) -> None:
        try:
            await asyncio.sleep(self._retry_delay)
        except asyncio.CancelledError:
            self._fail(request, FetchError(request.url, None, "fetch gateway closed"))
            raise
        self._queue.put_nowait(request)

    @staticmethod
    def _fail(request: FetchRequest, error: FetchError) -> None:
        if not request.future.done():
            request.future.set_exception(error)
