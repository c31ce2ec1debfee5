"""HTTP transport used by the page downloader."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import httpx

T = TypeVar("T")

DEFAULT_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"


class TransportError(Exception):
    """Network failure, non-success status or cancellation of a GET."""


class DownloadCancelled(TransportError):
    """Raised when the caller's cancel signal fires during an operation."""

    def __init__(self, message: str = "The operation was cancelled."):
        super().__init__(message)


def raise_if_cancelled(cancel_event: asyncio.Event | None) -> None:
    """Raise DownloadCancelled if the cancel signal is already set."""
    if cancel_event is not None and cancel_event.is_set():
        raise DownloadCancelled()


async def run_cancellable(operation: Awaitable[T], cancel_event: asyncio.Event | None) -> T:
    """Await an operation, failing fast with DownloadCancelled if cancel_event is set."""
    if cancel_event is None:
        return await operation

    if cancel_event.is_set():
        # Never scheduled, close it so it is not reported as un-awaited
        if asyncio.iscoroutine(operation):
            operation.close()
        raise DownloadCancelled()

    task = asyncio.ensure_future(operation)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()

    if task.done() and not task.cancelled():
        return task.result()

    # Let the cancelled operation unwind before reporting
    await asyncio.gather(task, return_exceptions=True)
    raise DownloadCancelled()


class HttpTransport:
    """Issues GET requests through a shared httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 30.0):
        self.client = client
        self.timeout = timeout

    async def _get(self, url: str, cancel_event: asyncio.Event | None) -> httpx.Response:
        try:
            response = await run_cancellable(
                self.client.get(url, timeout=self.timeout), cancel_event
            )
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(str(e) or f"GET {url} failed: {type(e).__name__}") from e
        return response

    async def get_text(self, url: str, cancel_event: asyncio.Event | None = None) -> str:
        """Fetch a URL and return the decoded response body."""
        response = await self._get(url, cancel_event)
        return response.text

    async def get_bytes(self, url: str, cancel_event: asyncio.Event | None = None) -> bytes:
        """Fetch a URL and return the raw response body."""
        response = await self._get(url, cancel_event)
        return response.content
