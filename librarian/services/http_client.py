import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from librarian.models import PendingRequest
from librarian.services.pipeline import backoff_delay, should_retry

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    """Base error for failures raised by the Librarian client."""
    pass


class TransportError(ApiClientError):
    """No well-formed response was received; ``cause`` is the last httpx error."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, attempts: int = 0):
        super().__init__(message)
        self.cause = cause
        self.attempts = attempts


class RetryingHTTPClient:
    """Connection-pooled HTTP client with exponential backoff on transient failures."""

    def __init__(self, base_url: str, timeout: float = 30.0, base_delay: float = 1.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None):
        limits = httpx.Limits(
            max_keepalive_connections=20,
            max_connections=100,
            keepalive_expiry=30.0
        )

        self._client = httpx.AsyncClient(
            base_url=base_url,
            limits=limits,
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self.base_delay = base_delay
        self._sleep = sleep or asyncio.sleep

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def _build(self, request: PendingRequest) -> httpx.Request:
        kwargs = {}
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout
        return self._client.build_request(
            request.method,
            request.path,
            json=request.body if request.files is None else None,
            # Multipart uploads carry the body as form fields next to the files
            data=request.body if request.files is not None else None,
            files=request.files,
            params=request.params,
            headers=request.headers,
            **kwargs,
        )

    async def send(self, request: PendingRequest, max_attempts: int = 1) -> httpx.Response:
        """Send ``request``, retrying transient failures up to ``max_attempts`` total attempts."""
        max_attempts = max(1, max_attempts)
        last_error: Optional[httpx.RequestError] = None
        for attempt in range(max_attempts):
            try:
                return await self._client.send(self._build(request))
            except httpx.RequestError as e:
                last_error = e
                if should_retry(e, attempt, max_attempts):
                    delay = backoff_delay(attempt, self.base_delay)
                    logger.info(
                        f"Retrying {request.method} {request.path} in {delay:.1f}s "
                        f"(attempt {attempt + 1}/{max_attempts})"
                    )
                    await self._sleep(delay)
                    continue
                logger.warning(f"{request.method} {request.path} failed: {e!r}")
                raise TransportError(
                    f"{request.method} {request.path} failed after {attempt + 1} attempt(s): {e}",
                    cause=e,
                    attempts=attempt + 1,
                ) from e
        raise TransportError("Max retries exceeded", cause=last_error, attempts=max_attempts)

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()
