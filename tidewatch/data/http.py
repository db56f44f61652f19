"""
Shared async HTTP plumbing for the feed clients.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from tidewatch.exceptions import (
    FeedConnectionError,
    FeedQueryError,
    FeedValidationError,
)
from tidewatch.resilience import DEFAULT_BASE_DELAY, DEFAULT_MAX_ATTEMPTS, with_retry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class FeedClient:
    """
    Base class for feed clients.

    Owns one ``httpx.AsyncClient`` and applies the retry policy to every
    request. Only transport failures are retried; a 4xx response or a
    payload that fails to decode is raised on the first attempt.
    """

    USER_AGENT = "tidewatch/0.1.0"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": self.USER_AGENT},
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _request_once(
        self, url: str, params: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response

        except httpx.TimeoutException as e:
            raise FeedConnectionError(f"Request timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise FeedQueryError(
                    "Station or data not found", status_code=status, details=e.response.text
                ) from e
            elif status == 429:
                raise FeedConnectionError("Rate limit exceeded", status_code=status) from e
            elif status >= 500:
                raise FeedConnectionError(
                    "Feed service temporarily unavailable", status_code=status
                ) from e
            else:
                raise FeedQueryError(
                    f"HTTP error {status}: {e}", status_code=status, details=e.response.text
                ) from e
        except httpx.RequestError as e:
            raise FeedConnectionError(f"Network error: {e}") from e

    async def _request(
        self, url: str, params: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """GET ``url`` with the client's retry policy."""
        return await with_retry(
            lambda: self._request_once(url, params),
            max_attempts=self.max_attempts,
            base_delay=self.retry_base_delay,
            exceptions=(FeedConnectionError,),
            sleep=self._sleep,
        )

    async def get_text(self, url: str, params: Optional[Dict[str, str]] = None) -> str:
        response = await self._request(url, params)
        return response.text

    async def get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Any:
        response = await self._request(url, params)
        try:
            return response.json()
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise FeedValidationError(f"Invalid JSON response: {e}") from e
