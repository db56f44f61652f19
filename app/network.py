"""
Network reachability checks.

The conditions aggregator asks a reachability probe before every load and
reads from the cache instead of the network when the probe says offline.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class NetworkStatus:
    """Result of a reachability probe."""
    is_connected: bool
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class HttpReachability:
    """Probe connectivity with a HEAD request to a known host."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def fetch(self) -> NetworkStatus:
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                await client.head(self.url)
        except httpx.HTTPError as e:
            logger.info(f"Network unreachable ({self.url}): {type(e).__name__}")
            return NetworkStatus(is_connected=False, message=str(e))

        latency_ms = (time.monotonic() - start) * 1000
        # Any HTTP response, even an error status, means the network is up
        return NetworkStatus(is_connected=True, latency_ms=round(latency_ms, 2))


class StaticReachability:
    """Reachability with a fixed answer, for forced offline mode."""

    def __init__(self, is_connected: bool):
        self.is_connected = is_connected

    async def fetch(self) -> NetworkStatus:
        return NetworkStatus(is_connected=self.is_connected, message="static")
