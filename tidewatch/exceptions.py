"""
Exceptions for feed and storage operations.
"""
from typing import Any, Optional


class TidewatchError(Exception):
    """Base exception for Tidewatch errors."""

    pass


class FeedError(TidewatchError):
    """Error fetching or decoding an upstream feed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class FeedConnectionError(FeedError):
    """Transport failure talking to a feed (timeouts, 5xx, rate limiting)."""

    pass


class FeedQueryError(FeedError):
    """Feed rejected the request (unknown station, bad parameters)."""

    pass


class FeedValidationError(FeedError):
    """Feed payload is malformed or missing required data."""

    pass


class StorageError(TidewatchError):
    """Error reading from the persistence backend."""

    pass


class NoDataAvailableError(StorageError):
    """Raised when a read finds no stored data."""

    def __init__(self, message: str = "No data available"):
        super().__init__(message)
