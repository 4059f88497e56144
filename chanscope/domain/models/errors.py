"""Typed failures surfaced by the channel aggregation layer.

Every failure a caller can observe is a subclass of ChanscopeError, so the
presentation layer can map each kind to a user-visible status.
"""

from typing import Optional


class ChanscopeError(Exception):
    """Base class for all chanscope failures."""

    exit_code = 1


class MissingKeyError(ChanscopeError):
    """Raised when the caller omitted the subject FID or supplied an invalid one."""

    exit_code = 2

    def __init__(self, message: str = "FID is required"):
        super().__init__(message)


class NotFoundError(ChanscopeError):
    """Raised when a fetch succeeded but yielded zero records."""

    exit_code = 3


class UpstreamError(ChanscopeError):
    """Raised for non-2xx upstream responses, exhausted retries and transport failures.

    Attributes:
        status: The HTTP status code, or None for transport-level failures.
        message: Human readable reason.
        url: The URL of the failed request, when known.
    """

    exit_code = 4

    def __init__(self, status: Optional[int], message: str, url: Optional[str] = None):
        self.status = status
        self.message = message
        self.url = url
        prefix = f"HTTP {status}" if status is not None else "Request failed"
        super().__init__(f"{prefix}: {message}")


class PaginationLimitExceeded(UpstreamError):
    """Raised when upstream still offers a cursor after the page ceiling."""

    def __init__(self, max_pages: int, url: Optional[str] = None):
        self.max_pages = max_pages
        super().__init__(None, f"pagination did not terminate within {max_pages} pages", url)


class MalformedResponseError(ChanscopeError):
    """Raised when an upstream payload violates the minimal expected shape. Never retried."""

    exit_code = 5
