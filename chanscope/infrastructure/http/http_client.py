"""Thin asynchronous HTTP client over httpx.

Issues one request and classifies the result into a structured outcome
(success with a decoded body, rate-limited, hard failure or an undecodable
body). Retrying is
not done here; the RetryPolicy decides what to do with each outcome.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
RATE_LIMIT_STATUS = 429
USER_AGENT = "chanscope/0.1"


class OutcomeKind(Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    FAILURE = "failure"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class HttpOutcome:
    """Classified result of a single HTTP request."""
    kind: OutcomeKind
    method: str
    url: str
    status: Optional[int] = None
    body: Any = None
    reason: str = ""
    retry_after: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class AsyncHttpClient:
    """Asynchronous HTTP client returning classified outcomes instead of raising."""

    def __init__(
        self,
        base_url: str = "",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initializes the client.

        Args:
            base_url: Prefix applied to relative request URLs.
            timeout_seconds: Per-request timeout.
            headers: Default headers sent with every request.
            transport: Optional httpx transport (tests pass httpx.MockTransport).
            client: Optional pre-built httpx.AsyncClient; not closed by this wrapper.
        """
        default_headers: Dict[str, str] = {"Accept": "application/json", "User-Agent": USER_AGENT}
        default_headers.update(headers or {})
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=default_headers,
            transport=transport,
        )
        logger.debug(f"AsyncHttpClient initialized: base_url='{base_url}', timeout={timeout_seconds}s")

    async def aclose(self) -> None:
        """Closes the underlying connection pool when owned."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AsyncHttpClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def request(self, method: str, url: str, **kwargs: Any) -> HttpOutcome:
        """Issues one request and classifies the result.

        Transport failures (connection refused, timeouts) are hard failures
        with no status. A 2xx body that is not valid JSON is MALFORMED.
        """
        method = method.upper()
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            request_url = str(self._client.base_url.join(url))
            logger.warning(f"HTTP {method} {request_url} transport failure: {type(e).__name__}: {e}")
            return HttpOutcome(
                kind=OutcomeKind.FAILURE, method=method, url=request_url,
                reason=f"{type(e).__name__}: {e}",
            )

        request_url = str(response.request.url)
        if response.status_code == RATE_LIMIT_STATUS:
            logger.info(f"HTTP {method} {request_url} rate limited (429)")
            return HttpOutcome(
                kind=OutcomeKind.RATE_LIMITED, method=method, url=request_url,
                status=response.status_code, reason=response.reason_phrase,
                retry_after=_parse_retry_after(response),
            )
        if not response.is_success:
            logger.warning(f"HTTP {method} {request_url} failed with status {response.status_code}")
            return HttpOutcome(
                kind=OutcomeKind.FAILURE, method=method, url=request_url,
                status=response.status_code, reason=response.reason_phrase or response.text[:200],
            )

        try:
            body = response.json()
        except ValueError as e:
            logger.warning(f"HTTP {method} {request_url} returned invalid JSON: {e}")
            return HttpOutcome(
                kind=OutcomeKind.MALFORMED, method=method, url=request_url,
                status=response.status_code, reason="invalid JSON body",
            )

        logger.debug(f"HTTP {method} {request_url} -> {response.status_code}")
        return HttpOutcome(
            kind=OutcomeKind.SUCCESS, method=method, url=request_url,
            status=response.status_code, body=body,
        )

    async def get(self, url: str, **kwargs: Any) -> HttpOutcome:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> HttpOutcome:
        return await self.request("POST", url, **kwargs)
