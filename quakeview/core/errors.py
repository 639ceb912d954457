"""Error taxonomy for earthquake data loading.

Errors carry a structured kind, never user-facing prose. Turning a kind
into a message is done at the presentation boundary (see
quakeview.core.formatter).
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a failed load."""
    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP = "http"
    DECODE = "decode"
    CACHE_UNAVAILABLE = "cache_unavailable"


class FetchError(Exception):
    """Base class for all classified loading failures."""

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.kind.value)
        self.detail = detail


class FetchTimeoutError(FetchError):
    """No response from upstream within the request timeout."""

    kind = ErrorKind.TIMEOUT


class NetworkError(FetchError):
    """Transport-level failure (DNS, connection refused, offline)."""

    kind = ErrorKind.NETWORK


class HttpError(FetchError):
    """Upstream answered with a non-2xx status.

    Attributes:
        status: HTTP status code
        body: Response body, captured best-effort (may be None)
    """

    kind = ErrorKind.HTTP

    def __init__(self, status: int, body: str | None = None) -> None:
        super().__init__(f"HTTP {status}")
        self.status = status
        self.body = body

    @property
    def is_server_error(self) -> bool:
        return self.status >= 500

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429


class DecodeError(FetchError):
    """Response body is not a usable earthquake FeatureCollection."""

    kind = ErrorKind.DECODE


class CacheUnavailableError(FetchError):
    """Cache storage could not be read or written.

    Raised only inside cache backends; cache stores always absorb it.
    """

    kind = ErrorKind.CACHE_UNAVAILABLE
