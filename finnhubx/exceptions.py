"""
Error taxonomy for the Finnhub client.

Every failure surfaced by the dispatch pipeline is a single exception type,
FinnhubError, tagged with one member of the closed ErrorKind set. Callers
branch on ``error.kind`` rather than on exception subclasses.
"""

from enum import Enum
from typing import Optional

# Suggested pause after a client-side timeout
TIMEOUT_RETRY_AFTER_SECONDS = 5


class ErrorKind(str, Enum):
    """Closed set of failure kinds produced by the client"""
    UNAUTHORIZED = "unauthorized"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    API_ERROR = "api_error"
    HTTP = "http"
    TIMEOUT = "timeout"
    DESERIALIZATION = "deserialization"
    INVALID_PARAMETER = "invalid_parameter"
    INVALID_REQUEST = "invalid_request"


_RETRYABLE_KINDS = frozenset({
    ErrorKind.RATE_LIMIT_EXCEEDED,
    ErrorKind.TIMEOUT,
    ErrorKind.HTTP,
})


class FinnhubError(Exception):
    """
    Raised for every failure of a Finnhub API call.

    Only RATE_LIMIT_EXCEEDED (``retry_after``) and API_ERROR (``status``,
    ``message``) carry structured data; for the other kinds ``message`` is
    a free-form detail. Transport failures chain the underlying httpx
    exception as ``__cause__``.

    Use the named constructors instead of instantiating directly.

    Examples:
        ```python
        try:
            quote = await client.get("/quote", symbol="AAPL")
        except FinnhubError as e:
            if e.kind is ErrorKind.UNAUTHORIZED:
                raise
            if e.is_retryable:
                await asyncio.sleep(e.retry_after_seconds or 1)
        ```
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str = "",
        *,
        status: Optional[int] = None,
        retry_after: Optional[int] = None,
    ):
        self.kind = kind
        self.message = message
        self.status = status
        self.retry_after = retry_after
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.kind is ErrorKind.UNAUTHORIZED:
            return "Unauthorized: invalid API key"
        if self.kind is ErrorKind.RATE_LIMIT_EXCEEDED:
            return f"Rate limit exceeded: please retry after {self.retry_after} seconds"
        if self.kind is ErrorKind.API_ERROR:
            return f"API error (status {self.status}): {self.message}"
        if self.kind is ErrorKind.HTTP:
            return f"HTTP error: {self.message}"
        if self.kind is ErrorKind.TIMEOUT:
            return "Request timeout"
        if self.kind is ErrorKind.DESERIALIZATION:
            return f"Deserialization error: {self.message}"
        if self.kind is ErrorKind.INVALID_PARAMETER:
            return f"Invalid parameter: {self.message}"
        return f"Invalid request: {self.message}"

    def __repr__(self) -> str:
        return (
            f"FinnhubError(kind={self.kind.value!r}, message={self.message!r}, "
            f"status={self.status!r}, retry_after={self.retry_after!r})"
        )

    @classmethod
    def unauthorized(cls) -> "FinnhubError":
        return cls(ErrorKind.UNAUTHORIZED)

    @classmethod
    def rate_limit_exceeded(cls, retry_after: int) -> "FinnhubError":
        return cls(ErrorKind.RATE_LIMIT_EXCEEDED, retry_after=retry_after)

    @classmethod
    def api_error(cls, status: int, message: str) -> "FinnhubError":
        return cls(ErrorKind.API_ERROR, message, status=status)

    @classmethod
    def http(cls, cause: Exception) -> "FinnhubError":
        return cls(ErrorKind.HTTP, str(cause) or type(cause).__name__)

    @classmethod
    def timeout(cls) -> "FinnhubError":
        return cls(ErrorKind.TIMEOUT)

    @classmethod
    def deserialization(cls, detail: str) -> "FinnhubError":
        return cls(ErrorKind.DESERIALIZATION, detail)

    @classmethod
    def invalid_parameter(cls, detail: str) -> "FinnhubError":
        return cls(ErrorKind.INVALID_PARAMETER, detail)

    @classmethod
    def invalid_request(cls, detail: str) -> "FinnhubError":
        return cls(ErrorKind.INVALID_REQUEST, detail)

    @property
    def is_retryable(self) -> bool:
        """Whether repeating the same call later may succeed"""
        return self.kind in _RETRYABLE_KINDS

    @property
    def retry_after_seconds(self) -> Optional[int]:
        """Suggested delay before retrying, if this kind has one"""
        if self.kind is ErrorKind.RATE_LIMIT_EXCEEDED:
            return self.retry_after
        if self.kind is ErrorKind.TIMEOUT:
            return TIMEOUT_RETRY_AFTER_SECONDS
        return None
