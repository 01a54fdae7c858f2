"""
Configuration and data models for the Finnhub client.
"""

from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import FinnhubError

# Constants
DEFAULT_BASE_URL = "https://finnhub.io/api/v1"
DEFAULT_TIMEOUT_SECONDS = 30.0
AUTH_HEADER_NAME = "X-Finnhub-Token"
AUTH_QUERY_PARAMETER = "token"
DEFAULT_RETRY_AFTER_SECONDS = 60


class AuthMethod(str, Enum):
    """Where the API key is placed on outbound requests"""
    QUERY_PARAMETER = "query_parameter"
    HEADER = "header"


class RateLimitStrategy(str, Enum):
    """Token bucket presets matching Finnhub's published limits"""
    PER_SECOND = "per_second"                          # 30 req/s, burst of 30
    FIFTEEN_SECOND_WINDOW = "fifteen_second_window"    # 30 req/s, burst of 450
    CUSTOM = "custom"


# (capacity, refill_rate) for the non-custom strategies
STRATEGY_PRESETS = {
    RateLimitStrategy.PER_SECOND: (30, 30),
    RateLimitStrategy.FIFTEEN_SECOND_WINDOW: (450, 30),
}


class RateLimitConfig(BaseModel):
    """
    Rate limiting settings for a client.

    ``capacity`` and ``refill_rate`` are only accepted (and are required)
    with the CUSTOM strategy; the other strategies use fixed presets.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    strategy: RateLimitStrategy = RateLimitStrategy.PER_SECOND
    capacity: Optional[int] = Field(default=None, ge=1)
    refill_rate: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_custom_fields(self) -> "RateLimitConfig":
        has_custom_fields = self.capacity is not None or self.refill_rate is not None
        if self.strategy == RateLimitStrategy.CUSTOM:
            if self.capacity is None or self.refill_rate is None:
                raise ValueError("CUSTOM strategy requires both capacity and refill_rate")
        elif has_custom_fields:
            raise ValueError(f"capacity and refill_rate are not accepted with {self.strategy.value}")
        return self

    @classmethod
    def per_second(cls) -> "RateLimitConfig":
        return cls(strategy=RateLimitStrategy.PER_SECOND)

    @classmethod
    def fifteen_second_window(cls) -> "RateLimitConfig":
        return cls(strategy=RateLimitStrategy.FIFTEEN_SECOND_WINDOW)

    @classmethod
    def custom(cls, capacity: int, refill_rate: int) -> "RateLimitConfig":
        return cls(strategy=RateLimitStrategy.CUSTOM, capacity=capacity, refill_rate=refill_rate)

    @property
    def bucket_size(self) -> int:
        if self.strategy == RateLimitStrategy.CUSTOM:
            return self.capacity
        return STRATEGY_PRESETS[self.strategy][0]

    @property
    def tokens_per_second(self) -> int:
        if self.strategy == RateLimitStrategy.CUSTOM:
            return self.refill_rate
        return STRATEGY_PRESETS[self.strategy][1]


class ClientConfig(BaseModel):
    """
    Immutable client configuration, fixed when the client is built.

    Derive variants with ``FinnhubClient.with_options`` rather than
    mutating an existing instance.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    auth_method: AuthMethod = AuthMethod.HEADER
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @field_validator("base_url")
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")

    @field_validator("rate_limit", mode="before")
    @classmethod
    def _strategy_shortcut(cls, value: Any) -> Any:
        # Allow rate_limit=RateLimitStrategy.FIFTEEN_SECOND_WINDOW for the presets
        if isinstance(value, (RateLimitStrategy, str)):
            return {"strategy": value}
        return value


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class RequestDescriptor(BaseModel):
    """
    One outbound call: an endpoint path plus its query parameters.

    The path may carry an inline query string (``/stock/peers?symbol=AAPL``).
    Inline pairs are folded into ``params`` ahead of the explicitly passed
    ones, and a key given both ways is rejected. ``None`` values are
    dropped. Malformed input raises FinnhubError (INVALID_REQUEST or
    INVALID_PARAMETER) so it never reaches the rate limiter.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    params: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _split_inline_query(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        path = data.get("path")
        if not isinstance(path, str) or not path.startswith("/"):
            raise FinnhubError.invalid_request(f"endpoint path must start with '/', got {path!r}")

        parts = urlsplit(path)
        if parts.scheme or parts.netloc or path.startswith("//"):
            raise FinnhubError.invalid_request(f"endpoint path must be relative to the base URL, got {path!r}")
        if parts.fragment:
            raise FinnhubError.invalid_request(f"endpoint path must not carry a fragment, got {path!r}")

        merged: Dict[str, str] = {}
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            if key in merged:
                raise FinnhubError.invalid_parameter(f"query parameter {key!r} given more than once")
            merged[key] = value

        for key, value in (data.get("params") or {}).items():
            if value is None:
                continue
            if key in merged:
                raise FinnhubError.invalid_parameter(
                    f"query parameter {key!r} is already present in the endpoint path"
                )
            merged[key] = _query_value(value)

        return {"path": parts.path, "params": merged}

    @classmethod
    def from_endpoint(cls, endpoint: str, **params: Any) -> "RequestDescriptor":
        """Build a descriptor from an endpoint string and keyword parameters"""
        return cls(path=endpoint, params=params)


class TokenBucketStats(BaseModel):
    """Point-in-time statistics of a TokenBucket"""
    capacity: int
    refill_rate: int
    available_tokens: int
    total_acquired: int = 0
    total_wait_time: float = 0.0
    max_wait_time: float = 0.0
    rate_limit_hits: int = 0
    waiting: int = 0
