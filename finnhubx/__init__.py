"""
Async Finnhub API client with a shared token-bucket rate limiter.
"""

from importlib.metadata import PackageNotFoundError, version

from .auth import Auth
from .classifier import classify_response, classify_transport_error
from .client import FinnhubClient, RequestDispatcher, configure
from .core import TokenBucket
from .exceptions import ErrorKind, FinnhubError
from .models import (
    AuthMethod,
    ClientConfig,
    RateLimitConfig,
    RateLimitStrategy,
    RequestDescriptor,
    TokenBucketStats,
)
from .utils import is_rate_limit_error, require_one_of

try:
    __version__ = version("finnhubx")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    'FinnhubClient',
    'configure',
    'RequestDispatcher',
    'RequestDescriptor',
    'TokenBucket',
    'TokenBucketStats',
    'Auth',
    'AuthMethod',
    'ClientConfig',
    'RateLimitConfig',
    'RateLimitStrategy',
    'ErrorKind',
    'FinnhubError',
    'classify_response',
    'classify_transport_error',
    'is_rate_limit_error',
    'require_one_of',
]
