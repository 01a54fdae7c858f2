import httpx
import pytest

from finnhubx.exceptions import ErrorKind, FinnhubError
from finnhubx.utils import is_rate_limit_error, require_one_of


def test_is_rate_limit_error():
    """Test that is_rate_limit_error correctly identifies rate limit errors."""
    # Client errors are judged by kind only
    assert is_rate_limit_error(FinnhubError.rate_limit_exceeded(30)) is True
    assert is_rate_limit_error(FinnhubError.unauthorized()) is False
    assert is_rate_limit_error(FinnhubError.api_error(500, "Too many requests upstream")) is False

    # Test with HTTP 429 status code directly
    class HTTP429Error(Exception):
        status_code = 429
    assert is_rate_limit_error(HTTP429Error()) is True

    # Test with HTTP 429 status code in response
    request = httpx.Request("GET", "https://finnhub.io/api/v1/quote")
    response = httpx.Response(429, request=request)
    status_error = httpx.HTTPStatusError("throttled", request=request, response=response)
    assert is_rate_limit_error(status_error) is True

    # Test with rate limit phrases in error message
    assert is_rate_limit_error(Exception("Rate limit exceeded")) is True
    assert is_rate_limit_error(Exception("Too many requests")) is True
    assert is_rate_limit_error(Exception("Quota exceeded")) is True
    assert is_rate_limit_error(Exception("Request was throttled")) is True
    assert is_rate_limit_error(Exception("HTTP 429")) is True

    # Test with case-insensitive matching
    assert is_rate_limit_error(Exception("RATE LIMIT EXCEEDED")) is True
    assert is_rate_limit_error(Exception("Request throttling")) is True

    # Test with non-rate-limit exceptions
    assert is_rate_limit_error(Exception()) is False
    assert is_rate_limit_error(ValueError()) is False

    # Test with non-rate-limit response status codes
    response = httpx.Response(404, request=request)
    status_error = httpx.HTTPStatusError("missing", request=request, response=response)
    assert is_rate_limit_error(status_error) is False

    assert is_rate_limit_error(Exception("Invalid request")) is False
    assert is_rate_limit_error(Exception("Server error")) is False


def test_require_one_of_returns_supplied_values():
    assert require_one_of(symbol="AAPL", cik=None) == {"symbol": "AAPL"}
    assert require_one_of(symbol="AAPL", cik="320193") == {"symbol": "AAPL", "cik": "320193"}


@pytest.mark.parametrize("candidates", [
    {"symbol": None, "cik": None},
    {"symbol": "", "cik": None},
    {"isin": None, "cusip": None, "symbol": None},
])
def test_require_one_of_rejects_missing_identifiers(candidates):
    with pytest.raises(FinnhubError) as exc_info:
        require_one_of(**candidates)
    assert exc_info.value.kind is ErrorKind.INVALID_REQUEST
    for name in candidates:
        assert name in exc_info.value.message
