"""
Turns transport results into decoded payloads or FinnhubError.

The order of checks matters: 401 and 429 carry instructions the caller can
act on (stop, or wait and retry), so they are tested before the generic
API_ERROR fallback.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import FinnhubError
from .models import DEFAULT_RETRY_AFTER_SECONDS

logger = logging.getLogger(__name__)


def classify_transport_error(error: httpx.HTTPError) -> FinnhubError:
    """Map an httpx failure that produced no response to TIMEOUT or HTTP"""
    if isinstance(error, httpx.TimeoutException):
        return FinnhubError.timeout()
    return FinnhubError.http(error)


def parse_retry_after(headers: httpx.Headers) -> int:
    """
    Read a Retry-After header given in seconds.

    Falls back to DEFAULT_RETRY_AFTER_SECONDS when the header is missing or
    is not a non-negative integer (HTTP-date values included).
    """
    value = headers.get("retry-after")
    if value is not None:
        value = value.strip()
        if value.isascii() and value.isdigit():
            return int(value)
    return DEFAULT_RETRY_AFTER_SECONDS


def decode_body(response: httpx.Response, model: Optional[Any] = None) -> Any:
    """
    Decode a successful JSON response.

    Args:
        response: The response to decode
        model: Any type pydantic can validate, or None for the raw JSON value

    Raises:
        FinnhubError: DESERIALIZATION if the body is not JSON or does not fit ``model``
    """
    try:
        if model is None:
            return response.json()
        return TypeAdapter(model).validate_json(response.content)
    except ValidationError as e:
        raise FinnhubError.deserialization(str(e)) from e
    except ValueError as e:
        # json.JSONDecodeError and UnicodeDecodeError
        raise FinnhubError.deserialization(str(e)) from e


def _body_text(response: httpx.Response) -> str:
    try:
        return response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError, LookupError):
        return f"HTTP error {response.status_code}"


def classify_response(response: httpx.Response, model: Optional[Any] = None) -> Any:
    """
    Return the decoded body of a successful response or raise the matching error.

    Raises:
        FinnhubError: UNAUTHORIZED, RATE_LIMIT_EXCEEDED, API_ERROR or DESERIALIZATION
    """
    status = response.status_code

    if response.is_success:
        return decode_body(response, model)

    if status == 401:
        logger.warning("Finnhub rejected the API key (401)")
        raise FinnhubError.unauthorized()

    if status == 429:
        retry_after = parse_retry_after(response.headers)
        logger.warning(f"Finnhub rate limit hit (429), retry after {retry_after} seconds")
        raise FinnhubError.rate_limit_exceeded(retry_after)

    raise FinnhubError.api_error(status, _body_text(response))
