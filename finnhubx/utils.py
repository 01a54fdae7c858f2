"""
Utility functions for working with Finnhub errors and parameters.

This module provides helper functions that can be used independently
of the client classes.
"""

from typing import Any, Dict

from .exceptions import ErrorKind, FinnhubError

RATE_LIMIT_PHRASES = (
    'rate limit',
    'ratelimit',
    'too many requests',
    '429',
    'retry after',
    'throttl',
    'quota exceeded',
)


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Determine if an exception is related to rate limiting.

    This function checks, in order:

    1. A FinnhubError of kind RATE_LIMIT_EXCEEDED
    2. HTTP 429 status code directly on the error
    3. HTTP 429 status code on error.response (e.g. httpx.HTTPStatusError)
    4. Rate limit related phrases in the error message

    Args:
        error: The exception to check

    Returns:
        True if the error appears to be a rate limit error, False otherwise

    Examples:
        ```python
        try:
            quote = await client.get("/quote", symbol="AAPL")
        except Exception as e:
            if is_rate_limit_error(e):
                await asyncio.sleep(30)
                # Then retry
            else:
                raise
        ```
    """
    if isinstance(error, FinnhubError):
        return error.kind is ErrorKind.RATE_LIMIT_EXCEEDED

    if getattr(error, 'status_code', None) == 429:
        return True

    response = getattr(error, 'response', None)
    if getattr(response, 'status_code', None) == 429:
        return True

    error_str = str(error).lower()
    return any(phrase in error_str for phrase in RATE_LIMIT_PHRASES)


def require_one_of(**candidates: Any) -> Dict[str, Any]:
    """
    Check that at least one of several alternative identifiers is given.

    Several endpoints accept e.g. either ``symbol`` or ``cik``; calling them
    with neither cannot form a valid request.

    Returns:
        The candidates that are not None

    Raises:
        FinnhubError: INVALID_REQUEST if every candidate is None or empty
    """
    supplied = {name: value for name, value in candidates.items() if value not in (None, "")}
    if not supplied:
        names = ", ".join(candidates)
        raise FinnhubError.invalid_request(f"at least one of {names} must be provided")
    return supplied
