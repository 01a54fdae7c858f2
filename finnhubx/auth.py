"""
Authentication handling for the Finnhub API.
"""

from typing import List, MutableMapping, Tuple

from .exceptions import FinnhubError
from .models import AUTH_HEADER_NAME, AUTH_QUERY_PARAMETER, AuthMethod


class Auth:
    """
    API key plus the single method used to send it.

    HEADER (the default) keeps the key out of URLs and therefore out of
    proxy and access logs. A key sent as a header must be printable ASCII;
    one that is not is rejected here, before any request is attempted.
    """

    def __init__(self, api_key: str, method: AuthMethod = AuthMethod.HEADER):
        self._method = AuthMethod(method)
        if self._method == AuthMethod.HEADER and not _is_header_safe(api_key):
            raise FinnhubError.invalid_parameter(
                "api_key must be printable ASCII to be sent as a header"
            )
        self._api_key = api_key

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def method(self) -> AuthMethod:
        return self._method

    def __repr__(self) -> str:
        return f"Auth(api_key='***', method={self._method.value})"

    def apply(self, params: List[Tuple[str, str]], headers: MutableMapping[str, str]) -> None:
        """
        Add the credential to an outbound request.

        Args:
            params: Query parameter pairs, appended to in QUERY_PARAMETER mode
            headers: Request headers, set in HEADER mode
        """
        if self._method == AuthMethod.QUERY_PARAMETER:
            params.append((AUTH_QUERY_PARAMETER, self._api_key))
        else:
            headers[AUTH_HEADER_NAME] = self._api_key


def _is_header_safe(value: str) -> bool:
    return all(c == "\t" or " " <= c <= "~" for c in value)
