"""
Finnhub client and the request-dispatch pipeline behind it.
"""

import logging
import os
from typing import Any, Dict, Mapping, Optional

import httpx

from .auth import Auth
from .classifier import classify_response, classify_transport_error
from .core import TokenBucket
from .exceptions import FinnhubError
from .models import ClientConfig, RequestDescriptor, TokenBucketStats

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "FINNHUB_API_KEY"

# Process-wide defaults used by clients created without an explicit config
_global_config = ClientConfig()


def configure(**options: Any) -> ClientConfig:
    """
    Set process-wide defaults for clients created without a config.

    Accepts the ClientConfig fields: ``base_url``, ``timeout``,
    ``auth_method`` and ``rate_limit``. Options not given keep their
    current default. Existing clients are not affected.

    Returns:
        The new default configuration
    """
    global _global_config
    _global_config = _derive_config(_global_config, options)
    logger.debug(f"Default client configuration updated: {_global_config!r}")
    return _global_config


def get_default_config() -> ClientConfig:
    return _global_config


def _derive_config(base: ClientConfig, overrides: Mapping[str, Any]) -> ClientConfig:
    if not overrides:
        return base
    data = base.model_dump()
    data.update(overrides)
    return ClientConfig(**data)


class RequestDispatcher:
    """
    Executes one API call: rate limit gate, auth, send, classify.

    The token taken in the gate is spent even when the request then fails;
    the limiter counts attempts started by this process, not successes.
    Nothing is retried here.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        auth: Auth,
        limiter: TokenBucket,
        base_url: str,
    ):
        self._http_client = http_client
        self._auth = auth
        self._limiter = limiter
        self._base_url = base_url.rstrip("/")

    async def dispatch(self, descriptor: RequestDescriptor, model: Optional[Any] = None) -> Any:
        """
        Send ``descriptor`` as a GET request and return the decoded body.

        Args:
            descriptor: Endpoint path and query parameters
            model: Type to validate the JSON body against, or None for raw JSON

        Raises:
            FinnhubError: For every failure, classified by kind
        """
        # A handle sharing a pool its owner already closed must not spend a token
        self._ensure_open()
        await self._limiter.acquire()
        self._ensure_open()

        params = list(descriptor.params.items())
        headers: Dict[str, str] = {}
        self._auth.apply(params, headers)

        # Logged without the query string, which may hold the API key
        url = f"{self._base_url}{descriptor.path}"
        logger.debug(f"GET {url}")

        try:
            response = await self._http_client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            error = classify_transport_error(e)
            logger.debug(f"GET {url} failed: {error}")
            raise error from e

        logger.debug(f"GET {url} -> {response.status_code}")
        return classify_response(response, model)

    def _ensure_open(self) -> None:
        if self._http_client.is_closed:
            raise FinnhubError.invalid_request("the HTTP client has been closed")


class FinnhubClient:
    """
    Async client for the Finnhub API.

    All calls made through one client, and through every handle derived
    from it with ``with_options``, share a single token bucket, so the
    configured rate bounds the whole process rather than each handle.

    Examples:
        ```python
        async with FinnhubClient("api-key") as client:
            quote = await client.get("/quote", symbol="AAPL")
            peers = await client.get("/stock/peers", model=list[str], symbol="AAPL")
        ```
    """

    def __init__(
        self,
        api_key: str,
        config: Optional[ClientConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        rate_limiter: Optional[TokenBucket] = None,
    ):
        if not api_key or not api_key.strip():
            raise FinnhubError.invalid_parameter("api_key must be a non-empty string")

        self._config = config if config is not None else _global_config
        self._auth = Auth(api_key, self._config.auth_method)
        if rate_limiter is None:
            rate_limiter = TokenBucket.from_config(self._config.rate_limit)
        self._limiter = rate_limiter
        self._owns_http_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(timeout=httpx.Timeout(self._config.timeout))
        self._http_client = http_client
        self._dispatcher = RequestDispatcher(
            self._http_client, self._auth, self._limiter, self._config.base_url
        )

        logger.info(
            f"Finnhub client ready: base_url={self._config.base_url}, "
            f"auth={self._config.auth_method.value}, "
            f"rate_limit={self._config.rate_limit.strategy.value} "
            f"({self._limiter.capacity} burst, {self._limiter.refill_rate}/s)"
        )

    @classmethod
    def from_env(
        cls,
        config: Optional[ClientConfig] = None,
        *,
        env_var: str = API_KEY_ENV_VAR,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "FinnhubClient":
        """Create a client using the API key stored in an environment variable"""
        api_key = os.environ.get(env_var, "").strip()
        if not api_key:
            raise FinnhubError.invalid_parameter(f"environment variable {env_var} is not set")
        return cls(api_key, config, http_client=http_client)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def rate_limiter(self) -> TokenBucket:
        return self._limiter

    async def __aenter__(self) -> "FinnhubClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP connection pool if this client created it"""
        if self._owns_http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def get(
        self,
        endpoint: str,
        model: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> Any:
        """
        Call a GET endpoint.

        Query parameters can be given inline in ``endpoint``, as a
        ``params`` mapping (for names like ``from``), or as keyword
        arguments. ``None`` values are skipped.

        Args:
            endpoint: Path relative to the base URL, e.g. ``/stock/profile2``
            model: Type to validate the JSON body against, or None for raw JSON
            params: Extra query parameters

        Raises:
            FinnhubError: INVALID_REQUEST / INVALID_PARAMETER before anything is
                sent, or the classified failure of the call
        """
        query = dict(params or {})
        for key, value in kwargs.items():
            if key in query:
                raise FinnhubError.invalid_parameter(f"query parameter {key!r} given twice")
            query[key] = value
        descriptor = RequestDescriptor(path=endpoint, params=query)
        return await self._dispatcher.dispatch(descriptor, model)

    async def dispatch(self, descriptor: RequestDescriptor, model: Optional[Any] = None) -> Any:
        """Send a prepared request descriptor"""
        return await self._dispatcher.dispatch(descriptor, model)

    def with_options(self, **options: Any) -> "FinnhubClient":
        """
        Create a handle with modified options.

        The new handle keeps this client's token bucket unless
        ``rate_limit`` changes, and keeps its HTTP connection pool unless
        ``timeout`` changes. Only the client that created a pool closes it.

        Returns:
            A new FinnhubClient
        """
        config = _derive_config(self._config, options)
        same_limits = config.rate_limit == self._config.rate_limit
        same_transport = config.timeout == self._config.timeout

        return FinnhubClient(
            self._auth.api_key,
            config,
            http_client=self._http_client if same_transport else None,
            rate_limiter=self._limiter if same_limits else None,
        )

    def get_stats(self) -> TokenBucketStats:
        """Get rate limiter statistics"""
        return self._limiter.get_stats()
