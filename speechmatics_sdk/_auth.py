"""
API key sources for the Speechmatics SDK.

A client authenticates every request with a bearer key taken from an
``AuthBase`` instance. Keys are either fixed (``StaticKeyAuth``) or resolved
lazily from an async provider (``ProviderAuth``, ``JWTAuth``). Provider keys
are cached until the service rejects them, at which point the client calls
``invalidate`` and asks for a new one.
"""

from __future__ import annotations

import abc
import asyncio
import os
from collections.abc import Awaitable
from typing import Callable
from typing import Literal
from typing import Optional
from typing import Union

import aiohttp

from ._exceptions import AuthenticationError
from ._exceptions import ConfigurationError
from ._exceptions import ConnectionError
from ._logging import get_logger

ApiKeyProvider = Callable[[], Awaitable[str]]
ApiKeySource = Union[str, ApiKeyProvider, "AuthBase", None]

logger = get_logger(__name__)


class AuthBase(abc.ABC):
    """
    Abstract base class for authentication methods.
    """

    BASE_URL = "https://mp.speechmatics.com"

    @property
    def refreshable(self) -> bool:
        """Whether asking again can produce a different key."""
        return False

    @abc.abstractmethod
    async def get_api_key(self) -> str:
        """
        Get the key to use for the next request.

        Returns:
            The API key or temporary token.
        """
        raise NotImplementedError

    async def get_auth_headers(self) -> dict[str, str]:
        """
        Get authentication headers asynchronously.

        Returns:
            Dictionary of headers to include in the request.
        """
        api_key = await self.get_api_key()
        return {"Authorization": f"Bearer {api_key}"}

    def invalidate(self, stale_key: Optional[str] = None) -> None:
        """Forget a cached key so the next call resolves a new one."""
        return None


class StaticKeyAuth(AuthBase):
    """
    Authentication using a static API key.

    The same API key is used for all requests.

    Args:
        api_key: The Speechmatics API key. Falls back to the
            SPEECHMATICS_API_KEY environment variable.

    Raises:
        ConfigurationError: If no key is given and the environment variable is unset.

    Examples:
        >>> auth = StaticKeyAuth("your-api-key")
        >>> headers = await auth.get_auth_headers()
        >>> print(headers)
        {'Authorization': 'Bearer your-api-key'}
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key or os.environ.get("SPEECHMATICS_API_KEY")

        if not self._api_key:
            raise ConfigurationError("API key required: provide api_key or set SPEECHMATICS_API_KEY")

    @property
    def api_key(self) -> str:
        return self._api_key  # type: ignore[return-value]

    async def get_api_key(self) -> str:
        return self._api_key  # type: ignore[return-value]


class ProviderAuth(AuthBase):
    """
    Authentication with a key resolved lazily from an async provider.

    The provider is called on first use and its result cached. Concurrent
    callers that find the cache empty share a single provider call. When a
    request is rejected the client invalidates the key and the next call
    invokes the provider again.

    Args:
        provider: Zero-argument coroutine function returning an API key.

    Examples:
        >>> async def fetch_key() -> str:
        ...     return await my_backend.issue_speechmatics_key()
        >>> auth = ProviderAuth(fetch_key)
        >>> key = await auth.get_api_key()
    """

    def __init__(self, provider: ApiKeyProvider):
        if not callable(provider):
            raise ConfigurationError("API key provider must be callable")

        self._provider = provider
        self._api_key: Optional[str] = None
        self._pending: Optional[asyncio.Future[str]] = None

    @property
    def refreshable(self) -> bool:
        return True

    @property
    def api_key(self) -> Optional[str]:
        """The cached key, or None if no key has been resolved yet."""
        return self._api_key

    async def get_api_key(self) -> str:
        if self._api_key is not None:
            return self._api_key
        return await self.refresh()

    async def refresh(self) -> str:
        """
        Resolve a new key from the provider and cache it.

        If a resolution is already in flight, wait for that one instead of
        calling the provider again.

        Returns:
            The newly resolved key.

        Raises:
            AuthenticationError: If the provider returns an empty key.
        """
        if self._pending is None:
            pending = asyncio.ensure_future(self._resolve())
            pending.add_done_callback(self._clear_pending)
            self._pending = pending
        return await asyncio.shield(self._pending)

    def invalidate(self, stale_key: Optional[str] = None) -> None:
        if stale_key is None or stale_key == self._api_key:
            logger.debug("Invalidating cached API key")
            self._api_key = None

    async def _resolve(self) -> str:
        logger.debug("Resolving API key from provider")
        api_key = await self._provider()
        if not api_key:
            raise AuthenticationError("API key provider returned an empty key")
        self._api_key = str(api_key)
        return self._api_key

    def _clear_pending(self, fut: asyncio.Future[str]) -> None:
        if self._pending is fut:
            self._pending = None


class JWTAuth(ProviderAuth):
    """
    Authentication using temporary keys from the management platform.

    Generates short-lived keys on demand with the long-lived API key, and
    requests a new one whenever the service rejects the current key.

    Args:
        api_key: The main Speechmatics API key used to generate temporary keys.
        ttl: Time-to-live for tokens between 60 and 86400 seconds.
        region: Region the temporary key should be enabled in.
        client_ref: Optional client reference, required when the key is
            exposed to an end user's client.
        mp_url: Optional management platform URL override.
        key_type: "batch" or "rt", the API the temporary key is valid for.
        request_id: Optional request ID for debugging purposes.

    Examples:
        >>> auth = JWTAuth("your-api-key", key_type="rt", ttl=3600)
        >>> headers = await auth.get_auth_headers()
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        ttl: int = 60,
        region: Literal["eu", "usa"] = "eu",
        client_ref: Optional[str] = None,
        mp_url: Optional[str] = None,
        key_type: Literal["batch", "rt"] = "batch",
        request_id: Optional[str] = None,
    ):
        super().__init__(self._generate_token)
        self._main_key = api_key or os.environ.get("SPEECHMATICS_API_KEY")
        self._ttl = ttl
        self._region = region
        self._client_ref = client_ref
        self._key_type = key_type
        self._request_id = request_id
        self._mp_url = mp_url or os.environ.get("SM_MANAGEMENT_PLATFORM_URL", self.BASE_URL)

        if not self._main_key:
            raise ConfigurationError(
                "API key required: please provide api_key or set SPEECHMATICS_API_KEY environment variable"
            )

        if not 60 <= self._ttl <= 86_400:
            raise ConfigurationError("ttl must be between 60 and 86400 seconds")

    async def _generate_token(self) -> str:
        endpoint = f"{self._mp_url.rstrip('/')}/v1/api_keys"
        params = {"type": self._key_type}
        payload = {"ttl": self._ttl, "region": str(self._region)}

        if self._client_ref:
            payload["client_ref"] = self._client_ref

        headers = {
            "Authorization": f"Bearer {self._main_key}",
            "Content-Type": "application/json",
        }

        if self._request_id:
            headers["X-Request-Id"] = self._request_id

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    endpoint,
                    params=params,
                    json=payload,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as response:
                    if response.status != 201:
                        text = await response.text()
                        raise AuthenticationError(
                            f"Failed to generate temporary key: HTTP {response.status}: {text}",
                            status=response.status,
                        )

                    data = await response.json()
                    return str(data["key_value"])

        except aiohttp.ClientError as e:
            raise ConnectionError(f"Network error generating temporary key: {e}") from e
        except asyncio.TimeoutError as e:
            raise ConnectionError("Timed out generating temporary key") from e


def create_auth(api_key: ApiKeySource = None) -> AuthBase:
    """
    Build an AuthBase from any supported key source.

    Args:
        api_key: An existing AuthBase, a key string, an async provider
            function, or None to read SPEECHMATICS_API_KEY.

    Returns:
        The matching authentication instance.

    Raises:
        ConfigurationError: If the source is of an unsupported type or no key
            can be found.
    """
    if isinstance(api_key, AuthBase):
        return api_key
    if api_key is None or isinstance(api_key, str):
        return StaticKeyAuth(api_key)
    if callable(api_key):
        return ProviderAuth(api_key)
    raise ConfigurationError(f"Unsupported API key source: {type(api_key).__name__}")
