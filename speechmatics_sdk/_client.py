"""
Entry point combining the batch and realtime clients.
"""

from __future__ import annotations

from typing import Any
from typing import Optional

from .batch import AsyncClient as BatchClient
from .realtime import AsyncClient as RealtimeClient
from .realtime import ConnectionConfig as RealtimeConnectionConfig
from ._auth import ApiKeySource
from ._auth import AuthBase
from ._auth import create_auth


class Speechmatics:
    """
    One key source shared by a batch client and any number of realtime sessions.

    When the key comes from an async provider, a key fetched for one client is
    reused by the others, and a refresh triggered by either is seen by both.

    Args:
        api_key: API key string, async provider, AuthBase instance, or None to
            read SPEECHMATICS_API_KEY.
        batch_url: Override for the batch API URL.
        realtime_url: Override for the realtime WebSocket URL.
        app_id: Optional application identifier reported to the service.

    Examples:
        >>> async with Speechmatics("your-api-key") as sm:
        ...     result = await sm.batch.transcribe("audio.wav")
        ...     session = sm.realtime()
        ...     await session.start()
    """

    def __init__(
        self,
        api_key: ApiKeySource = None,
        *,
        batch_url: Optional[str] = None,
        realtime_url: Optional[str] = None,
        app_id: Optional[str] = None,
    ) -> None:
        self._auth = create_auth(api_key)
        self._batch_url = batch_url
        self._realtime_url = realtime_url
        self._app_id = app_id
        self._batch: Optional[BatchClient] = None

    async def __aenter__(self) -> Speechmatics:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def auth(self) -> AuthBase:
        return self._auth

    @property
    def batch(self) -> BatchClient:
        """The batch client, created on first access."""
        if self._batch is None:
            self._batch = BatchClient(self._auth, url=self._batch_url, app_id=self._app_id)
        return self._batch

    def realtime(self, conn_config: Optional[RealtimeConnectionConfig] = None) -> RealtimeClient:
        """Create a new realtime session client."""
        return RealtimeClient(
            self._auth,
            url=self._realtime_url,
            app_id=self._app_id,
            conn_config=conn_config,
        )

    async def close(self) -> None:
        if self._batch is not None:
            await self._batch.close()
