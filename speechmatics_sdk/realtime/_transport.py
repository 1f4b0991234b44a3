from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any
from typing import Optional
from typing import Union
from urllib.parse import parse_qsl
from urllib.parse import urlencode
from urllib.parse import urlparse
from urllib.parse import urlunparse

from websockets.asyncio.client import ClientConnection
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed
from websockets.exceptions import ConnectionClosedOK
from websockets.exceptions import InvalidStatus
from websockets.exceptions import WebSocketException

from .._exceptions import AuthenticationError
from .._exceptions import ConnectionError
from .._exceptions import TimeoutError
from .._exceptions import TransportError
from .._logging import get_logger
from .._version import sdk_tag
from ._models import ConnectionConfig


class Transport:
    """
    WebSocket transport layer for Speechmatics realtime API communication.

    Handles connection establishment, JSON serialization of control messages,
    binary audio frames and connection shutdown. Handshake rejections are
    reported as AuthenticationError (401/403) or ConnectionError.

    Args:
        url: The WebSocket URL to connect to.
        conn_config: Connection configuration and timeouts.
        request_id: Optional unique identifier for request tracking.
            Generated automatically if not provided.
        app_id: Optional application identifier sent as ``sm-app``.
    """

    def __init__(
        self,
        url: str,
        conn_config: ConnectionConfig,
        request_id: Optional[str] = None,
        app_id: Optional[str] = None,
    ) -> None:
        self._url = url
        self._conn_config = conn_config
        self._request_id = request_id or str(uuid.uuid4())
        self._app_id = app_id
        self._websocket: Optional[ClientConnection] = None
        self._logger = get_logger(__name__)

        self._logger.debug("Transport initialized (request_id=%s, url=%s)", self._request_id, self._url)

    async def connect(self, auth_headers: dict[str, str], ws_headers: Optional[dict[str, str]] = None) -> None:
        """
        Open the WebSocket connection.

        Args:
            auth_headers: Authorization headers for the handshake.
            ws_headers: Optional additional handshake headers.

        Raises:
            AuthenticationError: If the server rejects the key.
            TimeoutError: If the handshake does not complete in time.
            ConnectionError: For any other connection failure.
        """
        if self._websocket is not None:
            return

        url_with_params = self._prepare_url()
        headers = {**(ws_headers or {}), **auth_headers, "X-Request-Id": self._request_id}
        self._logger.debug("Connecting to WebSocket: %s", url_with_params)

        try:
            self._websocket = await connect(
                url_with_params,
                additional_headers=headers,
                **self._conn_config.to_dict(),
            )
        except InvalidStatus as e:
            status = e.response.status_code
            self._logger.error("WebSocket handshake rejected (status=%d)", status)
            if status in (401, 403):
                raise AuthenticationError(f"WebSocket handshake rejected: HTTP {status}", status=status) from e
            raise ConnectionError(f"WebSocket handshake rejected: HTTP {status}") from e
        except asyncio.TimeoutError as e:
            self._logger.error("WebSocket connection timeout: %s", e)
            raise TimeoutError(f"WebSocket connection timeout: {e}") from e
        except (OSError, WebSocketException) as e:
            self._logger.error("WebSocket connection error: %s", e)
            raise ConnectionError(f"WebSocket connection error: {e}") from e

    async def send_message(self, message: Union[dict[str, Any], bytes]) -> None:
        """
        Send a control message (dict, sent as JSON text) or an audio frame (bytes).

        Raises:
            TransportError: If not connected or the send fails.
        """
        if self._websocket is None:
            raise TransportError("Not connected")

        data = json.dumps(message) if isinstance(message, dict) else message
        try:
            await self._websocket.send(data)
        except ConnectionClosed as e:
            self._logger.error("Send message failed: %s", e)
            raise TransportError(f"Send message failed: {e}") from e

    async def receive_message(self) -> Optional[dict[str, Any]]:
        """
        Receive and parse the next server message.

        Returns:
            The parsed message, or None once the server has closed the
            connection normally.

        Raises:
            TransportError: If not connected, the payload is not JSON, or the
                connection dropped abnormally.
        """
        if self._websocket is None:
            raise TransportError("Not connected")

        try:
            raw_message = await self._websocket.recv()
        except ConnectionClosedOK:
            return None
        except ConnectionClosed as e:
            self._logger.error("Connection closed unexpectedly: %s", e)
            raise TransportError(f"Connection closed unexpectedly: {e}") from e

        try:
            parsed_message = json.loads(raw_message)
        except json.JSONDecodeError as e:
            self._logger.error("Invalid JSON received: %s", e)
            raise TransportError(f"Invalid JSON received: {e}") from e

        if not isinstance(parsed_message, dict):
            raise TransportError(f"Unexpected message payload: {raw_message!r}")

        self._logger.debug("Received message=%s", parsed_message.get("message"))
        return parsed_message  # type: ignore[no-any-return]

    async def close(self) -> None:
        """
        Close the WebSocket connection. Safe to call multiple times.
        """
        websocket, self._websocket = self._websocket, None
        if websocket is not None:
            self._logger.debug("Closing WebSocket connection")
            try:
                await websocket.close()
            except Exception as e:
                self._logger.debug("Error closing WebSocket: %s", e)

    @property
    def is_connected(self) -> bool:
        return self._websocket is not None

    def _prepare_url(self) -> str:
        """Add the SDK version and app identifier to the URL query."""
        parsed = urlparse(self._url)
        query_params = dict(parse_qsl(parsed.query))
        query_params["sm-sdk"] = sdk_tag()
        if self._app_id:
            query_params.setdefault("sm-app", self._app_id)

        return urlunparse(parsed._replace(query=urlencode(query_params)))
