"""
Transport layer for Speechmatics batch HTTP communication.

The Transport class owns the aiohttp session and turns one API call into one
HTTP request: it builds headers and query parameters, encodes JSON or
multipart bodies, and maps HTTP and network failures onto SDK exceptions.
Choosing the key and retrying is left to the client.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any
from typing import Optional

import aiohttp

from .._exceptions import AuthenticationError
from .._exceptions import ConnectionError
from .._exceptions import ResponseError
from .._exceptions import TimeoutError
from .._exceptions import TransportError
from .._logging import get_logger
from .._version import get_version
from .._version import sdk_tag
from ._models import ConnectionConfig

JSON_CONTENT_TYPES = ("application/json", "application/vnd.speechmatics.v2+json")


class Transport:
    """
    HTTP transport layer for Speechmatics batch API communication.

    Args:
        url: Base URL of the batch API, e.g. "https://asr.api.speechmatics.com/v2".
        conn_config: Connection timeouts.
        request_id: Optional unique identifier for request tracking. Generated
            automatically if not provided.
        app_id: Optional application identifier sent as ``sm-app``.

    Examples:
        >>> transport = Transport("https://asr.api.speechmatics.com/v2", ConnectionConfig())
        >>> jobs = await transport.request("GET", "/jobs", api_key="your-api-key")
        >>> await transport.close()
    """

    def __init__(
        self,
        url: str,
        conn_config: ConnectionConfig,
        request_id: Optional[str] = None,
        app_id: Optional[str] = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._conn_config = conn_config
        self._request_id = request_id or str(uuid.uuid4())
        self._app_id = app_id
        self._session: Optional[aiohttp.ClientSession] = None
        self._closed = False
        self._logger = get_logger(__name__)

        self._logger.debug("Transport initialized (request_id=%s, url=%s)", self._request_id, self._url)

    async def __aenter__(self) -> Transport:
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """
        Close the HTTP session and cleanup resources.

        Safe to call multiple times.
        """
        if self._session:
            try:
                await self._session.close()
            except Exception as e:
                self._logger.debug("Error closing HTTP session: %s", e)
            finally:
                self._session = None
        self._closed = True

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._closed:
            raise TransportError("Transport is closed")
        if self._session is None:
            timeout = aiohttp.ClientTimeout(
                total=self._conn_config.operation_timeout,
                connect=self._conn_config.connect_timeout,
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        *,
        api_key: str,
        params: Optional[dict[str, Any]] = None,
        json_data: Optional[dict[str, Any]] = None,
        multipart_data: Optional[dict[str, Any]] = None,
        raw: bool = False,
    ) -> Any:
        """
        Send one HTTP request to the API.

        Returns:
            Parsed JSON for JSON responses, ``{"content": text}`` for text
            responses, or bytes when ``raw`` is set.

        Raises:
            AuthenticationError: For 401/403 responses.
            ResponseError: For other HTTP error responses.
            ConnectionError: If the service cannot be reached.
            TimeoutError: If the request times out.
        """
        session = await self._ensure_session()

        url = path if path.startswith(("http://", "https://")) else f"{self._url}{path}"
        kwargs: dict[str, Any] = {
            "headers": self._prepare_headers(api_key),
            "params": self._prepare_params(params),
        }

        if json_data is not None:
            kwargs["json"] = json_data
        elif multipart_data is not None:
            kwargs["data"] = self._build_form(multipart_data)

        self._logger.debug("%s %s (request_id=%s)", method, url, self._request_id)

        try:
            async with session.request(method, url, **kwargs) as response:
                return await self._handle_response(response, raw=raw)
        except asyncio.TimeoutError:
            self._logger.error("Request timeout (%s %s)", method, path)
            raise TimeoutError(f"Request timeout for {method} {path}") from None
        except aiohttp.ClientError as e:
            self._logger.error("Request failed (%s %s): %s", method, path, e)
            raise ConnectionError(f"Request failed: {e}") from e

    def _prepare_headers(self, api_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "User-Agent": f"speechmatics-sdk-python/{get_version()}",
            "X-Request-Id": self._request_id,
        }

    def _prepare_params(self, params: Optional[dict[str, Any]]) -> dict[str, str]:
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        query["sm-sdk"] = sdk_tag()
        if self._app_id:
            query["sm-app"] = self._app_id
        return query

    @staticmethod
    def _build_form(multipart_data: dict[str, Any]) -> aiohttp.FormData:
        # A fresh FormData per attempt; aiohttp refuses to send one twice.
        form_data = aiohttp.FormData()
        for key, value in multipart_data.items():
            if isinstance(value, tuple) and len(value) == 3:
                filename, file_data, content_type = value
                form_data.add_field(key, file_data, filename=filename, content_type=content_type)
            elif isinstance(value, dict):
                form_data.add_field(key, json.dumps(value), content_type="application/json")
            else:
                form_data.add_field(key, value)
        return form_data

    async def _handle_response(self, response: aiohttp.ClientResponse, *, raw: bool = False) -> Any:
        if response.status in (401, 403):
            body = await response.text()
            self._logger.warning("Authentication failed (status=%d)", response.status)
            message = (
                "Invalid API key - authentication failed"
                if response.status == 401
                else "Access forbidden - check API key permissions"
            )
            raise AuthenticationError(message, {"body": body}, status=response.status)

        if response.status >= 400:
            raise await self._response_error(response)

        if raw:
            return await response.read()

        if response.content_type in JSON_CONTENT_TYPES:
            try:
                return await response.json(content_type=None)
            except (aiohttp.ContentTypeError, json.JSONDecodeError) as e:
                self._logger.error("Failed to parse JSON response: %s", e)
                raise TransportError(f"Failed to parse response: {e}") from e

        text = await response.text()
        return {"content": text, "content_type": response.content_type}

    async def _response_error(self, response: aiohttp.ClientResponse) -> ResponseError:
        body = await response.text()
        error: Optional[str] = response.reason
        detail: Optional[str] = None
        try:
            payload = json.loads(body)
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            error = payload.get("error") or error
            detail = payload.get("detail")
        elif body:
            detail = body

        self._logger.error("HTTP error (status=%d, error=%s, detail=%s)", response.status, error, detail)
        return ResponseError(response.status, error, detail, {"body": body})
