from __future__ import annotations

import asyncio
import contextlib
import os
import uuid
from typing import Any
from typing import Optional

from .._auth import ApiKeySource
from .._auth import AuthBase
from .._auth import create_auth
from .._exceptions import AudioError
from .._exceptions import AuthenticationError
from .._exceptions import SessionError
from .._exceptions import TimeoutError
from .._exceptions import TranscriptionError
from .._exceptions import TransportError
from .._logging import get_logger
from ._audio_sources import FileSource
from ._events import EventEmitter
from ._helpers import build_end_of_stream_message
from ._helpers import build_set_recognition_config_message
from ._helpers import build_start_recognition_message
from ._models import AudioEventsConfig
from ._models import AudioFormat
from ._models import ConnectionConfig
from ._models import ServerMessageType
from ._models import SessionEvent
from ._models import SessionInfo
from ._models import SocketState
from ._models import TranscriptionConfig
from ._models import TranslationConfig
from ._transport import Transport

DEFAULT_RT_URL = "wss://eu2.rt.speechmatics.com/v2"


class AsyncClient(EventEmitter):
    """
    Asynchronous client for one Speechmatics realtime transcription session.

    The client opens a WebSocket, starts recognition, streams audio frames and
    emits every server message as an event named after its message type.
    Socket lifecycle changes are emitted as SessionEvent.SOCKET_STATE_CHANGE.

    Args:
        auth: Authentication instance (StaticKeyAuth, ProviderAuth, JWTAuth).
        api_key: API key string or async provider, used if auth is not given.
            Defaults to the SPEECHMATICS_API_KEY environment variable.
        url: WebSocket endpoint URL. If not provided, uses SPEECHMATICS_RT_URL
            environment variable or defaults to EU endpoint.
        app_id: Optional application identifier reported to the service.
        conn_config: Websocket connection configuration.

    Examples:
        Streaming a file with event handlers:
            >>> async with AsyncClient(api_key="your-key") as client:
            ...     @client.on(ServerMessageType.ADD_TRANSCRIPT)
            ...     def handle_transcript(message):
            ...         print(TranscriptResult.from_message(message).transcript)
            ...
            ...     with open("audio.wav", "rb") as audio:
            ...         await client.transcribe(audio)

        Pushing chunks yourself:
            >>> client = AsyncClient(api_key=fetch_temporary_key)
            >>> await client.start(transcription_config=TranscriptionConfig(enable_partials=True))
            >>> async for chunk in microphone_chunks():
            ...     await client.send_audio(chunk)
            >>> await client.stop()
    """

    def __init__(
        self,
        auth: Optional[AuthBase] = None,
        *,
        api_key: ApiKeySource = None,
        url: Optional[str] = None,
        app_id: Optional[str] = None,
        conn_config: Optional[ConnectionConfig] = None,
    ) -> None:
        super().__init__()
        self._logger = get_logger(__name__)

        self._auth = auth or create_auth(api_key)
        self._url = url or os.getenv("SPEECHMATICS_RT_URL") or DEFAULT_RT_URL
        self._session = SessionInfo(request_id=str(uuid.uuid4()))
        self._transport = Transport(self._url, conn_config or ConnectionConfig(), self._session.request_id, app_id)

        self._recv_task: Optional[asyncio.Task[None]] = None
        self._recognition_started_evt = asyncio.Event()
        self._session_done_evt = asyncio.Event()
        self._failure: Optional[Exception] = None
        self._socket_state = SocketState.CLOSED
        self._eos_sent = False
        self._closed = False

        self._logger.debug("AsyncClient initialized (request_id=%s)", self._session.request_id)

    async def __aenter__(self) -> AsyncClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @property
    def session(self) -> SessionInfo:
        return self._session

    @property
    def socket_state(self) -> SocketState:
        return self._socket_state

    @property
    def is_running(self) -> bool:
        """True between RecognitionStarted and the end of the session."""
        return self._recognition_started_evt.is_set() and not self._session_done_evt.is_set()

    async def start(
        self,
        *,
        transcription_config: Optional[TranscriptionConfig] = None,
        audio_format: Optional[AudioFormat] = None,
        translation_config: Optional[TranslationConfig] = None,
        audio_events_config: Optional[AudioEventsConfig] = None,
        ws_headers: Optional[dict[str, str]] = None,
        timeout: float = 5.0,
    ) -> SessionInfo:
        """
        Connect and start a recognition session.

        Args:
            transcription_config: Transcription settings. Defaults to English.
            audio_format: Format of the audio that will be sent. Defaults to
                file audio.
            translation_config: Optional translation settings.
            audio_events_config: Optional audio event detection settings.
            ws_headers: Extra headers for the WebSocket handshake.
            timeout: Seconds to wait for RecognitionStarted.

        Returns:
            The session info, with the server-assigned session ID.

        Raises:
            SessionError: If the client was already started or closed.
            AuthenticationError: If the key is rejected (after one refresh for
                provider keys).
            TranscriptionError: If the server answers with an Error message.
            TimeoutError: If RecognitionStarted does not arrive in time.
        """
        if self._closed:
            raise SessionError("Client is closed")
        if self._recv_task is not None:
            raise SessionError("Session already started")

        message = build_start_recognition_message(
            transcription_config=transcription_config or TranscriptionConfig(),
            audio_format=audio_format or AudioFormat(),
            translation_config=translation_config,
            audio_events_config=audio_events_config,
        )

        await self._connect(ws_headers)
        self._recv_task = asyncio.create_task(self._recv_loop())

        try:
            await self._transport.send_message(message)
            await self._wait_recognition_started(timeout)
        except BaseException:
            await self.close()
            raise

        return self._session

    async def send_audio(self, payload: bytes) -> None:
        """
        Send one chunk of audio as a binary frame.

        Raises:
            AudioError: If the payload is not bytes.
            SessionError: If the session is not running.
        """
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise AudioError("Audio payload must be bytes")
        if not self.is_running or self._eos_sent:
            raise SessionError("Session is not running")

        await self._transport.send_message(bytes(payload))
        self._session.sequence_number += 1

    async def set_recognition_config(self, transcription_config: TranscriptionConfig) -> None:
        """Update the transcription settings of the running session."""
        if not self.is_running:
            raise SessionError("Session is not running")

        await self._transport.send_message(build_set_recognition_config_message(transcription_config))

    async def stop(self, timeout: Optional[float] = 30.0) -> None:
        """
        Finish the session.

        Sends EndOfStream with the number of chunks sent, waits for
        EndOfTranscript and closes the connection.

        Raises:
            TimeoutError: If EndOfTranscript does not arrive in time.
            TranscriptionError: If the server reported an error.
        """
        if self._recv_task is None:
            return

        try:
            if not self._eos_sent and not self._session_done_evt.is_set():
                self._eos_sent = True
                await self._transport.send_message(build_end_of_stream_message(self._session.sequence_number))

            try:
                await asyncio.wait_for(self._session_done_evt.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                raise TimeoutError("Timed out waiting for EndOfTranscript") from None
        finally:
            await self.close()

        self._raise_failure()

    async def transcribe(
        self,
        source: Any,
        *,
        transcription_config: Optional[TranscriptionConfig] = None,
        audio_format: Optional[AudioFormat] = None,
        translation_config: Optional[TranslationConfig] = None,
        audio_events_config: Optional[AudioEventsConfig] = None,
        ws_headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Transcribe a whole audio stream: start, send every chunk, stop.

        Results arrive through the registered event handlers.

        Args:
            source: Object with a sync or async ``read(size)`` method.
            timeout: Maximum time in seconds for the whole session.

        Raises:
            AudioError: If source is missing.
            TimeoutError: If the session exceeds the timeout.
            TranscriptionError: If the server reports an error.

        Examples:
            >>> with open("speech.raw", "rb") as audio:
            ...     await client.transcribe(
            ...         audio,
            ...         audio_format=AudioFormat(encoding=AudioEncoding.PCM_S16LE, sample_rate=16000),
            ...     )
        """
        if source is None:
            raise AudioError("Audio input source cannot be empty")

        audio_format = audio_format or AudioFormat()

        try:
            await asyncio.wait_for(
                self._run_pipeline(
                    source,
                    audio_format,
                    transcription_config=transcription_config,
                    translation_config=translation_config,
                    audio_events_config=audio_events_config,
                    ws_headers=ws_headers,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            await self.close()
            raise TimeoutError("Transcription session timed out") from exc

    async def close(self) -> None:
        """
        Close the connection and stop receiving. Safe to call multiple times.
        """
        self._closed = True
        if self._transport.is_connected:
            self._set_socket_state(SocketState.CLOSING)

        self._session_done_evt.set()
        await self._transport.close()

        if self._recv_task and not self._recv_task.done():
            with contextlib.suppress(Exception):
                await asyncio.wait_for(self._recv_task, timeout=2.0)

        self._set_socket_state(SocketState.CLOSED)

    async def _run_pipeline(self, source: Any, audio_format: AudioFormat, **start_kwargs: Any) -> None:
        await self.start(audio_format=audio_format, **start_kwargs)

        try:
            async for chunk in FileSource(source, chunk_size=audio_format.chunk_size):
                if self._session_done_evt.is_set():
                    break
                await self.send_audio(chunk)
        except (TransportError, SessionError):
            # Let the receiver dispatch whatever the server sent before closing.
            if self._recv_task is not None:
                await asyncio.wait({self._recv_task}, timeout=2.0)
            if self._failure is None:
                await self.close()
                raise

        await self.stop(timeout=None)

    async def _connect(self, ws_headers: Optional[dict[str, str]]) -> None:
        """Open the socket, refreshing a rejected provider key once."""
        self._set_socket_state(SocketState.CONNECTING)
        try:
            api_key = await self._auth.get_api_key()
            try:
                await self._transport.connect(self._auth_headers(api_key), ws_headers)
            except AuthenticationError as exc:
                if exc.status != 401 or not self._auth.refreshable:
                    raise
                self._logger.info("API key rejected, refreshing and reconnecting")
                self._auth.invalidate(api_key)
                api_key = await self._auth.get_api_key()
                await self._transport.connect(self._auth_headers(api_key), ws_headers)
        except BaseException:
            self._set_socket_state(SocketState.CLOSED)
            raise

        self._set_socket_state(SocketState.OPEN)

    async def _wait_recognition_started(self, timeout: float) -> None:
        started = asyncio.ensure_future(self._recognition_started_evt.wait())
        done = asyncio.ensure_future(self._session_done_evt.wait())
        try:
            await asyncio.wait({started, done}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            started.cancel()
            done.cancel()

        if self._recognition_started_evt.is_set():
            return

        self._raise_failure()
        if self._session_done_evt.is_set():
            raise SessionError("Connection closed before recognition started")
        raise TimeoutError(f"RecognitionStarted not received within {timeout} seconds")

    async def _recv_loop(self) -> None:
        """Receive server messages and dispatch them until the socket closes."""
        try:
            while True:
                msg = await self._transport.receive_message()
                if msg is None:
                    break
                self._dispatch(msg)
        except TransportError as exc:
            if not self._session_done_evt.is_set():
                self._logger.error("Receive loop error: %s", exc)
                self._failure = self._failure or exc
        finally:
            self._session_done_evt.set()

    def _dispatch(self, msg: dict[str, Any]) -> None:
        message_type = msg.get("message")

        if message_type == ServerMessageType.RECOGNITION_STARTED:
            self._session.session_id = msg.get("id")
            self._session.language_pack_info = msg.get("language_pack_info")
            self._recognition_started_evt.set()
            self._logger.debug("Recognition started (session_id=%s)", self._session.session_id)
        elif message_type == ServerMessageType.AUDIO_ADDED:
            self._session.last_audio_added = msg.get("seq_no", self._session.last_audio_added)
        elif message_type == ServerMessageType.ERROR:
            reason = msg.get("reason", "unknown")
            self._logger.error("Server error (type=%s): %s", msg.get("type"), reason)
            self._failure = TranscriptionError(f"{msg.get('type', 'error')}: {reason}", msg)
        elif message_type == ServerMessageType.WARNING:
            self._logger.warning("Server warning: %s", msg.get("reason", "unknown"))
        elif message_type == ServerMessageType.INFO:
            self._logger.debug("Server info: %s", msg.get("reason"))

        if message_type:
            self.emit(message_type, msg)

        if message_type in (ServerMessageType.END_OF_TRANSCRIPT, ServerMessageType.ERROR):
            self._session_done_evt.set()

    def _raise_failure(self) -> None:
        if self._failure is not None:
            raise self._failure

    def _set_socket_state(self, state: SocketState) -> None:
        if state == self._socket_state:
            return
        self._socket_state = state
        self._logger.debug("Socket state changed to %s", state.value)
        self.emit(SessionEvent.SOCKET_STATE_CHANGE, state)

    @staticmethod
    def _auth_headers(api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}
