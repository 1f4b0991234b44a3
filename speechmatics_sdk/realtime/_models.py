from __future__ import annotations

from dataclasses import asdict
from dataclasses import dataclass
from enum import Enum
from typing import Any
from typing import Optional


def _without_none(items: list[tuple[str, Any]]) -> dict[str, Any]:
    return {k: v for (k, v) in items if v is not None}


class AudioEncoding(str, Enum):
    """
    Raw audio encodings accepted by the realtime API.

    Attributes:
        PCM_F32LE: 32-bit float PCM, little-endian. 4 bytes per sample.
        PCM_S16LE: 16-bit signed integer PCM, little-endian. 2 bytes per sample.
        MULAW: 8 bit mu-law encoding. 1 byte per sample.
    """

    PCM_F32LE = "pcm_f32le"
    PCM_S16LE = "pcm_s16le"
    MULAW = "mulaw"


class OperatingPoint(str, Enum):
    """Operating point options for transcription."""

    ENHANCED = "enhanced"
    STANDARD = "standard"


class ClientMessageType(str, Enum):
    """
    Message types sent from client to server.

    Audio itself travels as binary frames; each one is an implicit AddAudio.
    """

    START_RECOGNITION = "StartRecognition"
    ADD_AUDIO = "AddAudio"
    END_OF_STREAM = "EndOfStream"
    SET_RECOGNITION_CONFIG = "SetRecognitionConfig"


class ServerMessageType(str, Enum):
    """
    Message types received from the server.

    Each value doubles as an event name on the realtime client.

    Examples:
        >>> @client.on(ServerMessageType.ADD_TRANSCRIPT)
        ... def handle_final(message):
        ...     print(message["metadata"]["transcript"])
    """

    RECOGNITION_STARTED = "RecognitionStarted"
    AUDIO_ADDED = "AudioAdded"
    ADD_PARTIAL_TRANSCRIPT = "AddPartialTranscript"
    ADD_TRANSCRIPT = "AddTranscript"
    ADD_PARTIAL_TRANSLATION = "AddPartialTranslation"
    ADD_TRANSLATION = "AddTranslation"
    END_OF_TRANSCRIPT = "EndOfTranscript"
    END_OF_UTTERANCE = "EndOfUtterance"
    AUDIO_EVENT_STARTED = "AudioEventStarted"
    AUDIO_EVENT_ENDED = "AudioEventEnded"
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"


class SessionEvent(str, Enum):
    """Events raised by the client itself rather than the server."""

    SOCKET_STATE_CHANGE = "SocketStateChange"


class SocketState(str, Enum):
    """Lifecycle of the WebSocket connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class AudioEventsConfig:
    types: Optional[list[str]] = None
    """Optional list of audio event types to detect."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class AudioFormat:
    """
    Format of the audio that will be streamed.

    Without an encoding the audio is treated as a file container (wav, mp3,
    ...) that the server inspects. With an encoding it is raw samples at the
    given rate.

    Attributes:
        encoding: Raw audio encoding, or None for file audio.
        sample_rate: Sample rate in Hz for raw audio.
        chunk_size: Bytes per chunk when streaming from a file-like source.

    Examples:
        >>> AudioFormat().to_dict()
        {'type': 'file'}
        >>> AudioFormat(encoding=AudioEncoding.PCM_S16LE, sample_rate=16000).to_dict()
        {'type': 'raw', 'encoding': 'pcm_s16le', 'sample_rate': 16000}
    """

    encoding: Optional[AudioEncoding] = None
    sample_rate: int = 44100
    chunk_size: int = 4096

    def to_dict(self) -> dict[str, Any]:
        if self.encoding:
            return {
                "type": "raw",
                "encoding": AudioEncoding(self.encoding).value,
                "sample_rate": self.sample_rate,
            }

        return {"type": "file"}


@dataclass
class ConversationConfig:
    """End-of-utterance detection settings.

    Attributes:
        end_of_utterance_silence_trigger: Seconds of silence that end an utterance.
    """

    end_of_utterance_silence_trigger: Optional[float] = None


@dataclass
class SpeakerDiarizationConfig:
    """Speaker diarization settings.

    Attributes:
        max_speakers: Maximum number of speakers in the stream.
        speaker_sensitivity: Between 0 and 1; higher finds more speakers.
        prefer_current_speaker: Bias towards the active speaker on close matches.
    """

    max_speakers: Optional[int] = None
    speaker_sensitivity: Optional[float] = None
    prefer_current_speaker: Optional[bool] = None


@dataclass
class TranscriptionConfig:
    """
    Transcription settings for a realtime session.

    Attributes:
        language: ISO 639-1 language code. Defaults to "en".
        operating_point: Which acoustic model to use. Defaults to "enhanced".
        output_locale: RFC-5646 language code for transcript output (eg. "en-US").
        diarization: "none", "speaker", "channel" or "channel_and_speaker".
        additional_vocab: Extra words and their sounds-like spellings.
        punctuation_overrides: Permitted punctuation marks and sensitivity.
        domain: Domain-optimized language pack (e.g. "finance").
        enable_entities: Whether to format entities such as dates and numbers.
        enable_partials: Whether to receive partial transcripts.
        max_delay: Maximum delay in seconds before a final transcript.
        max_delay_mode: "flexible" or "fixed".
        speaker_diarization_config: Speaker diarization settings.
        audio_filtering_config: Settings for ignoring quiet audio.
        transcript_filtering_config: Settings for filtering the transcript.
        conversation_config: End-of-utterance detection settings.
        channel_diarization_labels: Labels for channel diarization.

    Examples:
        >>> config = TranscriptionConfig(language="es", enable_partials=True, max_delay=2.0)
    """

    language: str = "en"
    operating_point: OperatingPoint = OperatingPoint.ENHANCED
    output_locale: Optional[str] = None
    diarization: Optional[str] = None
    additional_vocab: Optional[list[dict[str, Any]]] = None
    punctuation_overrides: Optional[dict[str, Any]] = None
    domain: Optional[str] = None
    enable_entities: Optional[bool] = None
    enable_partials: Optional[bool] = None
    max_delay: Optional[float] = None
    max_delay_mode: Optional[str] = None
    speaker_diarization_config: Optional[SpeakerDiarizationConfig] = None
    audio_filtering_config: Optional[dict[str, Any]] = None
    transcript_filtering_config: Optional[dict[str, Any]] = None
    conversation_config: Optional[ConversationConfig] = None
    channel_diarization_labels: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        """Transcription configuration as a dict, excluding None values."""
        return asdict(self, dict_factory=_without_none)


@dataclass
class TranslationConfig:
    """Translation config.

    Attributes:
        target_languages: Languages to translate the transcript into.
        enable_partials: Whether to receive partial translations.
    """

    target_languages: list[str]
    enable_partials: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class ConnectionConfig:
    """
    WebSocket connection parameters, passed through to ``websockets.connect``.

    Attributes:
        open_timeout: Timeout for establishing the connection.
        ping_interval: Interval between keepalive pings.
        ping_timeout: Timeout waiting for a pong.
        close_timeout: Timeout for the closing handshake.
        max_size: Maximum incoming message size in bytes.
    """

    open_timeout: Optional[float] = 10.0
    ping_interval: Optional[float] = None
    ping_timeout: Optional[float] = 60
    close_timeout: Optional[float] = None
    max_size: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class SessionInfo:
    """
    State of one realtime session.

    Attributes:
        request_id: Client-side identifier, sent as X-Request-Id.
        session_id: Server-assigned ID, set once recognition starts.
        language_pack_info: Language pack details from RecognitionStarted.
        sequence_number: Number of audio chunks sent so far.
        last_audio_added: Highest seq_no acknowledged by AudioAdded.
    """

    request_id: str
    session_id: Optional[str] = None
    language_pack_info: Optional[dict[str, Any]] = None
    sequence_number: int = 0
    last_audio_added: int = 0


@dataclass
class TranscriptResult:
    """
    Transcript segment extracted from AddTranscript / AddPartialTranscript.

    Examples:
        >>> @client.on(ServerMessageType.ADD_TRANSCRIPT)
        ... def handle_transcript(message):
        ...     result = TranscriptResult.from_message(message)
        ...     print(result.transcript)
    """

    transcript: str
    is_final: bool
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    results: Optional[list[dict[str, Any]]] = None

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> TranscriptResult:
        metadata = message.get("metadata", {})
        return cls(
            transcript=metadata.get("transcript", ""),
            is_final=message.get("message") == ServerMessageType.ADD_TRANSCRIPT,
            start_time=metadata.get("start_time"),
            end_time=metadata.get("end_time"),
            results=message.get("results"),
        )

    @property
    def speakers(self) -> list[str]:
        """Distinct speaker labels in order of first appearance."""
        seen: list[str] = []
        for result in self.results or []:
            for alternative in result.get("alternatives", [])[:1]:
                speaker = alternative.get("speaker")
                if speaker and speaker not in seen:
                    seen.append(speaker)
        return seen


@dataclass
class TranslationResult:
    """Translated segment extracted from AddTranslation / AddPartialTranslation."""

    language: str
    content: str
    is_final: bool
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    speaker: Optional[str] = None

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> list[TranslationResult]:
        language = message.get("language", "")
        is_final = message.get("message") == ServerMessageType.ADD_TRANSLATION
        return [
            cls(
                language=language,
                content=item.get("content", ""),
                is_final=is_final,
                start_time=item.get("start_time"),
                end_time=item.get("end_time"),
                speaker=item.get("speaker"),
            )
            for item in message.get("results", [])
        ]
