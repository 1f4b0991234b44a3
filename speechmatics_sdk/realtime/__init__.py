from ._async_client import AsyncClient
from ._audio_sources import FileSource
from ._events import EventEmitter
from ._models import AudioEncoding
from ._models import AudioEventsConfig
from ._models import AudioFormat
from ._models import ClientMessageType
from ._models import ConnectionConfig
from ._models import ConversationConfig
from ._models import OperatingPoint
from ._models import ServerMessageType
from ._models import SessionEvent
from ._models import SessionInfo
from ._models import SocketState
from ._models import SpeakerDiarizationConfig
from ._models import TranscriptionConfig
from ._models import TranscriptResult
from ._models import TranslationConfig
from ._models import TranslationResult

__all__ = [
    "AsyncClient",
    "AudioEncoding",
    "AudioEventsConfig",
    "AudioFormat",
    "ClientMessageType",
    "ConnectionConfig",
    "ConversationConfig",
    "EventEmitter",
    "FileSource",
    "OperatingPoint",
    "ServerMessageType",
    "SessionEvent",
    "SessionInfo",
    "SocketState",
    "SpeakerDiarizationConfig",
    "TranscriptResult",
    "TranscriptionConfig",
    "TranslationConfig",
    "TranslationResult",
]
