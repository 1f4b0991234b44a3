__version__ = "0.0.0"

from ._auth import ApiKeyProvider
from ._auth import AuthBase
from ._auth import JWTAuth
from ._auth import ProviderAuth
from ._auth import StaticKeyAuth
from ._auth import create_auth
from ._client import Speechmatics
from ._exceptions import AudioError
from ._exceptions import AuthenticationError
from ._exceptions import BatchError
from ._exceptions import ConfigurationError
from ._exceptions import ConnectionError
from ._exceptions import JobError
from ._exceptions import ResponseError
from ._exceptions import SessionError
from ._exceptions import SpeechmaticsError
from ._exceptions import TimeoutError
from ._exceptions import TranscriptionError
from ._exceptions import TransportError

__all__ = [
    "ApiKeyProvider",
    "AudioError",
    "AuthBase",
    "AuthenticationError",
    "BatchError",
    "ConfigurationError",
    "ConnectionError",
    "JWTAuth",
    "JobError",
    "ProviderAuth",
    "ResponseError",
    "SessionError",
    "Speechmatics",
    "SpeechmaticsError",
    "StaticKeyAuth",
    "TimeoutError",
    "TranscriptionError",
    "TransportError",
    "create_auth",
]
