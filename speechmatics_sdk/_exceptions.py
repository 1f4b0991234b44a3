"""
Exception hierarchy for the Speechmatics SDK.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class SpeechmaticsError(Exception):
    """Base exception for all Speechmatics SDK errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SpeechmaticsError):
    """Raised when there's an error in configuration."""

    pass


class AuthenticationError(SpeechmaticsError):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        *,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message, details)
        self.status = status


class ConnectionError(SpeechmaticsError):
    """Raised when connection to the service fails."""

    pass


class TransportError(SpeechmaticsError):
    """Raised when there's an error in the transport layer."""

    pass


class ResponseError(TransportError):
    """
    Raised when the service answers a request with an HTTP error status.

    Attributes:
        status: HTTP status code.
        error: Short error description from the response body, if any.
        detail: Longer error detail from the response body, if any.
    """

    def __init__(
        self,
        status: int,
        error: Optional[str] = None,
        detail: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        message = f"HTTP {status}"
        if error:
            message = f"{message}: {error}"
        if detail:
            message = f"{message} - {detail}"
        super().__init__(message, details)
        self.status = status
        self.error = error
        self.detail = detail


class BatchError(SpeechmaticsError):
    """Raised when batch processing fails."""

    pass


class JobError(SpeechmaticsError):
    """Raised when there's an error with a job."""

    pass


class TimeoutError(SpeechmaticsError):
    """Raised when an operation times out."""

    pass


class TranscriptionError(SpeechmaticsError):
    """Raised when the realtime service reports an error."""

    pass


class AudioError(SpeechmaticsError):
    """Raised when there's an issue with audio data."""

    pass


class SessionError(SpeechmaticsError):
    """Raised when there's an error with the session state."""

    pass
