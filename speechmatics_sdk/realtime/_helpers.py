from __future__ import annotations

from typing import Any
from typing import Optional

from ._models import AudioEventsConfig
from ._models import AudioFormat
from ._models import ClientMessageType
from ._models import TranscriptionConfig
from ._models import TranslationConfig


def build_start_recognition_message(
    transcription_config: TranscriptionConfig,
    audio_format: AudioFormat,
    translation_config: Optional[TranslationConfig] = None,
    audio_events_config: Optional[AudioEventsConfig] = None,
) -> dict[str, Any]:
    """Build the StartRecognition message that opens a session.

    Args:
        transcription_config: The transcription configuration.
        audio_format: The audio format.
        translation_config: The translation configuration.
        audio_events_config: The audio events configuration.

    Returns:
        The StartRecognition message.
    """
    message: dict[str, Any] = {
        "message": ClientMessageType.START_RECOGNITION.value,
        "audio_format": audio_format.to_dict(),
        "transcription_config": transcription_config.to_dict(),
    }

    if translation_config:
        message["translation_config"] = translation_config.to_dict()

    if audio_events_config:
        message["audio_events_config"] = audio_events_config.to_dict()

    return message


def build_end_of_stream_message(last_seq_no: int) -> dict[str, Any]:
    return {"message": ClientMessageType.END_OF_STREAM.value, "last_seq_no": last_seq_no}


def build_set_recognition_config_message(transcription_config: TranscriptionConfig) -> dict[str, Any]:
    return {
        "message": ClientMessageType.SET_RECOGNITION_CONFIG.value,
        "transcription_config": transcription_config.to_dict(),
    }
