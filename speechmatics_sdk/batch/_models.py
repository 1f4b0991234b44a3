"""
Models for the Speechmatics batch client.

Data models, enums and configuration classes for job submission, job
management and transcript handling, following the Speechmatics batch API
schema.
"""

from __future__ import annotations

from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import fields
from enum import Enum
from typing import Any
from typing import Optional


def _without_none(items: list[tuple[str, Any]]) -> dict[str, Any]:
    return {k: v for (k, v) in items if v is not None}


def _from_known_fields(cls: Any, data: dict[str, Any]) -> Any:
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


class JobType(str, Enum):
    """Job type enumeration."""

    TRANSCRIPTION = "transcription"
    ALIGNMENT = "alignment"


class JobStatus(str, Enum):
    """
    Status values for batch transcription jobs.

    These enum values represent the different states a job can be in
    during the batch transcription.
    """

    RUNNING = "running"
    DONE = "done"
    REJECTED = "rejected"
    DELETED = "deleted"
    EXPIRED = "expired"


class OperatingPoint(str, Enum):
    """Operating point options for transcription."""

    ENHANCED = "enhanced"
    STANDARD = "standard"


class NotificationContents(str, Enum):
    """Notification content options."""

    DATA = "data"
    TEXT = "text"
    JOBINFO = "jobinfo"
    TRANSCRIPT = "transcript"
    TRANSCRIPT_JSON_V2 = "transcript.json-v2"
    TRANSCRIPT_TXT = "transcript.txt"
    TRANSCRIPT_SRT = "transcript.srt"
    ALIGNMENT = "alignment"
    ALIGNMENT_WORD_START_AND_END = "alignment.word_start_and_end"
    ALIGNMENT_ONE_PER_LINE = "alignment.one_per_line"


class NotificationMethod(str, Enum):
    "Notification method."

    POST = "post"
    PUT = "put"


class FormatType(str, Enum):
    """
    Output formats for transcript retrieval.

    The value is what the API expects in the ``format`` query parameter.
    """

    JSON = "json-v2"
    TXT = "txt"
    SRT = "srt"


@dataclass
class TranscriptionConfig:
    """
    What to transcribe and how.

    Only ``language`` is required by the service; every field left as None
    is omitted from the submitted config.

    Attributes:
        language: ISO 639-1 code of the spoken language. Defaults to "en".
        operating_point: Acoustic model, "standard" or "enhanced".
        output_locale: RFC-5646 locale for spelling in the output (e.g. "en-GB").
        diarization: "none", "speaker" or "channel".
        additional_vocab: Custom words, each with optional ``sounds_like`` spellings.
        punctuation_overrides: Allowed punctuation marks and sensitivity.
        domain: Domain-specific language pack, e.g. "finance".
        enable_entities: Format numbers, dates and currencies as entities.
        speaker_diarization_config: Tuning for speaker diarization.
        channel_diarization_labels: One label per audio channel.
    """

    language: str = "en"
    operating_point: OperatingPoint = OperatingPoint.ENHANCED
    output_locale: Optional[str] = None
    diarization: Optional[str] = None
    additional_vocab: Optional[list[dict[str, Any]]] = None
    punctuation_overrides: Optional[dict[str, Any]] = None
    domain: Optional[str] = None
    enable_entities: Optional[bool] = None
    speaker_diarization_config: Optional[dict[str, Any]] = None
    channel_diarization_labels: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        return asdict(self, dict_factory=_without_none)


@dataclass
class AlignmentConfig:
    """Configuration for alignment jobs."""

    language: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FetchData:
    """Location of remote audio the service should fetch instead of an upload."""

    url: str
    """URL to fetch"""

    auth_headers: Optional[list[str]] = None
    """
    Additional headers added to the fetch request, for example an OAuth2
    bearer token for the remote storage.
    """

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class NotificationConfig:
    """Configuration for job completion notifications."""

    url: str
    contents: Optional[list[NotificationContents]] = None
    auth_headers: Optional[list[str]] = None
    method: Optional[NotificationMethod] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class TrackingConfig:
    """Configuration for job tracking metadata."""

    title: Optional[str] = None
    reference: Optional[str] = None
    tags: Optional[list[str]] = None
    details: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class TranslationConfig:
    """Configuration for translation features."""

    target_languages: list[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class LanguageIdentificationConfig:
    """Configuration for language identification."""

    expected_languages: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class SummarizationConfig:
    """Configuration for summarization features."""

    content_type: Optional[str] = None
    summary_length: Optional[str] = None
    summary_type: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class SentimentAnalysisConfig:
    """Configuration for sentiment analysis. The API takes an empty object."""

    def to_dict(self) -> dict[str, Any]:
        return {}


@dataclass
class TopicDetectionConfig:
    """Configuration for topic detection."""

    topics: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


@dataclass
class AutoChaptersConfig:
    """Configuration for automatic chapter generation. The API takes an empty object."""

    def to_dict(self) -> dict[str, Any]:
        return {}


@dataclass
class AudioEventsConfig:
    """Configuration for audio event detection."""

    types: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self, dict_factory=_without_none)


_SECTION_TYPES: dict[str, Any] = {
    "fetch_data": FetchData,
    "transcription_config": TranscriptionConfig,
    "alignment_config": AlignmentConfig,
    "tracking": TrackingConfig,
    "translation_config": TranslationConfig,
    "language_identification_config": LanguageIdentificationConfig,
    "summarization_config": SummarizationConfig,
    "sentiment_analysis_config": SentimentAnalysisConfig,
    "topic_detection_config": TopicDetectionConfig,
    "auto_chapters_config": AutoChaptersConfig,
    "audio_events_config": AudioEventsConfig,
}


@dataclass
class JobConfig:
    """
    The ``config`` part of a job submission.

    Each optional section is sent only when set. ``fetch_data`` replaces an
    uploaded file with a URL the service downloads itself.

    Examples:
        >>> config = JobConfig(
        ...     fetch_data=FetchData(url="https://example.com/audio.mp3"),
        ...     transcription_config=TranscriptionConfig(language="de"),
        ... )
    """

    type: JobType = JobType.TRANSCRIPTION
    fetch_data: Optional[FetchData] = None
    transcription_config: Optional[TranscriptionConfig] = None
    alignment_config: Optional[AlignmentConfig] = None
    notification_config: Optional[list[NotificationConfig]] = None
    tracking: Optional[TrackingConfig] = None
    translation_config: Optional[TranslationConfig] = None
    language_identification_config: Optional[LanguageIdentificationConfig] = None
    summarization_config: Optional[SummarizationConfig] = None
    sentiment_analysis_config: Optional[SentimentAnalysisConfig] = None
    topic_detection_config: Optional[TopicDetectionConfig] = None
    auto_chapters_config: Optional[AutoChaptersConfig] = None
    audio_events_config: Optional[AudioEventsConfig] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert job config to dictionary for API submission."""
        config: dict[str, Any] = {"type": JobType(self.type).value}

        for field in fields(self):
            value = getattr(self, field.name)
            if field.name == "type" or value is None:
                continue
            if field.name == "notification_config":
                config[field.name] = [nc.to_dict() for nc in value]
            else:
                config[field.name] = value.to_dict()

        return config

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobConfig:
        """Create JobConfig from dictionary."""
        kwargs: dict[str, Any] = {"type": JobType(data.get("type", JobType.TRANSCRIPTION))}

        for name, section_type in _SECTION_TYPES.items():
            if data.get(name) is not None:
                kwargs[name] = _from_known_fields(section_type, data[name])

        if data.get("notification_config"):
            kwargs["notification_config"] = [_from_known_fields(NotificationConfig, nc) for nc in data["notification_config"]]

        return cls(**kwargs)


@dataclass
class JobErrorInfo:
    """An error recorded against a job by the service."""

    timestamp: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobErrorInfo:
        return _from_known_fields(cls, data)  # type: ignore[no-any-return]


@dataclass
class JobInfo:
    """The ``job`` block embedded in a JSON transcript."""

    id: str
    created_at: str
    data_name: str
    duration: Optional[float] = None
    text_name: Optional[str] = None
    tracking: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobInfo:
        return _from_known_fields(cls, {"created_at": "", "data_name": "", **data})  # type: ignore[no-any-return]


@dataclass
class JobDetails:
    """
    A job as reported by the jobs endpoints.

    ``data_name`` is the uploaded file name, or the URL for fetched audio.
    ``errors`` is only present for jobs the service could not process.
    """

    id: str
    status: JobStatus
    created_at: str
    data_name: str
    duration: Optional[float] = None
    config: Optional[JobConfig] = None
    errors: Optional[list[JobErrorInfo]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobDetails:
        job: JobDetails = _from_known_fields(cls, {"created_at": "", "data_name": "", **data})
        job.status = JobStatus(data["status"])
        job.config = JobConfig.from_dict(data["config"]) if data.get("config") else None
        job.errors = [JobErrorInfo.from_dict(error) for error in data.get("errors") or []] or None
        return job


@dataclass
class RecognitionMetadata:
    """
    The ``metadata`` block of a JSON transcript.

    Mostly passed through as plain dicts. ``language_pack_info`` carries the
    ``word_delimiter`` used when rendering plain text, and the ``*_errors``
    lists report add-on features that failed while the transcript succeeded.
    """

    created_at: str
    type: str
    transcription_config: Optional[dict[str, Any]] = None
    orchestrator_version: Optional[str] = None
    translation_errors: Optional[list[dict[str, Any]]] = None
    summarization_errors: Optional[list[dict[str, Any]]] = None
    sentiment_analysis_errors: Optional[list[dict[str, Any]]] = None
    topic_detection_errors: Optional[list[dict[str, Any]]] = None
    auto_chapters_errors: Optional[list[dict[str, Any]]] = None
    alignment_config: Optional[dict[str, Any]] = None
    output_config: Optional[dict[str, Any]] = None
    language_pack_info: Optional[dict[str, Any]] = None
    language_identification: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecognitionMetadata:
        defaults = {"created_at": "", "type": JobType.TRANSCRIPTION.value}
        return _from_known_fields(cls, {**defaults, **data})  # type: ignore[no-any-return]


@dataclass
class Alternative:
    """Alternative transcription result."""

    content: str
    confidence: Optional[float] = None
    language: Optional[str] = None
    speaker: Optional[str] = None
    tags: Optional[list[str]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Alternative:
        return _from_known_fields(cls, data)  # type: ignore[no-any-return]


@dataclass
class RecognitionResult:
    """Individual recognition result (word or punctuation) with alternatives."""

    type: str
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    channel: Optional[str] = None
    attaches_to: Optional[str] = None
    is_eos: Optional[bool] = None
    alternatives: Optional[list[Alternative]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecognitionResult:
        result: RecognitionResult = _from_known_fields(cls, data)
        result.alternatives = [Alternative.from_dict(alt) for alt in data.get("alternatives") or []] or None
        return result


@dataclass
class Transcript:
    """
    JSON transcript (``json-v2``) of a finished job.

    ``results`` holds one entry per word or punctuation mark. The add-on
    sections (translations, summary, topics, ...) are kept as returned and
    are None when the feature was not requested.

    Examples:
        >>> transcript = await client.get_transcript(job_id)
        >>> print(transcript.transcript_text)
    """

    format: str
    job: JobInfo
    metadata: RecognitionMetadata
    results: list[RecognitionResult]
    translations: Optional[dict[str, Any]] = None
    summary: Optional[dict[str, Any]] = None
    sentiment_analysis: Optional[dict[str, Any]] = None
    topics: Optional[dict[str, Any]] = None
    chapters: Optional[list[dict[str, Any]]] = None
    audio_events: Optional[list[dict[str, Any]]] = None
    audio_event_summary: Optional[dict[str, Any]] = None

    @property
    def transcript_text(self) -> str:
        """
        Plain text of the transcript.

        Words are joined with the language pack's word delimiter, punctuation
        attaches to the preceding word, and a new line prefixed with
        ``SPEAKER <label>:`` starts whenever the speaker changes.
        """
        word_delimiter = " "
        if self.metadata.language_pack_info and "word_delimiter" in self.metadata.language_pack_info:
            word_delimiter = self.metadata.language_pack_info["word_delimiter"]

        lines: list[str] = []
        speaker: Optional[str] = None
        parts: list[str] = []

        def flush() -> None:
            if parts:
                text = "".join(parts).strip()
                lines.append(f"SPEAKER {speaker}: {text}" if speaker else text)

        for result in self.results:
            if not result.alternatives:
                continue

            alternative = result.alternatives[0]
            if alternative.speaker != speaker:
                flush()
                parts = []
                speaker = alternative.speaker

            if not alternative.content:
                continue
            if parts and result.type != "punctuation":
                parts.append(word_delimiter)
            parts.append(alternative.content)

        flush()
        return "\n".join(lines)

    @property
    def confidence(self) -> Optional[float]:
        """Average confidence of the first alternative across all results."""
        confidences = [
            r.alternatives[0].confidence
            for r in self.results
            if r.alternatives and r.alternatives[0].confidence is not None
        ]
        return sum(confidences) / len(confidences) if confidences else None  # type: ignore[arg-type]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Transcript:
        """Create Transcript from API response dictionary."""
        return cls(
            format=data.get("format", ""),
            job=JobInfo.from_dict(data["job"]),
            metadata=RecognitionMetadata.from_dict(data.get("metadata", {})),
            results=[RecognitionResult.from_dict(result) for result in data.get("results", [])],
            translations=data.get("translations"),
            summary=data.get("summary"),
            sentiment_analysis=data.get("sentiment_analysis"),
            topics=data.get("topics"),
            chapters=data.get("chapters"),
            audio_events=data.get("audio_events"),
            audio_event_summary=data.get("audio_event_summary"),
        )


@dataclass
class ConnectionConfig:
    """
    Configuration for HTTP connection parameters.

    Attributes:
        connect_timeout: Timeout in seconds for connection establishment.
        operation_timeout: Default total timeout for API operations.
    """

    connect_timeout: float = 30.0
    operation_timeout: float = 300.0

