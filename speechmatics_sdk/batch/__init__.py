from ._async_client import AsyncClient
from ._models import AlignmentConfig
from ._models import Alternative
from ._models import AudioEventsConfig
from ._models import AutoChaptersConfig
from ._models import ConnectionConfig
from ._models import FetchData
from ._models import FormatType
from ._models import JobConfig
from ._models import JobDetails
from ._models import JobErrorInfo
from ._models import JobInfo
from ._models import JobStatus
from ._models import JobType
from ._models import LanguageIdentificationConfig
from ._models import NotificationConfig
from ._models import NotificationContents
from ._models import NotificationMethod
from ._models import OperatingPoint
from ._models import RecognitionMetadata
from ._models import RecognitionResult
from ._models import SentimentAnalysisConfig
from ._models import SummarizationConfig
from ._models import TopicDetectionConfig
from ._models import TrackingConfig
from ._models import Transcript
from ._models import TranscriptionConfig
from ._models import TranslationConfig

__all__ = [
    "AlignmentConfig",
    "Alternative",
    "AsyncClient",
    "AudioEventsConfig",
    "AutoChaptersConfig",
    "ConnectionConfig",
    "FetchData",
    "FormatType",
    "JobConfig",
    "JobDetails",
    "JobErrorInfo",
    "JobInfo",
    "JobStatus",
    "JobType",
    "LanguageIdentificationConfig",
    "NotificationConfig",
    "NotificationContents",
    "NotificationMethod",
    "OperatingPoint",
    "RecognitionMetadata",
    "RecognitionResult",
    "SentimentAnalysisConfig",
    "SummarizationConfig",
    "TopicDetectionConfig",
    "TrackingConfig",
    "Transcript",
    "TranscriptionConfig",
    "TranslationConfig",
]
