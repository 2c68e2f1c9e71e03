"""
Analysis session state.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..storage import StoredFile


class MediaKind(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"


class StageStatus(str, Enum):
    """Every value ``AnalysisSession.status`` can take, in nominal order."""
    INITIALIZED = "initialized"
    ANALYZING_CV = "analyzing_cv"
    CV_ANALYZED = "cv_analyzed"
    CV_ANALYZED_FALLBACK = "cv_analyzed_fallback"
    TRANSCRIBING_MEDIA = "transcribing_media"
    AUDIO_TRANSCRIBED = "audio_transcribed"
    AUDIO_TRANSCRIBED_FALLBACK = "audio_transcribed_fallback"
    VIDEO_TRANSCRIBED = "video_transcribed"
    VIDEO_TRANSCRIBED_FALLBACK = "video_transcribed_fallback"
    ANALYZING_FACE = "analyzing_face"
    FACE_ANALYZED = "face_analyzed"
    FACE_ANALYZED_FALLBACK = "face_analyzed_fallback"
    ANALYZING_TECHNICAL = "analyzing_technical"
    TECHNICAL_ANALYZED = "technical_analyzed"
    ANALYZING_COMMUNICATION = "analyzing_communication"
    COMMUNICATION_ANALYZED = "communication_analyzed"
    GENERATING_FINAL_REPORT = "generating_final_report"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def in_progress(self) -> bool:
        """True while a stage is waiting on Gemini."""
        return self in IN_PROGRESS_STATUSES


IN_PROGRESS_STATUSES = frozenset({
    StageStatus.ANALYZING_CV,
    StageStatus.TRANSCRIBING_MEDIA,
    StageStatus.ANALYZING_FACE,
    StageStatus.ANALYZING_TECHNICAL,
    StageStatus.ANALYZING_COMMUNICATION,
    StageStatus.GENERATING_FINAL_REPORT,
})


@dataclass(frozen=True)
class SessionInputs:
    """What the user uploaded. Never changes after the session is created."""
    media_kind: MediaKind
    media_file: StoredFile
    cv_file: StoredFile
    job_description: str


@dataclass
class AnalysisSession:
    session_id: str
    inputs: SessionInputs
    status: StageStatus = StageStatus.INITIALIZED
    # result key -> markdown; a key's presence means the stage produced output
    results: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def media_kind(self) -> MediaKind:
        return self.inputs.media_kind

    @property
    def job_description(self) -> str:
        return self.inputs.job_description

    def to_dict(self) -> Dict[str, Any]:
        """Session status and results as returned by the API."""
        return {
            "sessionId": self.session_id,
            "status": self.status.value,
            "mediaType": self.media_kind.value,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "results": dict(self.results),
            "jobDescription": self.job_description,
            "analysisTypes": {
                "cv": "cvAnalysis" in self.results,
                "transcription": "transcription" in self.results,
                "faceAnalysis": "faceAnalysis" in self.results,
                "technical": "technicalAnalysis" in self.results,
                "communication": "communicationAnalysis" in self.results,
                "finalReport": "finalReport" in self.results,
            },
        }
