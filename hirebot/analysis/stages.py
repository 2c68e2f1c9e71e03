"""
Stage catalogue and status transitions for the analysis pipeline.

Each stage has one entry in STAGE_SPECS. Every lookup table below is keyed
by Stage and checked for completeness at import time, so adding a stage
without its transitions fails immediately.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..errors import UnknownStageError
from ..sessions import MediaKind, StageStatus


class Stage(str, Enum):
    CV_ANALYSIS = "cv_analysis"
    MEDIA_TRANSCRIPTION = "media_transcription"
    FACE_ANALYSIS = "face_analysis"
    TECHNICAL_ANALYSIS = "technical_analysis"
    COMMUNICATION_ANALYSIS = "communication_analysis"
    FINAL_REPORT = "final_report"


@dataclass(frozen=True)
class StageSpec:
    stage: Stage
    result_key: str
    in_progress: StageStatus
    requires: Tuple[str, ...] = ()
    attaches: Optional[str] = None  # "cv" or "media"
    fallback_eligible: bool = False
    video_only: bool = False


STAGE_SPECS: Dict[Stage, StageSpec] = {
    Stage.CV_ANALYSIS: StageSpec(
        Stage.CV_ANALYSIS, "cvAnalysis", StageStatus.ANALYZING_CV,
        attaches="cv", fallback_eligible=True,
    ),
    Stage.MEDIA_TRANSCRIPTION: StageSpec(
        Stage.MEDIA_TRANSCRIPTION, "transcription", StageStatus.TRANSCRIBING_MEDIA,
        attaches="media", fallback_eligible=True,
    ),
    Stage.FACE_ANALYSIS: StageSpec(
        Stage.FACE_ANALYSIS, "faceAnalysis", StageStatus.ANALYZING_FACE,
        attaches="media", fallback_eligible=True, video_only=True,
    ),
    Stage.TECHNICAL_ANALYSIS: StageSpec(
        Stage.TECHNICAL_ANALYSIS, "technicalAnalysis", StageStatus.ANALYZING_TECHNICAL,
        requires=("transcription", "cvAnalysis"),
    ),
    Stage.COMMUNICATION_ANALYSIS: StageSpec(
        Stage.COMMUNICATION_ANALYSIS, "communicationAnalysis", StageStatus.ANALYZING_COMMUNICATION,
        requires=("transcription",),
    ),
    Stage.FINAL_REPORT: StageSpec(
        Stage.FINAL_REPORT, "finalReport", StageStatus.GENERATING_FINAL_REPORT,
        requires=("cvAnalysis", "transcription", "technicalAnalysis", "communicationAnalysis"),
    ),
}

# (ai_status, fallback_status); None where the stage has no fallback
_COMPLETED: Dict[Stage, Dict[MediaKind, Tuple[StageStatus, Optional[StageStatus]]]] = {
    Stage.CV_ANALYSIS: {
        kind: (StageStatus.CV_ANALYZED, StageStatus.CV_ANALYZED_FALLBACK) for kind in MediaKind
    },
    Stage.MEDIA_TRANSCRIPTION: {
        MediaKind.AUDIO: (StageStatus.AUDIO_TRANSCRIBED, StageStatus.AUDIO_TRANSCRIBED_FALLBACK),
        MediaKind.VIDEO: (StageStatus.VIDEO_TRANSCRIBED, StageStatus.VIDEO_TRANSCRIBED_FALLBACK),
    },
    Stage.FACE_ANALYSIS: {
        kind: (StageStatus.FACE_ANALYZED, StageStatus.FACE_ANALYZED_FALLBACK) for kind in MediaKind
    },
    Stage.TECHNICAL_ANALYSIS: {
        kind: (StageStatus.TECHNICAL_ANALYZED, None) for kind in MediaKind
    },
    Stage.COMMUNICATION_ANALYSIS: {
        kind: (StageStatus.COMMUNICATION_ANALYZED, None) for kind in MediaKind
    },
    Stage.FINAL_REPORT: {
        kind: (StageStatus.COMPLETED, None) for kind in MediaKind
    },
}

_NEXT: Dict[Stage, Dict[MediaKind, Optional[Stage]]] = {
    Stage.CV_ANALYSIS: {kind: Stage.MEDIA_TRANSCRIPTION for kind in MediaKind},
    Stage.MEDIA_TRANSCRIPTION: {
        MediaKind.AUDIO: Stage.TECHNICAL_ANALYSIS,
        MediaKind.VIDEO: Stage.FACE_ANALYSIS,
    },
    Stage.FACE_ANALYSIS: {kind: Stage.TECHNICAL_ANALYSIS for kind in MediaKind},
    Stage.TECHNICAL_ANALYSIS: {kind: Stage.COMMUNICATION_ANALYSIS for kind in MediaKind},
    Stage.COMMUNICATION_ANALYSIS: {kind: Stage.FINAL_REPORT for kind in MediaKind},
    Stage.FINAL_REPORT: {kind: None for kind in MediaKind},
}

# Names accepted from URLs, including the short name the fallback and
# retry endpoints have always used for transcription
_STAGE_ALIASES = {"transcription": Stage.MEDIA_TRANSCRIPTION}

for _table in (STAGE_SPECS, _COMPLETED, _NEXT):
    _missing = set(Stage) - set(_table)
    if _missing:
        raise RuntimeError(f"Stage table incomplete, missing: {sorted(s.value for s in _missing)}")


def parse_stage(name: str, fallback_only: bool = False) -> Stage:
    """
    Resolve a step name from a URL.

    Raises:
        UnknownStageError: unknown name, or a stage without fallback
            when ``fallback_only`` is set
    """
    stage = _STAGE_ALIASES.get(name)
    if stage is None:
        try:
            stage = Stage(name)
        except ValueError:
            stage = None

    available = fallback_stages() if fallback_only else list(Stage)
    if stage is None or stage not in available:
        raise UnknownStageError(name, [public_name(s) for s in available])
    return stage


def public_name(stage: Stage) -> str:
    """Name used for a stage in fallback/retry URLs."""
    return "transcription" if stage is Stage.MEDIA_TRANSCRIPTION else stage.value


def fallback_stages() -> List[Stage]:
    return [stage for stage, spec in STAGE_SPECS.items() if spec.fallback_eligible]


def completed_status(stage: Stage, media_kind: MediaKind, used_fallback: bool) -> StageStatus:
    ai_status, fallback_status = _COMPLETED[stage][media_kind]
    if used_fallback:
        if fallback_status is None:
            raise ValueError(f"{stage.value} has no fallback state")
        return fallback_status
    return ai_status


def next_stage(stage: Stage, media_kind: MediaKind) -> Optional[Stage]:
    return _NEXT[stage][media_kind]


def retry_status(stage: Stage, media_kind: MediaKind, has_face_analysis: bool) -> StageStatus:
    """Status a session is rewound to before a stage is retried."""
    transcribed = completed_status(Stage.MEDIA_TRANSCRIPTION, media_kind, used_fallback=False)
    if stage is Stage.CV_ANALYSIS:
        return StageStatus.INITIALIZED
    if stage is Stage.MEDIA_TRANSCRIPTION:
        return StageStatus.CV_ANALYZED
    if stage is Stage.FACE_ANALYSIS:
        return transcribed
    if stage is Stage.TECHNICAL_ANALYSIS:
        return StageStatus.FACE_ANALYZED if has_face_analysis else transcribed
    if stage is Stage.COMMUNICATION_ANALYSIS:
        return StageStatus.TECHNICAL_ANALYZED
    if stage is Stage.FINAL_REPORT:
        return StageStatus.COMMUNICATION_ANALYZED
    raise ValueError(f"Unhandled stage: {stage}")
