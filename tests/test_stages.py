"""
Tests for the stage catalogue and status transitions.
"""
import pytest

from hirebot.analysis import STAGE_SPECS, Stage, fallback_stages, parse_stage, public_name
from hirebot.analysis.stages import completed_status, next_stage, retry_status
from hirebot.errors import UnknownStageError
from hirebot.sessions import MediaKind, StageStatus


def test_transcription_alias():
    assert parse_stage("transcription") is Stage.MEDIA_TRANSCRIPTION
    assert parse_stage("media_transcription") is Stage.MEDIA_TRANSCRIPTION
    assert public_name(Stage.MEDIA_TRANSCRIPTION) == "transcription"


def test_unknown_stage_lists_available_steps():
    with pytest.raises(UnknownStageError) as exc_info:
        parse_stage("summary")

    body = exc_info.value.to_dict()
    assert body["error"] == "Invalid step"
    assert "final_report" in body["availableSteps"]


def test_fallback_only_rejects_stages_without_fallback():
    assert parse_stage("face_analysis", fallback_only=True) is Stage.FACE_ANALYSIS
    with pytest.raises(UnknownStageError):
        parse_stage("technical_analysis", fallback_only=True)


def test_fallback_eligible_stages():
    assert fallback_stages() == [Stage.CV_ANALYSIS, Stage.MEDIA_TRANSCRIPTION, Stage.FACE_ANALYSIS]


def test_result_keys():
    assert [STAGE_SPECS[stage].result_key for stage in Stage] == [
        "cvAnalysis", "transcription", "faceAnalysis",
        "technicalAnalysis", "communicationAnalysis", "finalReport",
    ]


@pytest.mark.parametrize("stage, kind, expected", [
    (Stage.CV_ANALYSIS, MediaKind.AUDIO, Stage.MEDIA_TRANSCRIPTION),
    (Stage.MEDIA_TRANSCRIPTION, MediaKind.AUDIO, Stage.TECHNICAL_ANALYSIS),
    (Stage.MEDIA_TRANSCRIPTION, MediaKind.VIDEO, Stage.FACE_ANALYSIS),
    (Stage.FACE_ANALYSIS, MediaKind.VIDEO, Stage.TECHNICAL_ANALYSIS),
    (Stage.TECHNICAL_ANALYSIS, MediaKind.VIDEO, Stage.COMMUNICATION_ANALYSIS),
    (Stage.COMMUNICATION_ANALYSIS, MediaKind.AUDIO, Stage.FINAL_REPORT),
    (Stage.FINAL_REPORT, MediaKind.VIDEO, None),
])
def test_next_stage(stage, kind, expected):
    assert next_stage(stage, kind) is expected


def test_completed_status_by_media_kind():
    assert completed_status(Stage.MEDIA_TRANSCRIPTION, MediaKind.VIDEO, False) is StageStatus.VIDEO_TRANSCRIBED
    assert completed_status(Stage.MEDIA_TRANSCRIPTION, MediaKind.AUDIO, True) is StageStatus.AUDIO_TRANSCRIBED_FALLBACK
    assert completed_status(Stage.FINAL_REPORT, MediaKind.AUDIO, False) is StageStatus.COMPLETED


def test_completed_status_without_fallback_state():
    with pytest.raises(ValueError):
        completed_status(Stage.TECHNICAL_ANALYSIS, MediaKind.VIDEO, True)


@pytest.mark.parametrize("stage, kind, has_face, expected", [
    (Stage.CV_ANALYSIS, MediaKind.VIDEO, False, StageStatus.INITIALIZED),
    (Stage.MEDIA_TRANSCRIPTION, MediaKind.AUDIO, False, StageStatus.CV_ANALYZED),
    (Stage.FACE_ANALYSIS, MediaKind.VIDEO, False, StageStatus.VIDEO_TRANSCRIBED),
    (Stage.TECHNICAL_ANALYSIS, MediaKind.VIDEO, True, StageStatus.FACE_ANALYZED),
    (Stage.TECHNICAL_ANALYSIS, MediaKind.AUDIO, False, StageStatus.AUDIO_TRANSCRIBED),
    (Stage.COMMUNICATION_ANALYSIS, MediaKind.AUDIO, False, StageStatus.TECHNICAL_ANALYZED),
    (Stage.FINAL_REPORT, MediaKind.VIDEO, True, StageStatus.COMMUNICATION_ANALYZED),
])
def test_retry_status(stage, kind, has_face, expected):
    assert retry_status(stage, kind, has_face) is expected
