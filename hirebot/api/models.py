"""
FastAPI request and response models.

Fields are snake_case in Python and camelCase on the wire.
"""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class MediaFileInfo(CamelModel):
    """Uploaded recording summary."""
    type: str = Field(..., description="Media kind: audio or video")
    name: str = Field(..., description="Original filename")
    size: str = Field(..., description="Size in MB, e.g. '5.00MB'")


class UploadedFiles(CamelModel):
    media: MediaFileInfo = Field(..., description="Interview recording")
    cv: str = Field(..., description="Original CV filename")


class InitializeResponse(CamelModel):
    """Response model for session creation."""
    success: bool = Field(True, description="Whether the session was created")
    session_id: str = Field(..., description="Analysis session ID")
    message: str = Field(..., description="Status message")
    files: UploadedFiles = Field(..., description="Summary of the stored uploads")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "sessionId": "6f1c2d4e-0b7a-4c52-9d1e-2f3a4b5c6d7e",
                "message": "Analysis session initialized successfully",
                "files": {
                    "media": {"type": "video", "name": "interview.mp4", "size": "5.00MB"},
                    "cv": "jane_doe_cv.pdf"
                }
            }
        }


class ProcessingInfo(CamelModel):
    """How a stage result was produced."""
    used_fallback: bool = Field(..., description="True when the result is placeholder content")
    status: str = Field(..., description="ai_processed or fallback_mode")
    media_type: Optional[str] = Field(None, description="Media kind (media stages only)")
    file_size_mb: Optional[float] = Field(None, description="Media size in MB (media stages only)")


class StageResponse(CamelModel):
    """Response model for a stage run, retry or forced fallback."""
    success: bool = Field(True, description="Whether the stage produced a result")
    session_id: str = Field(..., description="Analysis session ID")
    stage: str = Field(..., description="Stage that ran")
    result_key: str = Field(..., description="Key under which the Markdown result is returned")
    status: str = Field(..., description="Session status after the stage")
    next_step: Optional[str] = Field(None, description="Stage that may run next, if any")
    processing_info: ProcessingInfo = Field(..., description="AI or fallback processing details")
    mode: Optional[str] = Field(None, description="'fallback' when the fallback was forced")
    note: Optional[str] = Field(None, description="Advice shown when fallback content was used")
    message: Optional[str] = Field(None, description="Completion message (final report only)")
    analysis_types: Optional[Dict[str, bool]] = Field(None, description="Which results exist (final report only)")

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "sessionId": "6f1c2d4e-0b7a-4c52-9d1e-2f3a4b5c6d7e",
                "stage": "cv_analysis",
                "resultKey": "cvAnalysis",
                "cvAnalysis": "1. **Candidate Overview**: ...",
                "status": "cv_analyzed",
                "nextStep": "media_transcription",
                "processingInfo": {"usedFallback": False, "status": "ai_processed"},
                "note": None
            }
        }
        # the result itself is an extra field named by result_key
        extra = "allow"


class SessionResponse(CamelModel):
    """Response model for session status and results."""
    session_id: str = Field(..., description="Analysis session ID")
    status: str = Field(..., description="Current stage status")
    media_type: str = Field(..., description="audio or video")
    created_at: str = Field(..., description="Session creation time")
    completed_at: Optional[str] = Field(None, description="Final report time")
    results: Dict[str, str] = Field(..., description="Markdown results keyed by result key")
    job_description: str = Field(..., description="Job description supplied at creation")
    analysis_types: Dict[str, bool] = Field(..., description="Which results exist")


class StepInfo(CamelModel):
    step: int = Field(..., description="Position in the workflow")
    name: str = Field(..., description="Step name")
    description: str = Field(..., description="What the step does")
    endpoint: str = Field(..., description="Route that runs the step")
    method: str = Field(..., description="HTTP method")
    conditional: Optional[str] = Field(None, description="When the step applies")


class StepsResponse(CamelModel):
    steps: List[StepInfo] = Field(..., description="Workflow steps in order")


class ApiStatus(CamelModel):
    status: str = Field(..., description="connected or error")
    response_time: Optional[str] = Field(None, description="Ping time, e.g. '830ms'")
    error: Optional[str] = Field(None, description="Failure reason")


class ServerStatus(CamelModel):
    uptime: float = Field(..., description="Seconds since startup")
    active_sessions: int = Field(..., description="Sessions currently held in memory")
    timestamp: str = Field(..., description="Server time")


class HealthResponse(CamelModel):
    """Response model for the health check."""
    status: str = Field(..., description="healthy or degraded")
    gemini_api: ApiStatus = Field(..., description="Gemini connectivity")
    server: ServerStatus = Field(..., description="Server state")


class ErrorResponse(CamelModel):
    """Body returned for every workflow failure."""
    error: str = Field(..., description="Short error title")
    message: str = Field(..., description="Human-readable explanation")
    can_retry: bool = Field(False, description="Whether retrying may succeed")
    can_use_fallback: bool = Field(False, description="Whether a forced fallback is available")

    class Config:
        # missing, retryAfter, currentSize, ... depending on the error
        extra = "allow"
