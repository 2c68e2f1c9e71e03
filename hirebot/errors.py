"""
Errors surfaced to API callers.

Each error carries a human-readable message plus the hints a client needs
to offer "retry" or "use fallback" without seeing provider error codes.
"""
from typing import Any, Dict, List, Optional


class WorkflowError(Exception):
    """Base class for errors returned to the caller of a workflow operation."""

    http_status = 500
    error = "Analysis failed"

    def __init__(
        self,
        message: str,
        can_retry: bool = False,
        can_use_fallback: bool = False,
        **details: Any
    ):
        super().__init__(message)
        self.message = message
        self.can_retry = can_retry
        self.can_use_fallback = can_use_fallback
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "error": self.error,
            "message": self.message,
            "canRetry": self.can_retry,
            "canUseFallback": self.can_use_fallback,
        }
        body.update({key: value for key, value in self.details.items() if value is not None})
        return body


class SessionNotFoundError(WorkflowError):
    http_status = 404
    error = "Session not found"

    def __init__(self, session_id: str):
        super().__init__(f"No analysis session with id '{session_id}'.", sessionId=session_id)


class UnknownStageError(WorkflowError):
    http_status = 400
    error = "Invalid step"

    def __init__(self, step: str, available_steps: List[str]):
        super().__init__(f"Unknown or unsupported step '{step}'.", availableSteps=available_steps)


class StagePreconditionError(WorkflowError):
    http_status = 400
    error = "Incomplete analysis"

    def __init__(self, stage: str, missing: List[str]):
        super().__init__(
            f"Cannot run {stage}: previous analysis steps not completed ({', '.join(missing)}).",
            missing=missing,
        )
        self.missing = missing


class StageNotApplicableError(WorkflowError):
    http_status = 400
    error = "Step not available"


class StageInProgressError(WorkflowError):
    http_status = 409
    error = "Step already running"

    def __init__(self, stage: str):
        super().__init__(
            f"{stage} is already running for this session. Wait for it to finish.",
            can_retry=True,
        )


class UploadTooLargeError(WorkflowError):
    http_status = 400
    error = "File too large"

    def __init__(self, field: str, limit_mb: float):
        super().__init__(
            f"The {field} file is larger than the {limit_mb:g}MB upload limit.",
            maxSize=f"{limit_mb:g}MB",
        )


class MediaTooLargeError(WorkflowError):
    http_status = 400
    error = "File too large"

    def __init__(self, media_kind: str, size_mb: float, limit_mb: float, can_use_fallback: bool = False):
        super().__init__(
            f"Please use a {media_kind} file smaller than {limit_mb:g}MB.",
            can_use_fallback=can_use_fallback,
            currentSize=f"{size_mb:.2f}MB",
            maxSize=f"{limit_mb:g}MB",
            suggestion=f"Compress your {media_kind} file or try again later.",
        )


class StageFailedError(WorkflowError):
    """The AI call behind a stage failed and no fallback applied."""

    def __init__(
        self,
        stage: str,
        message: str,
        kind: Optional[str] = None,
        http_status: int = 500,
        retry_after: Optional[int] = None,
        can_retry: bool = True,
        can_use_fallback: bool = False,
    ):
        super().__init__(
            message,
            can_retry=can_retry,
            can_use_fallback=can_use_fallback,
            retryAfter=retry_after,
        )
        self.stage = stage
        self.kind = kind
        self.http_status = http_status
        self.error = f"Failed to run {stage}"
