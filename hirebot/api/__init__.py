"""
FastAPI API modules.
"""
from .models import (
    InitializeResponse,
    UploadedFiles,
    MediaFileInfo,
    ProcessingInfo,
    StageResponse,
    SessionResponse,
    StepInfo,
    StepsResponse,
    ApiStatus,
    ServerStatus,
    HealthResponse,
    ErrorResponse
)
from .service import AnalysisService, get_service, describe_upload

__all__ = [
    'InitializeResponse',
    'UploadedFiles',
    'MediaFileInfo',
    'ProcessingInfo',
    'StageResponse',
    'SessionResponse',
    'StepInfo',
    'StepsResponse',
    'ApiStatus',
    'ServerStatus',
    'HealthResponse',
    'ErrorResponse',
    'AnalysisService',
    'get_service',
    'describe_upload'
]
