"""
FastAPI application for the HireBot interview analysis backend.

Endpoints:
- POST /api/initialize - Upload a recording, a CV and a job description
- POST /api/analyze-cv/{session_id} ... /api/final-report/{session_id} - Run a stage
- POST /api/fallback/{session_id}/{step} - Use placeholder content for a stage
- POST /api/retry/{session_id}/{step} - Run a stage again
- GET /api/session/{session_id} - Session status and results
- GET /api/steps - Workflow steps
- GET /api/status - Health check
"""
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from hirebot import __version__
from hirebot.analysis import Stage, StageOutcome, parse_stage
from hirebot.api import (
    AnalysisService,
    ErrorResponse,
    HealthResponse,
    InitializeResponse,
    ProcessingInfo,
    SessionResponse,
    StageResponse,
    StepsResponse,
    describe_upload,
    get_service,
)
from hirebot.errors import WorkflowError
from hirebot.storage import UPLOAD_FORMAT_HINTS, is_allowed_upload
from hirebot.utils.config import API_HOST, API_PORT, FRONTEND_ORIGINS
from hirebot.utils.logger import setup_logger

logger = setup_logger("fastapi_app")

# Create FastAPI app
app = FastAPI(
    title="HireBot API",
    description="Step-by-step AI analysis of interview recordings, CVs and job descriptions",
    version=__version__
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

STEPS = [
    {
        "step": 1,
        "name": "initialize",
        "description": "Upload audio/video, CV, and job description",
        "endpoint": "/api/initialize",
        "method": "POST",
    },
    {
        "step": 2,
        "name": "cv_analysis",
        "description": "Analyze CV content",
        "endpoint": "/api/analyze-cv/{session_id}",
        "method": "POST",
    },
    {
        "step": 3,
        "name": "media_transcription",
        "description": "Transcribe and summarize audio/video",
        "endpoint": "/api/transcribe-media/{session_id}",
        "method": "POST",
    },
    {
        "step": 4,
        "name": "face_analysis",
        "description": "Analyze facial expressions (video only)",
        "endpoint": "/api/face-analysis/{session_id}",
        "method": "POST",
        "conditional": "Video files only",
    },
    {
        "step": 5,
        "name": "technical_analysis",
        "description": "Perform technical competency analysis",
        "endpoint": "/api/technical-analysis/{session_id}",
        "method": "POST",
    },
    {
        "step": 6,
        "name": "communication_analysis",
        "description": "Analyze communication and speaking style",
        "endpoint": "/api/communication-analysis/{session_id}",
        "method": "POST",
    },
    {
        "step": 7,
        "name": "final_report",
        "description": "Generate comprehensive final report",
        "endpoint": "/api/final-report/{session_id}",
        "method": "POST",
    },
]

FALLBACK_NOTE = "Fallback analysis used due to API overload. Retry later for AI analysis."
FORCED_FALLBACK_NOTE = "Fallback mode activated. Retry with AI when service is available."

# Bodies produced by workflow_error_handler
STAGE_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Step not applicable, prerequisites missing or file too large"},
    404: {"model": ErrorResponse, "description": "Session not found"},
    409: {"model": ErrorResponse, "description": "Step already running for this session"},
    429: {"model": ErrorResponse, "description": "Rate limited by Gemini"},
    500: {"model": ErrorResponse, "description": "Step failed"},
    503: {"model": ErrorResponse, "description": "Gemini overloaded or not configured"},
}


@app.on_event("startup")
async def startup_event():
    """Initialize service on startup."""
    logger.info("🚀 Starting HireBot API...")
    service = get_service()
    if not service.initialize():
        logger.error("⚠️ Gemini is not configured - analysis steps will fail until GEMINI_API_KEY is set")


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def _stage_response(service: AnalysisService, outcome: StageOutcome, forced: bool = False) -> StageResponse:
    """Build the response for a stage run, retry or forced fallback."""
    media_stage = outcome.file_size_mb is not None
    processing_info = ProcessingInfo(
        used_fallback=outcome.used_fallback,
        status="fallback_mode" if outcome.used_fallback else "ai_processed",
        media_type=outcome.media_kind.value if media_stage else None,
        file_size_mb=round(outcome.file_size_mb, 2) if media_stage else None,
    )

    if forced:
        note = FORCED_FALLBACK_NOTE
    elif outcome.used_fallback:
        note = FALLBACK_NOTE
    else:
        note = None

    extra = {outcome.result_key: outcome.content}
    if outcome.stage is Stage.FINAL_REPORT:
        session = service.workflow.get_session(outcome.session_id)
        extra["message"] = "Interview analysis completed successfully"
        extra["analysis_types"] = session.to_dict()["analysisTypes"]

    return StageResponse(
        session_id=outcome.session_id,
        stage=outcome.stage.value,
        result_key=outcome.result_key,
        status=outcome.status.value,
        next_step=outcome.next_stage.value if outcome.next_stage else None,
        processing_info=processing_info,
        mode="fallback" if forced else None,
        note=note,
        **extra
    )


async def _run_stage(service: AnalysisService, session_id: str, stage: Stage) -> StageResponse:
    outcome = await service.workflow.run_stage(session_id, stage)
    return _stage_response(service, outcome)


@app.get("/", tags=["General"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "HireBot API",
        "version": __version__,
        "docs": "/docs",
        "steps": "/api/steps",
        "health": "/api/status"
    }


@app.post("/api/initialize", response_model=InitializeResponse, tags=["Session"],
          responses={400: {"model": ErrorResponse, "description": "Upload rejected as too large"}})
async def initialize_session(
    audio: Optional[UploadFile] = File(None),
    video: Optional[UploadFile] = File(None),
    cv: Optional[UploadFile] = File(None),
    job_description: Optional[str] = Form(None, alias="jobDescription"),
    service: AnalysisService = Depends(get_service),
):
    """
    Start an analysis session.

    Expects an audio or video recording, a CV file and the job description.
    Video wins when both recordings are sent.
    """
    if (audio is None and video is None) or cv is None or not (job_description or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required files or job description"
        )

    uploads = {"video": video, "audio": audio, "cv": cv}
    for field, upload in uploads.items():
        if upload is not None and not is_allowed_upload(field, upload.content_type):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid {field} file type '{upload.content_type}'. {UPLOAD_FORMAT_HINTS[field]}"
            )

    created = await service.create_session(cv, job_description.strip(), audio=audio, video=video)
    media = created["media"]
    logger.info(f"Session {created['session_id']} created with {media.original_name} ({describe_upload(media)})")

    return InitializeResponse(
        session_id=created["session_id"],
        message="Analysis session initialized successfully",
        files={
            "media": {
                "type": "video" if video is not None else "audio",
                "name": media.original_name,
                "size": describe_upload(media),
            },
            "cv": created["cv"].original_name,
        },
    )


@app.post("/api/analyze-cv/{session_id}", response_model=StageResponse, tags=["Analysis"], responses=STAGE_ERROR_RESPONSES)
async def analyze_cv(session_id: str, service: AnalysisService = Depends(get_service)):
    """Step 2: analyze the CV against the job description."""
    return await _run_stage(service, session_id, Stage.CV_ANALYSIS)


@app.post("/api/transcribe-media/{session_id}", response_model=StageResponse, tags=["Analysis"], responses=STAGE_ERROR_RESPONSES)
async def transcribe_media(session_id: str, service: AnalysisService = Depends(get_service)):
    """Step 3: transcribe and summarize the interview recording."""
    return await _run_stage(service, session_id, Stage.MEDIA_TRANSCRIPTION)


@app.post("/api/face-analysis/{session_id}", response_model=StageResponse, tags=["Analysis"], responses=STAGE_ERROR_RESPONSES)
async def face_analysis(session_id: str, service: AnalysisService = Depends(get_service)):
    """Step 4: non-verbal analysis. Video sessions only."""
    return await _run_stage(service, session_id, Stage.FACE_ANALYSIS)


@app.post("/api/technical-analysis/{session_id}", response_model=StageResponse, tags=["Analysis"], responses=STAGE_ERROR_RESPONSES)
async def technical_analysis(session_id: str, service: AnalysisService = Depends(get_service)):
    """Step 5: technical competency analysis. Needs the CV analysis and transcription."""
    return await _run_stage(service, session_id, Stage.TECHNICAL_ANALYSIS)


@app.post("/api/communication-analysis/{session_id}", response_model=StageResponse, tags=["Analysis"], responses=STAGE_ERROR_RESPONSES)
async def communication_analysis(session_id: str, service: AnalysisService = Depends(get_service)):
    """Step 6: communication and speaking style. Needs the transcription."""
    return await _run_stage(service, session_id, Stage.COMMUNICATION_ANALYSIS)


@app.post("/api/final-report/{session_id}", response_model=StageResponse, tags=["Analysis"], responses=STAGE_ERROR_RESPONSES)
async def final_report(session_id: str, service: AnalysisService = Depends(get_service)):
    """Step 7: final hiring report. Needs every earlier result except face analysis."""
    return await _run_stage(service, session_id, Stage.FINAL_REPORT)


@app.post("/api/fallback/{session_id}/{step}", response_model=StageResponse, tags=["Recovery"], responses=STAGE_ERROR_RESPONSES)
async def use_fallback(session_id: str, step: str, service: AnalysisService = Depends(get_service)):
    """
    Store placeholder content for a step without calling Gemini.

    Available for cv_analysis, transcription and face_analysis.
    """
    stage = parse_stage(step, fallback_only=True)
    outcome = service.workflow.force_fallback(session_id, stage)
    return _stage_response(service, outcome, forced=True)


@app.post("/api/retry/{session_id}/{step}", response_model=StageResponse, tags=["Recovery"], responses=STAGE_ERROR_RESPONSES)
async def retry_step(session_id: str, step: str, service: AnalysisService = Depends(get_service)):
    """Run a step again, replacing its previous result."""
    stage = parse_stage(step)
    outcome = await service.workflow.retry_stage(session_id, stage)
    return _stage_response(service, outcome)


@app.get("/api/session/{session_id}", response_model=SessionResponse, tags=["Session"],
         responses={404: STAGE_ERROR_RESPONSES[404]})
async def get_session(session_id: str, service: AnalysisService = Depends(get_service)):
    """Session status, timestamps and every result produced so far."""
    return service.workflow.get_session(session_id).to_dict()


@app.get("/api/steps", response_model=StepsResponse, tags=["General"])
async def list_steps():
    """Workflow steps in the order they are meant to run."""
    return {"steps": STEPS}


@app.get("/api/status", response_model=HealthResponse, tags=["General"])
async def health_check(service: AnalysisService = Depends(get_service)):
    """
    Health check endpoint.

    Pings Gemini once. Returns 503 with status "degraded" if the ping fails.
    """
    gemini = await service.check_api()
    healthy = gemini["status"] == "connected"
    body = HealthResponse(
        status="healthy" if healthy else "degraded",
        gemini_api=gemini,
        server=service.server_status(),
    )
    if healthy:
        return body
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


if __name__ == "__main__":
    uvicorn.run(app, host=API_HOST, port=API_PORT)
