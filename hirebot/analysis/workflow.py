"""
Interview Analysis Workflow.

Runs the analysis stages for a session:
- Check the stage applies to the session and its prerequisites exist
- Call Gemini with the stage's prompt, attachment and attempt budget
- Substitute fallback content when Gemini is overloaded
- Record the result and status through the session store
- Report which stage can run next

One stage runs at a time per (session, stage) pair. A second concurrent
request for the same pair is rejected rather than queued.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Set, Tuple

from .fallback import generate_fallback
from .prompts import build_prompt
from .stages import (
    STAGE_SPECS,
    Stage,
    StageSpec,
    completed_status,
    fallback_stages,
    next_stage,
    public_name,
    retry_status,
)
from ..errors import (
    MediaTooLargeError,
    SessionNotFoundError,
    StageFailedError,
    StageInProgressError,
    StageNotApplicableError,
    StagePreconditionError,
    UnknownStageError,
)
from ..llm import Attachment, ErrorKind, GatewayError
from ..sessions import AnalysisSession, MediaKind, SessionInputs, SessionStore, StageStatus
from ..storage import StoredFile
from ..utils.config import (
    UPLOAD_LIMIT_MB,
    PROCESSING_LIMIT_MB,
    RATE_LIMIT_RETRY_AFTER_SECONDS,
    STAGE_ATTEMPTS,
)
from ..utils.logger import setup_logger

logger = setup_logger("analysis_workflow")


@dataclass
class StageOutcome:
    """Result of running (or falling back on) one stage."""
    session_id: str
    stage: Stage
    result_key: str
    content: str
    used_fallback: bool
    status: StageStatus
    next_stage: Optional[Stage]
    media_kind: MediaKind
    file_size_mb: Optional[float] = None


class AnalysisWorkflow:
    """
    Ordered analysis stages over sessions held in a SessionStore.
    """

    def __init__(
        self,
        store: SessionStore,
        gateway=None,
        stage_attempts: Optional[Dict[str, int]] = None,
        upload_limits_mb: Optional[Dict[str, float]] = None,
        processing_limits_mb: Optional[Dict[str, float]] = None,
    ):
        """
        Initialize the workflow.

        Args:
            store: Session store; the only place session state is changed
            gateway: Object with an async ``invoke(prompt, attachment, max_attempts)``.
                If None, every AI stage fails with a "not configured" error.
            stage_attempts: Attempt budget per stage name. Default: config.
            upload_limits_mb: Upload cap per media kind. Default: config.
            processing_limits_mb: Processing cap per media kind. Default: config.
        """
        self._store = store
        self._gateway = gateway
        self._attempts = dict(STAGE_ATTEMPTS, **(stage_attempts or {}))
        self._upload_limits = upload_limits_mb or UPLOAD_LIMIT_MB
        self._processing_limits = processing_limits_mb or PROCESSING_LIMIT_MB
        self._in_flight: Set[Tuple[str, Stage]] = set()

        logger.info(f"AnalysisWorkflow initialized (gateway={'yes' if gateway else 'none'})")

    # ========================================
    # Sessions
    # ========================================

    def create_session(self, inputs: SessionInputs) -> str:
        return self._store.create(inputs)

    def get_session(self, session_id: str) -> AnalysisSession:
        session = self._store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    # ========================================
    # Stage operations
    # ========================================

    async def analyze_cv(self, session_id: str) -> StageOutcome:
        return await self.run_stage(session_id, Stage.CV_ANALYSIS)

    async def transcribe_media(self, session_id: str) -> StageOutcome:
        return await self.run_stage(session_id, Stage.MEDIA_TRANSCRIPTION)

    async def analyze_face(self, session_id: str) -> StageOutcome:
        return await self.run_stage(session_id, Stage.FACE_ANALYSIS)

    async def analyze_technical(self, session_id: str) -> StageOutcome:
        return await self.run_stage(session_id, Stage.TECHNICAL_ANALYSIS)

    async def analyze_communication(self, session_id: str) -> StageOutcome:
        return await self.run_stage(session_id, Stage.COMMUNICATION_ANALYSIS)

    async def generate_final_report(self, session_id: str) -> StageOutcome:
        return await self.run_stage(session_id, Stage.FINAL_REPORT)

    async def run_stage(self, session_id: str, stage: Stage) -> StageOutcome:
        """
        Run a stage with the AI gateway.

        Raises:
            SessionNotFoundError, StageNotApplicableError, StagePreconditionError:
                rejected before any state change
            StageInProgressError: the same stage is already running
            MediaTooLargeError, StageFailedError: session is left in ``error``
        """
        return await self._run(session_id, stage, reset=False)

    async def retry_stage(self, session_id: str, stage: Stage) -> StageOutcome:
        """
        Rewind the session to the stage's predecessor, drop the stage's
        result and run it again. Other stages' results are untouched.
        """
        return await self._run(session_id, stage, reset=True)

    def force_fallback(self, session_id: str, stage: Stage) -> StageOutcome:
        """Store placeholder content for a stage without calling Gemini."""
        spec = STAGE_SPECS[stage]
        if not spec.fallback_eligible:
            raise UnknownStageError(public_name(stage), [public_name(s) for s in fallback_stages()])

        session = self.get_session(session_id)
        self._check_applicable(session, spec)
        self._check_prerequisites(session, spec)
        if (session_id, stage) in self._in_flight:
            raise StageInProgressError(stage.value)

        logger.info(f"Using fallback mode for step: {stage.value} (session {session_id})")
        return self._store_result(
            session_id, spec, self._fallback_content(session, spec),
            used_fallback=True, file_size_mb=self._media_size(session, spec),
        )

    # ========================================
    # Internals
    # ========================================

    async def _run(self, session_id: str, stage: Stage, reset: bool) -> StageOutcome:
        spec = STAGE_SPECS[stage]
        session = self.get_session(session_id)
        self._check_applicable(session, spec)
        self._check_prerequisites(session, spec)

        key = (session_id, stage)
        if key in self._in_flight:
            raise StageInProgressError(stage.value)
        self._in_flight.add(key)
        try:
            if reset:
                self._reset_stage(session_id, spec)
            return await self._execute(session_id, spec)
        finally:
            self._in_flight.discard(key)

    def _check_applicable(self, session: AnalysisSession, spec: StageSpec):
        if spec.video_only and session.media_kind is not MediaKind.VIDEO:
            raise StageNotApplicableError(
                "Face analysis is only available for video files. "
                "This session does not contain a video file."
            )

    def _check_prerequisites(self, session: AnalysisSession, spec: StageSpec):
        missing = [key for key in spec.requires if key not in session.results]
        if missing:
            logger.warning(f"Rejected {spec.stage.value} for {session.session_id}: missing {missing}")
            raise StagePreconditionError(spec.stage.value, missing)

    def _reset_stage(self, session_id: str, spec: StageSpec):
        def rewind(session: AnalysisSession):
            session.status = retry_status(
                spec.stage, session.media_kind, "faceAnalysis" in session.results
            )
            session.results.pop(spec.result_key, None)
            if spec.stage is Stage.FINAL_REPORT:
                session.completed_at = None

        session = self._store.update(session_id, rewind)
        logger.info(f"Retrying step: {spec.stage.value} for session: {session_id} (reset to {session.status.value})")

    def _mark_error(self, session_id: str):
        def fail(session: AnalysisSession):
            session.status = StageStatus.ERROR

        self._store.update(session_id, fail)

    def _set_status(self, session_id: str, status: StageStatus) -> AnalysisSession:
        def apply(session: AnalysisSession):
            session.status = status

        return self._store.update(session_id, apply)

    async def _execute(self, session_id: str, spec: StageSpec) -> StageOutcome:
        stage = spec.stage
        session = self._set_status(session_id, spec.in_progress)
        logger.info(f"Session {session_id}: {session.status.value}")

        file_size_mb = self._media_size(session, spec)
        if file_size_mb is not None:
            self._check_media_size(session_id, session, file_size_mb)

        if self._gateway is None:
            self._mark_error(session_id)
            raise StageFailedError(
                stage.value,
                "AI service is not configured. Set GEMINI_API_KEY and restart.",
                http_status=503,
                can_retry=False,
                can_use_fallback=spec.fallback_eligible,
            )

        attachment = None
        if spec.attaches:
            source = self._source_file(session, spec)
            try:
                attachment = Attachment(mime_type=source.mime_type, data=await source.read_base64())
            except OSError as e:
                logger.error(f"Failed to read {source.path}: {e}")
                self._mark_error(session_id)
                raise StageFailedError(
                    stage.value,
                    "Failed to read the uploaded file.",
                    can_use_fallback=spec.fallback_eligible,
                ) from e
            logger.info(f"Processing {source.label} with MIME type: {source.mime_type}")

        try:
            prompt = build_prompt(stage, session)
            content = await self._gateway.invoke(
                prompt, attachment, max_attempts=self._attempts[stage.value]
            )
        except GatewayError as e:
            logger.error(f"{stage.value} error for session {session_id}: {e}")
            if e.kind is ErrorKind.OVERLOADED and spec.fallback_eligible:
                logger.warning(f"Using fallback {stage.value} due to API overload")
                return self._store_result(
                    session_id, spec, self._fallback_content(session, spec),
                    used_fallback=True, file_size_mb=file_size_mb,
                )
            self._mark_error(session_id)
            raise self._stage_failure(spec, e) from e
        except Exception as e:
            logger.exception(f"❌ Unexpected {stage.value} failure for session {session_id}")
            self._mark_error(session_id)
            raise StageFailedError(
                stage.value,
                "An unexpected error occurred. Please try again"
                + (" or use fallback mode." if spec.fallback_eligible else "."),
                can_retry=True,
                can_use_fallback=spec.fallback_eligible,
            ) from e

        return self._store_result(session_id, spec, content, used_fallback=False, file_size_mb=file_size_mb)

    def _check_media_size(self, session_id: str, session: AnalysisSession, size_mb: float):
        kind = session.media_kind.value
        for limit in (self._upload_limits[kind], self._processing_limits[kind]):
            if size_mb > limit:
                logger.warning(f"{kind} file {size_mb:.2f} MB exceeds {limit:g} MB limit")
                self._mark_error(session_id)
                raise MediaTooLargeError(kind, size_mb, limit, can_use_fallback=True)

    def _stage_failure(self, spec: StageSpec, error: GatewayError) -> StageFailedError:
        stage = spec.stage.value
        eligible = spec.fallback_eligible
        if error.kind is ErrorKind.RATE_LIMITED:
            return StageFailedError(
                stage, "Too many requests. Please wait 10 minutes before trying again.",
                kind=error.kind.value, http_status=429,
                retry_after=RATE_LIMIT_RETRY_AFTER_SECONDS, can_use_fallback=eligible,
            )
        if error.kind is ErrorKind.PAYLOAD_TOO_LARGE:
            return StageFailedError(
                stage, error.message, kind=error.kind.value, http_status=400,
                can_retry=False, can_use_fallback=eligible,
            )
        if error.kind is ErrorKind.INVALID_REQUEST:
            return StageFailedError(
                stage, f"The AI service rejected the request: {error.message}",
                kind=error.kind.value, can_retry=False, can_use_fallback=eligible,
            )
        if error.kind is ErrorKind.OVERLOADED:
            return StageFailedError(
                stage, "The AI service is overloaded. Please try again later.",
                kind=error.kind.value, http_status=503,
            )
        return StageFailedError(
            stage, f"{stage} failed. Please try again"
            + (" or continue with a fallback analysis." if eligible else "."),
            kind=error.kind.value, can_use_fallback=eligible,
        )

    def _store_result(
        self,
        session_id: str,
        spec: StageSpec,
        content: str,
        used_fallback: bool,
        file_size_mb: Optional[float] = None,
    ) -> StageOutcome:
        def record(session: AnalysisSession):
            session.results[spec.result_key] = content
            session.status = completed_status(spec.stage, session.media_kind, used_fallback)
            if spec.stage is Stage.FINAL_REPORT:
                session.completed_at = datetime.now()

        session = self._store.update(session_id, record)
        logger.info(
            f"✅ Session {session_id}: {session.status.value}"
            + (" (fallback)" if used_fallback else "")
        )
        return StageOutcome(
            session_id=session_id,
            stage=spec.stage,
            result_key=spec.result_key,
            content=content,
            used_fallback=used_fallback,
            status=session.status,
            next_stage=next_stage(spec.stage, session.media_kind),
            media_kind=session.media_kind,
            file_size_mb=file_size_mb,
        )

    @staticmethod
    def _source_file(session: AnalysisSession, spec: StageSpec) -> StoredFile:
        if spec.attaches == "cv":
            return session.inputs.cv_file
        return session.inputs.media_file

    @staticmethod
    def _media_size(session: AnalysisSession, spec: StageSpec) -> Optional[float]:
        if spec.attaches == "media":
            return session.inputs.media_file.size_mb
        return None

    def _fallback_content(self, session: AnalysisSession, spec: StageSpec) -> str:
        return generate_fallback(
            spec.stage,
            self._source_file(session, spec).label,
            media_kind=session.media_kind,
            job_description=session.job_description,
        )
