"""
Service layer wiring the session store, Gemini gateway and workflow.
"""
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import UploadFile

from ..analysis import AnalysisWorkflow
from ..errors import MediaTooLargeError, UploadTooLargeError
from ..llm import GatewayError, GeminiGateway
from ..sessions import InMemorySessionStore, MediaKind, SessionInputs, SessionStore
from ..storage import StoredFile, save_upload
from ..utils.config import UPLOAD_DIR, UPLOAD_LIMIT_MB
from ..utils.logger import setup_logger

logger = setup_logger("api_service")


class AnalysisService:
    """
    Holds the components behind the API.
    The gateway is optional: without an API key the service still starts,
    and stages fail with a "not configured" error until one is provided.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        gateway: Optional[GeminiGateway] = None,
        upload_dir: Optional[Path] = None,
    ):
        self.store = store if store is not None else InMemorySessionStore()
        self.gateway = gateway
        self.upload_dir = Path(upload_dir or UPLOAD_DIR)
        self.workflow: Optional[AnalysisWorkflow] = None
        self.started_at = time.monotonic()
        self._initialized = False

    def initialize(self) -> bool:
        """
        Build the gateway (if not injected) and the workflow.

        Returns:
            True if the Gemini gateway is available, False otherwise
        """
        if self._initialized:
            return self.gateway is not None

        logger.info("Initializing analysis service...")
        if self.gateway is None:
            try:
                self.gateway = GeminiGateway()
            except ValueError as e:
                logger.error(f"❌ Gemini gateway unavailable: {e}")

        self.workflow = AnalysisWorkflow(self.store, self.gateway)
        self._initialized = True
        logger.info("✅ Analysis service initialized")
        return self.gateway is not None

    def is_ready(self) -> bool:
        """Check if the service can run AI stages."""
        return self._initialized and self.gateway is not None

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    async def create_session(
        self,
        cv: UploadFile,
        job_description: str,
        audio: Optional[UploadFile] = None,
        video: Optional[UploadFile] = None,
    ) -> Dict[str, Any]:
        """
        Store the uploads and open a new analysis session.
        A video is used when both recordings are supplied.

        Returns:
            Dict with session_id and the stored files

        Raises:
            MediaTooLargeError: recording over the upload cap (nothing is kept)
            UploadTooLargeError: a file over MAX_UPLOAD_MB (nothing is kept)
        """
        if video is not None:
            media_kind, media_upload = MediaKind.VIDEO, video
        else:
            media_kind, media_upload = MediaKind.AUDIO, audio

        media = await save_upload(media_upload, media_kind.value, self.upload_dir)
        limit = UPLOAD_LIMIT_MB[media_kind.value]
        if media.size_mb > limit:
            logger.warning(f"Rejected {media_kind.value} upload of {media.size_mb:.2f} MB (limit {limit:g} MB)")
            media.path.unlink(missing_ok=True)
            raise MediaTooLargeError(media_kind.value, media.size_mb, limit)

        try:
            cv_file = await save_upload(cv, "cv", self.upload_dir)
        except UploadTooLargeError:
            media.path.unlink(missing_ok=True)
            raise

        session_id = self.workflow.create_session(SessionInputs(
            media_kind=media_kind,
            media_file=media,
            cv_file=cv_file,
            job_description=job_description,
        ))
        return {"session_id": session_id, "media": media, "cv": cv_file}

    async def check_api(self) -> Dict[str, Any]:
        """Ping Gemini once. Returns the gemini section of the status report."""
        if self.gateway is None:
            return {"status": "error", "error": "GEMINI_API_KEY is not configured"}
        try:
            elapsed_ms = await self.gateway.health_check()
        except GatewayError as e:
            logger.warning(f"Gemini health check failed: {e}")
            return {"status": "error", "error": str(e)}
        return {"status": "connected", "response_time": f"{elapsed_ms:.0f}ms"}

    def server_status(self) -> Dict[str, Any]:
        return {
            "uptime": round(self.uptime, 3),
            "active_sessions": len(self.store),
            "timestamp": datetime.now().isoformat(),
        }


def describe_upload(stored: StoredFile) -> str:
    return f"{stored.size_mb:.2f}MB"


# Global service instance
_service_instance: Optional[AnalysisService] = None


def get_service() -> AnalysisService:
    """Get or create the global service instance."""
    global _service_instance
    if _service_instance is None:
        _service_instance = AnalysisService()
        _service_instance.initialize()
    return _service_instance
