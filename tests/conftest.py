"""
Shared fixtures: a scripted stand-in for the Gemini gateway, stored upload
files and a workflow wired to an in-memory store.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

import pytest

from hirebot.analysis import AnalysisWorkflow
from hirebot.llm import Attachment, ErrorKind, GatewayError
from hirebot.sessions import InMemorySessionStore, MediaKind, SessionInputs
from hirebot.storage import BYTES_PER_MB, StoredFile

JOB_DESCRIPTION = "Senior backend engineer. Python, FastAPI, PostgreSQL."

# Checked in order: later prompts embed earlier results, never earlier prompts
PROMPT_MARKERS = [
    ("final_report", "final interview assessment report"),
    ("technical_analysis", "comprehensive technical analysis"),
    ("communication_analysis", "communication and speaking style"),
    ("face_analysis", "facial expressions and non-verbal communication"),
    ("media_transcription", "recording of an interview"),
    ("cv_analysis", "Analyze this CV"),
]


def stage_for_prompt(prompt: str) -> str:
    for stage, marker in PROMPT_MARKERS:
        if marker in prompt:
            return stage
    raise AssertionError(f"Unrecognised prompt: {prompt[:80]!r}")


@dataclass
class FakeCall:
    stage: str
    prompt: str
    attachment: Optional[Attachment]
    max_attempts: int


class FakeGateway:
    """Answers every prompt with canned text, or raises queued failures per stage."""

    def __init__(self):
        self.calls: List[FakeCall] = []
        self.responses: Dict[str, str] = {}
        self.failures: Dict[str, List[Exception]] = {}
        self.healthy = True

    def fail(self, stage: str, kind: ErrorKind, times: int = 1):
        self.failures.setdefault(stage, []).extend(
            GatewayError(kind, f"simulated {kind.value}") for _ in range(times)
        )

    def stages_called(self) -> List[str]:
        return [call.stage for call in self.calls]

    async def invoke(self, prompt: str, attachment: Optional[Attachment] = None, max_attempts: int = 3) -> str:
        stage = stage_for_prompt(prompt)
        self.calls.append(FakeCall(stage, prompt, attachment, max_attempts))
        queued = self.failures.get(stage)
        if queued:
            raise queued.pop(0)
        return self.responses.get(stage, f"AI result for {stage}")

    async def health_check(self) -> float:
        if not self.healthy:
            raise GatewayError(ErrorKind.FAILED_AFTER_RETRIES, "simulated outage", attempts=1)
        return 12.0


def make_stored_file(directory, name: str, content: bytes = b"content", size_mb: Optional[float] = None) -> StoredFile:
    """Write a small file; ``size_mb`` overrides the size the session believes it has."""
    path = directory / name
    path.write_bytes(content)
    size_bytes = int(size_mb * BYTES_PER_MB) if size_mb is not None else len(content)
    return StoredFile(path=path, original_name=name, size_bytes=size_bytes)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def store():
    return InMemorySessionStore(ttl_seconds=None, max_sessions=None)


@pytest.fixture
def workflow(store, gateway):
    return AnalysisWorkflow(store, gateway)


@pytest.fixture
def make_session(tmp_path, workflow):
    """Create a session and return its id."""

    def _make(media_kind: MediaKind = MediaKind.VIDEO, media_size_mb: Optional[float] = None) -> str:
        suffix = ".mp4" if media_kind is MediaKind.VIDEO else ".mp3"
        media = make_stored_file(
            tmp_path, f"{media_kind.value}-1{suffix}", b"fake media bytes", size_mb=media_size_mb
        )
        cv = make_stored_file(tmp_path, "cv-1.pdf", b"%PDF-1.4 fake cv")
        return workflow.create_session(SessionInputs(
            media_kind=media_kind,
            media_file=media,
            cv_file=cv,
            job_description=JOB_DESCRIPTION,
        ))

    return _make
