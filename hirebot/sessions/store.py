"""
Analysis Session Store.

Owns every AnalysisSession:
- Create sessions from uploaded inputs
- Look sessions up by id
- Apply mutations under a lock
- Evict sessions idle past their TTL, and the oldest ones past capacity
  (sessions with a running stage are skipped)

Sessions live in process memory only. Anything that implements
``SessionStore`` can replace InMemorySessionStore without the workflow
noticing.
"""
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol

from .models import AnalysisSession, SessionInputs
from ..errors import SessionNotFoundError
from ..utils.config import SESSION_TTL_SECONDS, MAX_SESSIONS
from ..utils.logger import setup_logger

logger = setup_logger("session_store")

SessionMutator = Callable[[AnalysisSession], None]


class SessionStore(Protocol):
    def create(self, inputs: SessionInputs) -> str: ...

    def get(self, session_id: str) -> Optional[AnalysisSession]: ...

    def update(self, session_id: str, mutator: SessionMutator) -> AnalysisSession: ...

    def delete(self, session_id: str) -> bool: ...

    def __len__(self) -> int: ...


class InMemorySessionStore:
    """
    Thread-safe in-memory session registry with TTL and capacity eviction.
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = SESSION_TTL_SECONDS,
        max_sessions: Optional[int] = MAX_SESSIONS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the store.

        Args:
            ttl_seconds: Idle time after which a session is evicted. None disables.
            max_sessions: Capacity bound. None disables.
            clock: Source of the current time.
        """
        self._sessions: Dict[str, AnalysisSession] = {}
        self._lock = threading.Lock()
        self.ttl = timedelta(seconds=ttl_seconds) if ttl_seconds else None
        self.max_sessions = max_sessions
        self._clock = clock

        logger.info(f"InMemorySessionStore initialized (ttl={ttl_seconds}s, max_sessions={max_sessions})")

    def create(self, inputs: SessionInputs) -> str:
        """
        Create a new session in the ``initialized`` state.

        Returns:
            Session ID (UUID string)
        """
        now = self._clock()
        session_id = str(uuid.uuid4())
        session = AnalysisSession(
            session_id=session_id,
            inputs=inputs,
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            self._reap_locked(now)
            if self.max_sessions:
                self._evict_oldest_locked(len(self._sessions) - self.max_sessions + 1)
            self._sessions[session_id] = session

        logger.info(f"Created analysis session: {session_id} ({inputs.media_kind.value})")
        return session_id

    def get(self, session_id: str) -> Optional[AnalysisSession]:
        """Get session by ID. Sessions idle past the TTL are evicted and not returned."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and self.ttl is not None and self._clock() - session.updated_at > self.ttl:
                del self._sessions[session_id]
                logger.info(f"Evicted expired session: {session_id}")
                return None
            return session

    def update(self, session_id: str, mutator: SessionMutator) -> AnalysisSession:
        """
        Apply ``mutator`` to a session under the store lock.

        Raises:
            SessionNotFoundError: if the id is unknown
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            mutator(session)
            session.updated_at = self._clock()
            return session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def reap_expired(self) -> List[str]:
        """Evict sessions idle for longer than the TTL. Returns evicted ids."""
        with self._lock:
            return self._reap_locked(self._clock())

    def _reap_locked(self, now: datetime) -> List[str]:
        if self.ttl is None:
            return []
        expired = [
            sid for sid, session in self._sessions.items()
            if now - session.updated_at > self.ttl
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info(f"Evicted {len(expired)} expired session(s)")
        return expired

    def _evict_oldest_locked(self, count: int):
        if count <= 0:
            return
        # Sessions with a stage waiting on Gemini are never evicted
        idle = [s for s in self._sessions.values() if not s.status.in_progress]
        oldest = sorted(idle, key=lambda s: s.updated_at)[:count]
        for session in oldest:
            del self._sessions[session.session_id]
        logger.warning(f"Session capacity reached, evicted {len(oldest)} oldest session(s)")
        if len(oldest) < count:
            logger.warning(
                f"⚠️ {count - len(oldest)} session(s) over capacity kept: stages still running"
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
