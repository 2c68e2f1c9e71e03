"""
Analysis session state and its in-memory store.
"""
from .models import AnalysisSession, MediaKind, SessionInputs, StageStatus
from .store import InMemorySessionStore, SessionStore

__all__ = [
    'AnalysisSession',
    'MediaKind',
    'SessionInputs',
    'StageStatus',
    'InMemorySessionStore',
    'SessionStore',
]
