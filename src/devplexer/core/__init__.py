"""Core orchestration functionality."""

from .enums import AppStatus
from .naming import derive_session_id
from .orchestrator import AppOutcome, SessionHandle, SessionOrchestrator, WindowBinding

__all__ = [
    "AppOutcome",
    "AppStatus",
    "SessionHandle",
    "SessionOrchestrator",
    "WindowBinding",
    "derive_session_id",
]
