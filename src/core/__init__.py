from .config import TrackerConfig, DEFAULT_CONFIG
from .controller import SessionController
from .metadata import MetadataPersister
from .monitors import resolve_monitors
from .recorder import SessionRecorder, sample_evenly
from .review import ReviewGenerator
from .session import CaptureRecord, Session, SessionState
from .store import CaptureStore

__all__ = [
    "TrackerConfig",
    "DEFAULT_CONFIG",
    "SessionController",
    "MetadataPersister",
    "resolve_monitors",
    "SessionRecorder",
    "sample_evenly",
    "ReviewGenerator",
    "CaptureRecord",
    "Session",
    "SessionState",
    "CaptureStore",
]
