"""
Session data model: capture records, lifecycle state and session identity.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

SESSION_ID_FORMAT = "%Y%m%d_%H%M%S"


class SessionState(Enum):
    """Lifecycle of a capture session. Stopped is terminal."""
    IDLE = "idle"
    CAPTURING = "capturing"
    STOPPED = "stopped"


@dataclass
class CaptureRecord:
    """Metadata for one saved screenshot."""
    path: str
    monitor_index: int        # 1-based, as shown to the user
    timestamp: datetime       # offset-aware
    relative_seconds: float   # seconds since session start
    resolution: str           # "<width>x<height>"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            'path': self.path,
            'monitor': self.monitor_index,
            'timestamp': self.timestamp.isoformat(),
            'relative_time': self.relative_seconds,
            'resolution': self.resolution,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CaptureRecord:
        return cls(
            path=str(data['path']),
            monitor_index=int(data['monitor']),
            timestamp=datetime.fromisoformat(data['timestamp']),
            relative_seconds=float(data['relative_time']),
            resolution=str(data['resolution']),
        )

    @property
    def filename(self) -> str:
        return Path(self.path).name

    @property
    def elapsed_minutes(self) -> float:
        return self.relative_seconds / 60


@dataclass
class Session:
    """
    One start-to-stop capture run.

    The session owns its record list; only the controller appends to it,
    and only while the state is CAPTURING.
    """
    session_id: str
    session_dir: Path
    task_name: str = ""
    monitors_config: str = "all"
    resolved_monitors: List[int] = field(default_factory=list)
    capture_interval: int = 30
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    records: List[CaptureRecord] = field(default_factory=list)
    state: SessionState = SessionState.IDLE

    @staticmethod
    def create_session_id(now: datetime) -> str:
        """Session ID from the start time, with second resolution."""
        return now.strftime(SESSION_ID_FORMAT)

    @classmethod
    def create(
        cls,
        output_dir: Path,
        now: datetime,
        monitors_config: str,
        resolved_monitors: List[int],
        capture_interval: int = 30,
        task_name: str = "",
    ) -> Session:
        """Create a new idle session rooted at output_dir/<session_id>."""
        session_id = cls.create_session_id(now)
        return cls(
            session_id=session_id,
            session_dir=Path(output_dir) / session_id,
            task_name=task_name,
            monitors_config=monitors_config,
            resolved_monitors=list(resolved_monitors),
            capture_interval=capture_interval,
        )

    @property
    def default_task_name(self) -> str:
        return f"Task_{self.session_id}"

    @property
    def duration_seconds(self) -> float:
        """Seconds between start and end; 0.0 until the session has stopped."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def duration_minutes(self) -> float:
        return self.duration_seconds / 60

    @property
    def multi_monitor(self) -> bool:
        return len(self.resolved_monitors) > 1

    @property
    def monitor_numbers(self) -> List[int]:
        """Resolved monitors as 1-based numbers."""
        return [m + 1 for m in self.resolved_monitors]

    def __repr__(self) -> str:
        return (
            f"Session(id={self.session_id}, task={self.task_name!r}, "
            f"state={self.state.value}, records={len(self.records)})"
        )
