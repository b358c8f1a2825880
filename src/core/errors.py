"""
Exception hierarchy for the task tracker.
"""
import errno
from typing import Optional


class TrackerError(Exception):
    """Base class for all task tracker errors."""


class ConfigurationError(TrackerError):
    """Invalid configuration: display count, interval, output directory."""


class CaptureError(TrackerError):
    """A single display failed to capture or encode."""

    def __init__(self, message: str, monitor_index: Optional[int] = None):
        super().__init__(message)
        self.monitor_index = monitor_index


class PersistenceError(TrackerError):
    """A metadata, review, summary or preset file could not be written."""

    # Out-of-space conditions are never worth retrying on the next tick
    FATAL_ERRNOS = {errno.ENOSPC, errno.EDQUOT}

    @property
    def fatal(self) -> bool:
        cause = self.__cause__
        return isinstance(cause, OSError) and cause.errno in self.FATAL_ERRNOS


class SessionNotFoundError(TrackerError):
    """No metadata file exists for the requested session."""


class MetadataError(TrackerError):
    """A metadata file exists but cannot be parsed into a session."""


class SessionStateError(TrackerError):
    """Illegal lifecycle transition (e.g. starting a stopped session)."""
