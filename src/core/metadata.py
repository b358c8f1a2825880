"""
Session metadata persistence.

Each session directory holds one metadata.json describing the session and
every capture record. The file is always replaced atomically, so a reader
sees either the previous version or the new one, never a partial write.
"""
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

from .errors import MetadataError, PersistenceError, SessionNotFoundError
from .session import CaptureRecord, Session, SessionState

logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.json"


def write_atomic(path: Path, text: str):
    """
    Write text to path via a temp file in the same directory and a rename.

    Raises:
        PersistenceError: wrapping the underlying OSError
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(suffix=".tmp", prefix=f".{path.stem}_", dir=path.parent)
    except OSError as e:
        raise PersistenceError(f"Failed to write {path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(temp_path, path)
    except OSError as e:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise PersistenceError(f"Failed to write {path}: {e}") from e


def session_to_dict(session: Session) -> Dict[str, Any]:
    """Convert a session to the metadata.json schema."""
    return {
        'session_id': session.session_id,
        'task_name': session.task_name,
        'start_time': session.start_time.isoformat() if session.start_time else None,
        'end_time': session.end_time.isoformat() if session.end_time else None,
        'duration_seconds': session.duration_seconds,
        'capture_interval': session.capture_interval,
        'monitors_config': session.monitors_config,
        'resolved_monitors': list(session.resolved_monitors),
        'screenshot_count': len(session.records),
        'screenshots': [r.to_dict() for r in session.records],
    }


def _parse_time(value):
    return datetime.fromisoformat(value) if value else None


def session_from_dict(data: Dict[str, Any], session_dir: Path) -> Session:
    """
    Rebuild a stopped session from metadata.json contents.

    Raises:
        MetadataError: if required fields are missing or malformed
    """
    try:
        return Session(
            session_id=str(data['session_id']),
            session_dir=Path(session_dir),
            task_name=str(data.get('task_name') or ""),
            monitors_config=str(data.get('monitors_config', "all")),
            resolved_monitors=[int(m) for m in data.get('resolved_monitors', [])],
            capture_interval=int(data.get('capture_interval', 30)),
            start_time=_parse_time(data['start_time']),
            end_time=_parse_time(data.get('end_time')),
            records=[CaptureRecord.from_dict(r) for r in data.get('screenshots') or []],
            state=SessionState.STOPPED,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MetadataError(f"Invalid session metadata: {e!r}") from e


class MetadataPersister:
    """Saves and reloads metadata.json for a session directory."""

    def __init__(self, filename: str = METADATA_FILENAME):
        self.filename = filename

    def path_for(self, session: Session) -> Path:
        return Path(session.session_dir) / self.filename

    def save(self, session: Session) -> Path:
        """
        Write the session's metadata, replacing any previous version.

        Returns:
            Path of the metadata file

        Raises:
            PersistenceError: if the file cannot be written
        """
        path = self.path_for(session)
        write_atomic(path, json.dumps(session_to_dict(session), indent=2))
        logger.debug("Saved metadata for %s (%d records) to %s",
                     session.session_id, len(session.records), path)
        return path

    def load(self, path: Union[str, Path]) -> Session:
        """
        Load a session from a metadata file or a session directory.

        Raises:
            SessionNotFoundError: if no metadata file exists
            MetadataError: if the file cannot be parsed
        """
        path = Path(path)
        if path.is_dir():
            path = path / self.filename

        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise SessionNotFoundError(f"No session metadata at {path}") from e
        except OSError as e:
            raise SessionNotFoundError(f"Cannot read session metadata at {path}: {e}") from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MetadataError(f"Malformed metadata in {path}: {e}") from e
        if not isinstance(data, dict):
            raise MetadataError(f"Malformed metadata in {path}: expected an object")

        return session_from_dict(data, path.parent)
