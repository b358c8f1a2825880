"""
Review reports and analysis bundles for finished sessions.

A review is a Markdown document listing an evenly sampled subset of the
session's screenshots followed by analysis instructions. The same sample
can be packaged as an analysis bundle (base64 images plus metadata and the
prompt) for an external summarizer, whose free-text answer is stored back
next to the session as summary.txt.
"""
import base64
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import PersistenceError
from .metadata import write_atomic
from .recorder import sample_evenly
from .session import CaptureRecord, Session

logger = logging.getLogger(__name__)

REVIEW_FILENAME = "review.md"
SUMMARY_FILENAME = "summary.txt"
DEFAULT_SAMPLE_COUNT = 5

ANALYSIS_PROMPT = """\
Analyze the {sampled} screenshots above from a work session.

Please provide:
1. **What was accomplished**: A clear summary of the work done
2. **Key activities**: Main tasks or workflows observed
3. **Technologies/Tools used**: What applications or systems were visible
4. **Workspace organization**: How different monitors/windows were used (if multi-monitor)
5. **Progression**: How the work evolved over time
6. **Suggested summary**: A concise 2-3 sentence summary suitable for a task tracker update

Be specific and focus on the actual work visible in the screenshots."""


class ReviewGenerator:
    """Renders the review document for a session."""

    def __init__(self, sample_count: int = DEFAULT_SAMPLE_COUNT):
        self.sample_count = sample_count

    def sample(self, session: Session, sample_count: Optional[int] = None) -> List[CaptureRecord]:
        k = self.sample_count if sample_count is None else sample_count
        return sample_evenly(session.records, k)

    def render(self, session: Session, sampled: List[CaptureRecord]) -> str:
        """
        Render a Markdown review.

        Args:
            session: The stopped session
            sampled: Records to include, usually from sample()

        Returns:
            The review text
        """
        lines = [
            f"# Session Review: {session.task_name or session.default_task_name}",
            "",
            f"- **Session ID**: {session.session_id}",
            f"- **Duration**: {session.duration_minutes:.1f} minutes",
            f"- **Total screenshots**: {len(session.records)}",
            f"- **Sampled screenshots**: {len(sampled)}",
            "",
            "## Screenshots",
            "",
        ]

        for ordinal, record in enumerate(sampled, start=1):
            lines.extend([
                f"### {ordinal}. {record.elapsed_minutes:.1f} min (monitor {record.monitor_index})",
                "",
                f"- Resolution: {record.resolution}",
                f"- Time: {record.timestamp.isoformat(timespec='seconds')}",
                "",
                f"![Screenshot {ordinal}]({record.filename})",
                "",
            ])

        lines.extend([
            "## Analysis",
            "",
            ANALYSIS_PROMPT.format(sampled=len(sampled)),
            "",
        ])
        return "\n".join(lines)

    def write(self, session: Session, sample_count: Optional[int] = None) -> Path:
        """
        Sample, render and save review.md in the session directory.

        Raises:
            PersistenceError: if the file cannot be written
        """
        sampled = self.sample(session, sample_count)
        path = Path(session.session_dir) / REVIEW_FILENAME
        write_atomic(path, self.render(session, sampled))
        logger.info("Review with %d of %d screenshots saved to %s",
                    len(sampled), len(session.records), path)
        return path


def build_analysis_bundle(session: Session, sample_count: int = DEFAULT_SAMPLE_COUNT) -> Dict[str, Any]:
    """
    Package sampled screenshots and session metadata for a summarizer.

    Images that can no longer be read are skipped with a warning, so the
    bundle may hold fewer images than were sampled.
    """
    sampled = sample_evenly(session.records, sample_count)
    images = []
    for record in sampled:
        try:
            data = Path(record.path).read_bytes()
        except OSError as e:
            logger.warning("Failed to read %s: %s", record.path, e)
            continue
        images.append({
            'media_type': 'image/png',
            'data': base64.b64encode(data).decode('ascii'),
            'monitor': record.monitor_index,
            'relative_time': record.relative_seconds,
            'timestamp': record.timestamp.isoformat(),
        })

    return {
        'session_id': session.session_id,
        'task_name': session.task_name,
        'duration_minutes': round(session.duration_minutes, 1),
        'screenshot_count': len(session.records),
        'sampled_count': len(sampled),
        'images': images,
        'prompt': ANALYSIS_PROMPT.format(sampled=len(images)),
    }


def save_summary(session_dir: Path, text: str) -> Path:
    """Store an externally produced summary as summary.txt."""
    path = Path(session_dir) / SUMMARY_FILENAME
    write_atomic(path, text)
    logger.info("Summary saved to %s", path)
    return path


def load_summary(session_dir: Path) -> Optional[str]:
    """Return the stored summary, or None if there is none."""
    path = Path(session_dir) / SUMMARY_FILENAME
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise PersistenceError(f"Cannot read {path}: {e}") from e
