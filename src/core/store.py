"""
Capture one display and persist the image inside a session directory.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol, Tuple

from PIL import Image

from .errors import CaptureError, PersistenceError
from .session import CaptureRecord

logger = logging.getLogger(__name__)


class DisplayBackend(Protocol):
    """Display enumeration and capture, indexed from 0."""

    def count(self) -> int:
        ...

    def bounds(self, index: int) -> Tuple[int, int, int, int]:
        """(origin_x, origin_y, width, height) of a display."""
        ...

    def capture(self, index: int) -> Image.Image:
        ...


class CaptureStore:
    """
    Saves screenshots as PNG files in a session directory.

    Filenames encode the time of day and, when more than one monitor is
    captured per tick, the monitor number:

        screen_143005.png         (single monitor)
        screen_m2_143005.png      (several monitors)

    A name already taken in this session gets a numeric suffix (_2, _3, ...).
    """

    IMAGE_FORMAT = "PNG"

    def __init__(self, backend: DisplayBackend, session_dir: Path, multi_monitor: bool = False):
        self.backend = backend
        self.session_dir = Path(session_dir)
        self.multi_monitor = multi_monitor

    def filename_for(self, display_index: int, taken_at: datetime) -> str:
        stamp = taken_at.strftime("%H%M%S")
        if self.multi_monitor:
            return f"screen_m{display_index + 1}_{stamp}.png"
        return f"screen_{stamp}.png"

    def _unique_path(self, filename: str) -> Path:
        path = self.session_dir / filename
        suffix = 2
        while path.exists():
            path = self.session_dir / f"{Path(filename).stem}_{suffix}.png"
            suffix += 1
        return path

    def capture(self, display_index: int, taken_at: datetime, relative_seconds: float) -> CaptureRecord:
        """
        Grab one display and save it.

        Args:
            display_index: 0-based display index
            taken_at: Offset-aware capture time
            relative_seconds: Seconds since session start at capture time

        Returns:
            CaptureRecord for the saved image

        Raises:
            CaptureError: if the grab or the PNG encode fails
            PersistenceError: if the disk is full; fatal for the session
        """
        monitor_number = display_index + 1
        try:
            image = self.backend.capture(display_index)
        except Exception as e:
            raise CaptureError(f"Failed to capture monitor {monitor_number}: {e}", monitor_number) from e

        width, height = image.size
        path = self._unique_path(self.filename_for(display_index, taken_at))

        try:
            self.session_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            _raise_if_out_of_space(e, path)
            raise CaptureError(f"Failed to save {path.name}: {e}", monitor_number) from e

        try:
            image.save(path, format=self.IMAGE_FORMAT)
        except (OSError, ValueError) as e:
            # Don't leave a truncated image behind for the review to reference
            try:
                path.unlink(missing_ok=True)
            except OSError:
                pass
            _raise_if_out_of_space(e, path)
            raise CaptureError(f"Failed to save {path.name}: {e}", monitor_number) from e

        logger.debug("Saved %s (%dx%d)", path, width, height)
        return CaptureRecord(
            path=str(path),
            monitor_index=monitor_number,
            timestamp=taken_at,
            relative_seconds=relative_seconds,
            resolution=f"{width}x{height}",
        )


def _raise_if_out_of_space(error: Exception, path: Path):
    if isinstance(error, OSError) and error.errno in PersistenceError.FATAL_ERRNOS:
        raise PersistenceError(f"Disk full, cannot save {path}: {error}") from error
