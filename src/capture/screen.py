"""
Screenshot capture from local displays via mss.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

import mss
from PIL import Image, ImageDraw

# Physical size estimates assume a standard 96 DPI display
ASSUMED_DPI = 96.0


@dataclass
class DisplayInfo:
    """Position and size of one display in the virtual screen."""
    number: int  # 1-based
    x: int
    y: int
    width: int
    height: int

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def diagonal_inches(self) -> float:
        """Approximate diagonal size in inches."""
        w = self.width / ASSUMED_DPI
        h = self.height / ASSUMED_DPI
        return (w * w + h * h) ** 0.5


class ScreenCapture:
    """
    Capture screenshots from the local displays.

    Displays are indexed from 0. mss lists the union of all displays at
    position 0, so display i is mss monitor i + 1.
    """

    def __init__(self):
        """Open an mss session and verify at least one display is active."""
        self._sct = mss.mss()
        self._verify_displays()

    def _verify_displays(self):
        if self.count() < 1:
            self.close()
            raise RuntimeError(
                "No active displays detected. "
                "Make sure a graphical session is running and DISPLAY is set."
            )

    def _monitor(self, index: int) -> dict:
        if not 0 <= index < self.count():
            raise IndexError(f"Display index {index} out of range (0-{self.count() - 1})")
        return self._sct.monitors[index + 1]

    def count(self) -> int:
        """Number of active displays."""
        return len(self._sct.monitors) - 1

    def bounds(self, index: int) -> Tuple[int, int, int, int]:
        """(origin_x, origin_y, width, height) of a display."""
        mon = self._monitor(index)
        return mon['left'], mon['top'], mon['width'], mon['height']

    def capture(self, index: int) -> Image.Image:
        """
        Capture a screenshot of one display.

        Returns:
            RGB PIL Image of the display
        """
        shot = self._sct.grab(self._monitor(index))
        return Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")

    def describe(self) -> List[DisplayInfo]:
        """Geometry of every active display."""
        return [DisplayInfo(i + 1, *self.bounds(i)) for i in range(self.count())]

    def close(self):
        self._sct.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def label_image(image: Image.Image, text: str) -> Image.Image:
    """
    Draw a text label on a dark box in the top-left corner.

    Returns:
        A labelled RGB copy; the input image is left untouched.
    """
    labelled = image.convert("RGBA")
    overlay = Image.new("RGBA", labelled.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    draw.rectangle((10, 10, 600, 80), fill=(0, 0, 0, 200))
    draw.text((20, 30), text, fill=(255, 255, 255, 255))
    return Image.alpha_composite(labelled, overlay).convert("RGB")


def capture_test_image(capture, monitor_number: int, output_dir: Path = Path(".")) -> Path:
    """
    Save a labelled test screenshot of one monitor as test_monitor_N.png.

    Args:
        capture: Display backend (count/capture)
        monitor_number: 1-based monitor number
        output_dir: Directory for the test image

    Raises:
        ValueError: if the monitor number is out of range
    """
    available = capture.count()
    if not 1 <= monitor_number <= available:
        raise ValueError(f"Invalid monitor number {monitor_number}. Available: 1-{available}")

    image = capture.capture(monitor_number - 1)
    width, height = image.size
    labelled = label_image(image, f"Monitor {monitor_number} Test - {width}x{height}")

    path = Path(output_dir) / f"test_monitor_{monitor_number}.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    labelled.save(path)
    return path
