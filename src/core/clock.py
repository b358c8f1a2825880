"""
Wall and monotonic time source for the capture loop.
"""
import time
from datetime import datetime


class Clock:
    """System clock. Tests substitute an object with the same two methods."""

    def now(self) -> datetime:
        """Current local time as an offset-aware datetime."""
        return datetime.now().astimezone()

    def monotonic(self) -> float:
        return time.monotonic()


SYSTEM_CLOCK = Clock()
