"""
Monitor selection: turn a user monitor spec into concrete display indices.

Specs are "all", "primary", or a comma-separated list of 1-based monitor
numbers such as "1,2". The result is a list of 0-based display indices in
the order the user gave them. Repeated numbers are kept, so "1,1" captures
the first display twice per tick.
"""
import logging
import re
from typing import List

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ALL = "all"
PRIMARY = "primary"

# ASCII digits with an optional sign, nothing else
MONITOR_NUMBER = re.compile(r"^[+-]?[0-9]+$")


def _parse_monitor_list(spec: str, num_displays: int) -> List[int]:
    indices = []
    for part in spec.split(','):
        part = part.strip()
        if not MONITOR_NUMBER.match(part):
            continue
        number = int(part)
        if 1 <= number <= num_displays:
            indices.append(number - 1)
    return indices


def resolve_monitors(spec: str, num_displays: int) -> List[int]:
    """
    Resolve a monitor spec against the number of detected displays.

    Args:
        spec: "all", "primary", or comma-separated 1-based monitor numbers
        num_displays: Number of active displays (must be >= 1)

    Returns:
        0-based display indices to capture on every tick

    An unparseable or out-of-range spec falls back to the primary display
    and logs a warning.
    """
    if num_displays < 1:
        raise ConfigurationError(f"No active displays detected (count={num_displays})")

    spec = spec or ""

    if spec == ALL:
        return list(range(num_displays))
    if spec == PRIMARY:
        return [0]

    indices = _parse_monitor_list(spec, num_displays)
    if not indices:
        logger.warning("Invalid monitor config '%s', defaulting to primary", spec)
        return [0]
    return indices


def describe_selection(spec: str, indices: List[int]) -> str:
    """Human-readable description of what will be captured."""
    if spec == ALL:
        return "ALL monitors"
    if indices == [0] and spec != "1":
        return "Primary monitor only"
    return "Monitor(s) " + ", ".join(str(i + 1) for i in indices)
