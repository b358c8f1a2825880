"""
Append-only record list for a session, and even sampling for reviews.
"""
from typing import Iterator, List, Sequence, TypeVar

import numpy as np

from .session import CaptureRecord

T = TypeVar("T")


def sample_indices(n: int, k: int) -> List[int]:
    """
    Pick k positions spread evenly over range(n).

    Position i maps to floor(i * (n - 1) / (k - 1)). The product is formed
    on integers before the real division, so the last position lands on
    n - 1 exactly instead of drifting below it through rounding of the step.

    Returns:
        Ascending positions; repeats are kept as computed.
    """
    if k <= 0 or n == 0:
        return []
    if n <= k:
        return list(range(n))
    if k == 1:
        return [0]

    positions = np.arange(k, dtype=np.int64) * (n - 1) / (k - 1)
    return np.floor(positions).astype(int).tolist()


def sample_evenly(records: Sequence[T], k: int) -> List[T]:
    """
    Select k records evenly spaced by position.

    Spacing follows list position, not elapsed time, so skipped ticks do
    not shift the selection. The first and last record are always included
    when k >= 2. If there are no more than k records, all are returned in
    their original order.
    """
    return [records[i] for i in sample_indices(len(records), k)]


class SessionRecorder:
    """Owns the ordered capture records of a session."""

    def __init__(self, records: List[CaptureRecord]):
        # Shares the list with the Session so the session always sees appends
        self._records = records

    def append(self, record: CaptureRecord):
        """
        Add a record at the end.

        Raises:
            ValueError: if the record is older than the previous one
        """
        if record.relative_seconds < 0:
            raise ValueError(f"relative_seconds must be >= 0, got {record.relative_seconds}")
        if self._records and record.relative_seconds < self._records[-1].relative_seconds:
            raise ValueError(
                f"Records must be appended in time order "
                f"({record.relative_seconds:.3f}s after {self._records[-1].relative_seconds:.3f}s)"
            )
        self._records.append(record)

    @property
    def records(self) -> List[CaptureRecord]:
        """A copy of the records in append order."""
        return list(self._records)

    def sample(self, k: int) -> List[CaptureRecord]:
        return sample_evenly(self._records, k)

    def count_by_monitor(self) -> dict:
        """Number of records per 1-based monitor number."""
        counts: dict = {}
        for record in self._records:
            counts[record.monitor_index] = counts.get(record.monitor_index, 0) + 1
        return counts

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CaptureRecord]:
        return iter(self._records)
