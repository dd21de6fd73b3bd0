from collections import deque
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional

from .joints import AngleSet


@dataclass(frozen=True)
class FrameRecord:
    angles: AngleSet
    timestamp_ms: float
    feedback: Optional[Any] = None


class FrameBuffer:
    """Bounded history of the active session's frames; oldest entries are evicted."""

    def __init__(self, maxlen: int = 1000):
        self._frames = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._frames.maxlen

    def append(self, angles: AngleSet, feedback: Optional[Any] = None) -> FrameRecord:
        record = FrameRecord(angles, angles.timestamp_ms, feedback)
        self._frames.append(record)
        return record

    def clear(self) -> None:
        self._frames.clear()

    def snapshot(self) -> List[FrameRecord]:
        return list(self._frames)

    def __iter__(self) -> Iterator[FrameRecord]:
        return iter(self._frames)

    def __len__(self) -> int:
        return len(self._frames)
