from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Sequence

from verses.lyrics.model import Lyrics


def floor_index(starts: Sequence[int], now_ms: int) -> int:
    """
    Greatest i with starts[i] <= now_ms, or -1 when now_ms precedes the first
    line (or there are no lines). `starts` must be ascending.
    """
    i = bisect_right(starts, now_ms) - 1
    return i if i >= 0 else -1


@dataclass(slots=True)
class LineTracker:
    """
    Efficient lookup: O(log n) via bisect + update only on change.
    """

    t_ms: list[int] = field(default_factory=list)
    last_idx: int = -1

    @classmethod
    def from_lyrics(cls, lyrics: Lyrics) -> "LineTracker":
        return cls(t_ms=[ln.start_ms for ln in lyrics.lines])

    def current_index(self, now_ms: int) -> int:
        return floor_index(self.t_ms, now_ms)

    def changed_index(self, now_ms: int) -> int | None:
        i = self.current_index(now_ms)
        if i != self.last_idx:
            self.last_idx = i
            return i
        return None
