from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SyncType(str, Enum):
    UNSYNCED = "UNSYNCED"
    LINE_SYNCED = "LINE_SYNCED"


@dataclass(frozen=True, slots=True)
class LyricLine:
    start_ms: int
    text: str


@dataclass(frozen=True, slots=True)
class Lyrics:
    sync_type: SyncType
    lines: tuple[LyricLine, ...]
    language: str = ""

    @classmethod
    def empty(cls) -> "Lyrics":
        return cls(sync_type=SyncType.UNSYNCED, lines=(), language="")

    @property
    def is_synced(self) -> bool:
        return self.sync_type is SyncType.LINE_SYNCED

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "Lyrics":
        """
        Build from the `lyrics` object of the lyrics service response:
        {"syncType": ..., "lines": [{"startTimeMs": ..., "words": ...}], "language": ...}

        startTimeMs may arrive as a number or a numeric string.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a lyrics object, got {type(data).__name__}")
        raw_type = str(data.get("syncType") or SyncType.UNSYNCED.value).upper()
        try:
            sync_type = SyncType(raw_type)
        except ValueError as e:
            raise ValueError(f"Unknown syncType: {raw_type}") from e

        lines: list[LyricLine] = []
        for item in data.get("lines") or []:
            if not isinstance(item, dict):
                raise ValueError(f"Expected a lyric line object, got {type(item).__name__}")
            start = int(item.get("startTimeMs") or 0)
            if start < 0:
                raise ValueError(f"Negative startTimeMs: {start}")
            lines.append(LyricLine(start_ms=start, text=str(item.get("words") or "")))

        return cls(sync_type=sync_type, lines=tuple(lines), language=str(data.get("language") or ""))
