from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Collection

from unidecode import unidecode

from verses.state.tracker import TrackerSnapshot

from .info import InfoMemoizer

NO_LYRICS_TEXT = "This song does not have synchronized lyrics :("
WAITING_TEXT = "Waiting for playback..."


@dataclass(frozen=True, slots=True)
class Frame:
    title: str
    lines: tuple[str, ...]
    current_idx: int
    scroll_start: int
    info: tuple[str, ...]
    progress_percent: int
    progress_label: str


def format_duration(ms: int) -> str:
    seconds = max(ms, 0) // 1000
    minutes, seconds = divmod(seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"


def romanize(text: str, language: str, exclude: Collection[str] = ()) -> str:
    """
    `text (latin transliteration)` for non-English text, or `text` unchanged
    when the language is excluded or the text is already ASCII.
    """
    if language == "en" or language in exclude:
        return text
    romanized = unidecode(text)
    if romanized == text:
        return text
    return f"{text} ({romanized})"


def progress_percent(elapsed_ms: int, duration_ms: int) -> int:
    if duration_ms <= 0:
        return 0
    return min(max(math.ceil(elapsed_ms / duration_ms * 100), 0), 100)


def build_frame(
    snap: TrackerSnapshot,
    memo: InfoMemoizer,
    *,
    scroll_offset: int = 2,
    as_percentage: bool = False,
    romanize_lines: bool = False,
    romanize_title: bool = False,
    romanize_exclude: Collection[str] = (),
) -> Frame:
    md = snap.metadata
    if md is None:
        return Frame(
            title="verses",
            lines=(WAITING_TEXT,),
            current_idx=-1,
            scroll_start=0,
            info=(),
            progress_percent=0,
            progress_label="",
        )

    if snap.lyrics.lines:
        lines = tuple(ln.text for ln in snap.lyrics.lines)
        if romanize_lines:
            lines = tuple(romanize(t, snap.lyrics.language, romanize_exclude) for t in lines)
        current = snap.current_line
    else:
        lines = (NO_LYRICS_TEXT,)
        current = -1

    title = md.name or md.display
    if romanize_lines and romanize_title:
        title = romanize(title, snap.lyrics.language, romanize_exclude)

    pct = progress_percent(snap.elapsed_ms, md.duration_ms)
    if as_percentage:
        label = f"{pct}%"
    else:
        label = f"{format_duration(snap.elapsed_ms)} / {format_duration(md.duration_ms)}"

    return Frame(
        title=title,
        lines=lines,
        current_idx=current,
        scroll_start=max(current - scroll_offset, 0),
        info=memo.render(snap.lyrics, md),
        progress_percent=pct,
        progress_label=label,
    )
