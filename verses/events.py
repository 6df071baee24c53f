from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from verses.lyrics.model import Lyrics


@dataclass(frozen=True, slots=True)
class TrackMetadata:
    name: str
    artists: tuple[str, ...]
    album: str
    duration_ms: int
    genres: tuple[str, ...] = ()
    popularity: int | None = None

    @property
    def display(self) -> str:
        if self.artists and self.name:
            return f"{', '.join(self.artists)} - {self.name}"
        return self.name or "Unknown track"


@dataclass(frozen=True, slots=True)
class NewTrack:
    metadata: TrackMetadata
    lyrics: Lyrics


@dataclass(frozen=True, slots=True)
class NewTrackNoLyrics:
    metadata: TrackMetadata


@dataclass(frozen=True, slots=True)
class SwitchLyricLine:
    index: int


@dataclass(frozen=True, slots=True)
class TrackProgress:
    elapsed_ms: int


PlaybackEvent = Union[NewTrack, NewTrackNoLyrics, SwitchLyricLine, TrackProgress]
