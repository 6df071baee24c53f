from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from verses.channel import ChannelClosed, EventChannel
from verses.events import (
    NewTrack,
    NewTrackNoLyrics,
    PlaybackEvent,
    SwitchLyricLine,
    TrackMetadata,
    TrackProgress,
)
from verses.lyrics.model import Lyrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrackerSnapshot:
    lyrics: Lyrics
    current_line: int
    elapsed_ms: int
    metadata: TrackMetadata | None

    @property
    def current_text(self) -> str | None:
        if 0 <= self.current_line < len(self.lyrics.lines):
            return self.lyrics.lines[self.current_line].text
        return None


class SharedTracker:
    """
    Current playback projection. One writer (the event consumer), any number
    of readers through snapshot(). The lock only covers field copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._lyrics = Lyrics.empty()
        self._current_line = -1
        self._elapsed_ms = 0
        self._metadata: TrackMetadata | None = None

    def snapshot(self) -> TrackerSnapshot:
        with self._lock:
            return TrackerSnapshot(
                lyrics=self._lyrics,
                current_line=self._current_line,
                elapsed_ms=self._elapsed_ms,
                metadata=self._metadata,
            )

    def apply(self, event: PlaybackEvent) -> None:
        if isinstance(event, NewTrack):
            with self._lock:
                self._current_line = -1
                self._lyrics = event.lyrics
                self._metadata = event.metadata
            logger.debug("Tracker: new track %s (%d lines)", event.metadata.display, len(event.lyrics.lines))
        elif isinstance(event, NewTrackNoLyrics):
            with self._lock:
                self._current_line = -1
                self._lyrics = Lyrics.empty()
                self._metadata = event.metadata
            logger.debug("Tracker: new track %s without lyrics", event.metadata.display)
        elif isinstance(event, SwitchLyricLine):
            if event.index == -1:
                return
            with self._lock:
                if not 0 <= event.index < len(self._lyrics.lines):
                    logger.warning(
                        "Ignoring line %d, lyrics have %d lines", event.index, len(self._lyrics.lines)
                    )
                    return
                self._current_line = event.index
        elif isinstance(event, TrackProgress):
            with self._lock:
                self._elapsed_ms = event.elapsed_ms
        else:
            raise TypeError(f"Unknown playback event: {event!r}")


async def consume_events(channel: EventChannel[PlaybackEvent], tracker: SharedTracker) -> None:
    """Fold the event stream into the tracker until the channel is closed and drained."""
    try:
        while True:
            try:
                event = await channel.recv()
            except ChannelClosed:
                logger.info("Event channel closed, consumer stopping")
                return
            tracker.apply(event)
    finally:
        # producer sees ChannelClosed on its next send
        channel.close()
