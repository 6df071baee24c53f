from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from verses.channel import EventChannel
from verses.events import (
    NewTrack,
    NewTrackNoLyrics,
    PlaybackEvent,
    SwitchLyricLine,
    TrackMetadata,
    TrackProgress,
)
from verses.lyrics.model import Lyrics
from verses.spotify.client import PlaybackState
from verses.sync.tracker import LineTracker

logger = logging.getLogger(__name__)


class Player(Protocol):
    async def current_playback(self) -> PlaybackState | None: ...

    async def track_details(self, track_id: str) -> TrackMetadata: ...


class LyricsSource(Protocol):
    def fetch(self, track_id: str) -> Lyrics | None: ...


class Dispatcher:
    """
    Poll loop:
    player -> (track id, position) -> on change: metadata + lyrics -> events.

    Any player or lyrics error ends the loop and propagates to the caller.
    """

    def __init__(self, player: Player, lyrics: LyricsSource, *, tick_s: float = 1.0):
        self.player = player
        self.lyrics = lyrics
        self.tick_s = tick_s

        self.last_track_id = ""
        self.cached_lyrics: Lyrics | None = None
        self.line_tracker = LineTracker()

    async def run(self, events: EventChannel[PlaybackEvent]) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            caught_up = await self.poll_once(events)
            if caught_up:
                await asyncio.sleep(max(self.tick_s - (loop.time() - started), 0.0))

    async def poll_once(self, events: EventChannel[PlaybackEvent]) -> bool:
        """
        One iteration. Returns False right after a track transition so the
        caller polls again immediately and line sync catches up.
        """
        status = await self.player.current_playback()
        if status is None:
            logger.debug("Nothing playing")
            return True

        if status.item_id == self.last_track_id:
            if self.cached_lyrics is not None:
                await self._emit_progress(events, status.progress_ms)
            return True

        await self._switch_track(events, status.item_id)
        return False

    async def _emit_progress(self, events: EventChannel[PlaybackEvent], progress_ms: int) -> None:
        await events.send(TrackProgress(elapsed_ms=progress_ms))

        # unsynced lines carry no usable timing, nothing to highlight
        if self.cached_lyrics is None or not self.cached_lyrics.is_synced:
            return

        changed = self.line_tracker.changed_index(progress_ms)
        if changed is not None:
            await events.send(SwitchLyricLine(index=changed))

    async def _switch_track(self, events: EventChannel[PlaybackEvent], track_id: str) -> None:
        logger.info("Track changed: %s -> %s", self.last_track_id or "<none>", track_id)
        self.last_track_id = track_id
        self.line_tracker = LineTracker()

        await events.send(TrackProgress(elapsed_ms=0))

        metadata = await self.player.track_details(track_id)
        lyrics = await asyncio.to_thread(self.lyrics.fetch, track_id)

        if lyrics is not None:
            self.cached_lyrics = lyrics
            self.line_tracker = LineTracker.from_lyrics(lyrics)
            await events.send(NewTrack(metadata=metadata, lyrics=lyrics))
        else:
            self.cached_lyrics = None
            await events.send(NewTrackNoLyrics(metadata=metadata))
