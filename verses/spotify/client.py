from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Callable, TypeVar

import requests
import spotipy
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOauthError

from verses.events import TrackMetadata

from .errors import PlayerUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class PlaybackState:
    item_id: str
    progress_ms: int
    duration_ms: int
    is_playing: bool


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    try:
        return str(value)
    except Exception:
        return ""


def playback_from_json(data: dict[str, Any] | None) -> PlaybackState | None:
    """None when nothing is playing or the item has no stable id (ads, local files)."""
    if not data:
        return None
    item = data.get("item")
    if not item or not item.get("id"):
        return None
    return PlaybackState(
        item_id=_to_str(item["id"]),
        progress_ms=max(int(data.get("progress_ms") or 0), 0),
        duration_ms=int(item.get("duration_ms") or 0),
        is_playing=bool(data.get("is_playing")),
    )


def metadata_from_json(track: dict[str, Any], genres: tuple[str, ...] = ()) -> TrackMetadata:
    popularity = track.get("popularity")
    return TrackMetadata(
        name=_to_str(track.get("name")),
        artists=tuple(_to_str(a.get("name")) for a in track.get("artists") or [] if a.get("name")),
        album=_to_str((track.get("album") or {}).get("name")),
        duration_ms=int(track.get("duration_ms") or 0),
        genres=genres,
        popularity=int(popularity) if popularity is not None else None,
    )


class SpotifyPlayer:
    """
    Spotify Web API player queries. spotipy is blocking, so every call runs
    in the default executor and the event loop stays free.
    """

    def __init__(self, sp: spotipy.Spotify):
        self._sp = sp

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except (SpotifyException, SpotifyOauthError, requests.RequestException) as e:
            raise PlayerUnavailable(str(e)) from e

    async def current_playback(self) -> PlaybackState | None:
        data = await self._call(self._sp.current_user_playing_track)
        return playback_from_json(data)

    async def artist_details(self, artist_id: str) -> tuple[str, ...]:
        artist = await self._call(self._sp.artist, artist_id)
        return tuple(_to_str(g) for g in artist.get("genres") or [])

    async def track_details(self, track_id: str) -> TrackMetadata:
        """Track metadata plus the primary artist's genres."""
        track = await self._call(self._sp.track, track_id)
        artists = track.get("artists") or []
        genres: tuple[str, ...] = ()
        primary_id = artists[0].get("id") if artists else None
        if primary_id:
            genres = await self.artist_details(primary_id)
        else:
            logger.debug("Track %s has no primary artist id, skipping genres", track_id)
        return metadata_from_json(track, genres)
