from __future__ import annotations

import hashlib
import json
import logging

from verses.config import DisplayConfig
from verses.events import TrackMetadata
from verses.lyrics.model import Lyrics

logger = logging.getLogger(__name__)


def content_hash(lyrics: Lyrics, metadata: TrackMetadata | None) -> str:
    payload = {
        "language": lyrics.language,
        "sync_type": lyrics.sync_type.value,
        "lines": [[ln.text, ln.start_ms] for ln in lyrics.lines],
        "track": None
        if metadata is None
        else {
            "name": metadata.name,
            "artists": list(metadata.artists),
            "album": metadata.album,
            "genres": list(metadata.genres),
            "popularity": metadata.popularity,
        },
    }
    raw = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return hashlib.blake2b(raw.encode("utf-8"), digest_size=16).hexdigest()


class InfoMemoizer:
    """
    Formatted "about this track" lines, recomputed only when the content
    hash changes. Keyed by content, so a re-fetch of identical data is a hit.
    """

    def __init__(self, display: DisplayConfig | None = None):
        self.display = display or DisplayConfig()
        self._last_hash: str | None = None
        self._last_lines: tuple[str, ...] = ()
        self.hits = 0
        self.misses = 0

    def render(self, lyrics: Lyrics, metadata: TrackMetadata | None) -> tuple[str, ...]:
        h = content_hash(lyrics, metadata)
        if h == self._last_hash:
            self.hits += 1
            return self._last_lines

        self.misses += 1
        lines = self._format(metadata)
        self._last_hash = h
        self._last_lines = lines
        return lines

    def _format(self, metadata: TrackMetadata | None) -> tuple[str, ...]:
        if metadata is None:
            return ()
        d = self.display
        popularity = "?" if metadata.popularity is None else metadata.popularity
        out: list[str] = []
        if d.show_name:
            out.append(d.name_format.format(name=metadata.name))
        if d.show_artists:
            out.append(d.artists_format.format(artists=", ".join(metadata.artists)))
        if d.show_album:
            out.append(d.album_format.format(album=metadata.album))
        if d.show_genres:
            out.append(d.genres_format.format(genres=", ".join(metadata.genres)))
        if d.show_popularity:
            out.append(d.popularity_format.format(popularity=popularity))
        return tuple(out)
