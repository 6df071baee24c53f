from __future__ import annotations

import logging
import time

import requests

from .model import Lyrics

logger = logging.getLogger(__name__)


class LyricsFetchError(RuntimeError):
    pass


class LyricsClient:
    """
    Time-coded lyrics keyed by Spotify track id.

    GET <base_url>/<track_id>:
      200 -> {"lyrics": {"syncType": ..., "lines": [...], "language": ...}}
      404 -> the track has no lyrics (not an error)
    """

    name = "lyrics"

    def __init__(self, base_url: str, *, timeout_s: float = 10.0, max_retries: int = 3, backoff_base_s: float = 1.0):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.max_retries = max(max_retries, 1)
        self.backoff_base_s = backoff_base_s

    def url_for(self, track_id: str) -> str:
        return f"{self.base_url}/{requests.utils.quote(track_id, safe='')}"

    def fetch(self, track_id: str) -> Lyrics | None:
        url = self.url_for(track_id)

        for attempt in range(1, self.max_retries + 1):
            try:
                r = requests.get(url, timeout=self.timeout_s)
                if r.status_code == 404:
                    logger.info("No lyrics for track %s", track_id)
                    return None
                r.raise_for_status()
                data = r.json()
            except requests.RequestException as e:
                logger.warning("Lyrics error (attempt %s/%s): %s", attempt, self.max_retries, e)
                if attempt == self.max_retries:
                    raise LyricsFetchError(f"Lyrics request failed for {track_id}: {e}") from e
                time.sleep(self.backoff_base_s * attempt)
                continue

            try:
                lyrics = Lyrics.from_json(data["lyrics"])
            except (KeyError, TypeError, ValueError) as e:
                raise LyricsFetchError(f"Malformed lyrics payload for {track_id}: {e}") from e
            logger.info(
                "Fetched %s lyrics for track %s (%d lines, lang=%s)",
                lyrics.sync_type.value,
                track_id,
                len(lyrics.lines),
                lyrics.language or "?",
            )
            return lyrics

        raise LyricsFetchError(f"Lyrics request failed for {track_id}")
