from __future__ import annotations

import asyncio

import pytest
from spotipy.exceptions import SpotifyException

from verses.spotify.client import SpotifyPlayer, metadata_from_json, playback_from_json
from verses.spotify.errors import PlayerUnavailable

TRACK = {
    "id": "t1",
    "name": "Song",
    "artists": [{"id": "ar1", "name": "First"}, {"id": "ar2", "name": "Second"}],
    "album": {"name": "Record"},
    "duration_ms": 200000,
    "popularity": 77,
}


class FakeSpotify:
    def __init__(self, playing=None, fail: bool = False):
        self.playing = playing
        self.fail = fail
        self.artist_calls: list[str] = []

    def current_user_playing_track(self):
        if self.fail:
            raise SpotifyException(401, -1, "The access token expired")
        return self.playing

    def track(self, track_id):
        return dict(TRACK, id=track_id)

    def artist(self, artist_id):
        self.artist_calls.append(artist_id)
        return {"id": artist_id, "genres": ["indie", "rock"]}


class TestMapping:
    def test_playback_from_json(self):
        st = playback_from_json({"is_playing": True, "progress_ms": 1500, "item": TRACK})
        assert st.item_id == "t1"
        assert st.progress_ms == 1500
        assert st.duration_ms == 200000
        assert st.is_playing

    @pytest.mark.parametrize("data", [None, {}, {"item": None}, {"item": {"id": None, "name": "local"}}])
    def test_nothing_playing(self, data):
        assert playback_from_json(data) is None

    def test_metadata_from_json(self):
        md = metadata_from_json(TRACK, ("indie",))
        assert md.name == "Song"
        assert md.artists == ("First", "Second")
        assert md.album == "Record"
        assert md.duration_ms == 200000
        assert md.genres == ("indie",)
        assert md.popularity == 77

    def test_metadata_without_popularity(self):
        md = metadata_from_json({"name": "x", "artists": [], "album": {}})
        assert md.popularity is None
        assert md.artists == ()


class TestSpotifyPlayer:
    def test_current_playback(self):
        player = SpotifyPlayer(FakeSpotify({"progress_ms": 10, "item": TRACK}))
        st = asyncio.run(player.current_playback())
        assert st.item_id == "t1"

    def test_track_details_uses_primary_artist(self):
        sp = FakeSpotify()
        md = asyncio.run(SpotifyPlayer(sp).track_details("t9"))
        assert sp.artist_calls == ["ar1"]
        assert md.genres == ("indie", "rock")

    def test_api_errors_become_player_unavailable(self):
        player = SpotifyPlayer(FakeSpotify(fail=True))
        with pytest.raises(PlayerUnavailable):
            asyncio.run(player.current_playback())
