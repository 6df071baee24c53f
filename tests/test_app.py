from __future__ import annotations

import asyncio

import pytest

from verses.poller import Dispatcher
from verses.spotify.errors import PlayerUnavailable
from verses.state.tracker import SharedTracker
from verses.app import run_pipeline
from tests.mocks.player_mock import MockLyrics, MockPlayer, make_lyrics, make_metadata

LYRICS = make_lyrics((0, "first"), (10_000, "second"), (20_000, "third"))


def _dispatcher(player: MockPlayer, lyrics: MockLyrics) -> Dispatcher:
    return Dispatcher(player, lyrics, tick_s=0)


class TestRunPipeline:
    def test_tracker_reflects_drained_events(self):
        player = MockPlayer({"A": make_metadata("Song A")}).play("A", 0).play("A", 15_000)
        tracker = SharedTracker()

        with pytest.raises(PlayerUnavailable):
            asyncio.run(run_pipeline(_dispatcher(player, MockLyrics({"A": LYRICS})), tracker, capacity=1))

        snap = tracker.snapshot()
        assert snap.metadata.name == "Song A"
        assert snap.current_line == 1
        assert snap.current_text == "second"
        assert snap.elapsed_ms == 15_000

    def test_track_without_lyrics(self):
        player = MockPlayer({"B": make_metadata("Song B")}).play("B", 5_000)
        tracker = SharedTracker()

        with pytest.raises(PlayerUnavailable):
            asyncio.run(run_pipeline(_dispatcher(player, MockLyrics()), tracker))

        snap = tracker.snapshot()
        assert snap.metadata.name == "Song B"
        assert snap.lyrics.lines == ()
        assert snap.current_line == -1

    def test_presenter_is_cancelled_when_poller_fails(self):
        player = MockPlayer().idle()
        cancelled = []

        async def presenter():
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise

        with pytest.raises(PlayerUnavailable):
            asyncio.run(run_pipeline(_dispatcher(player, MockLyrics()), SharedTracker(), presenter=presenter()))
        assert cancelled == [True]

    def test_presenter_failure_stops_poller(self):
        player = MockPlayer().idle()
        player.repeat_last = True

        async def presenter():
            await asyncio.sleep(0)
            raise RuntimeError("terminal gone")

        with pytest.raises(RuntimeError, match="terminal gone"):
            asyncio.run(run_pipeline(_dispatcher(player, MockLyrics()), SharedTracker(), presenter=presenter()))
        assert player.polls >= 1
