from __future__ import annotations

import io
import signal

import pytest

from verses.lyrics.model import Lyrics
from verses.render.ansi import AnsiRenderer
from verses.render.info import InfoMemoizer
from verses.render.view import (
    NO_LYRICS_TEXT,
    WAITING_TEXT,
    Frame,
    build_frame,
    format_duration,
    progress_percent,
    romanize,
)
from verses.state.tracker import TrackerSnapshot
from tests.mocks.player_mock import make_lyrics, make_metadata

LYRICS = make_lyrics(*[(i * 1000, f"line {i}") for i in range(10)])
META = make_metadata("Song", duration_ms=200_000)


@pytest.mark.parametrize("ms, expected", [(0, "00:00"), (59_999, "00:59"), (61_000, "01:01"), (3_600_000, "60:00")])
def test_format_duration(ms, expected):
    assert format_duration(ms) == expected


@pytest.mark.parametrize(
    "elapsed, duration, expected",
    [(0, 200_000, 0), (1, 200_000, 1), (100_000, 200_000, 50), (250_000, 200_000, 100), (5, 0, 0)],
)
def test_progress_percent(elapsed, duration, expected):
    assert progress_percent(elapsed, duration) == expected


class TestBuildFrame:
    def test_waiting_for_playback(self):
        frame = build_frame(TrackerSnapshot(Lyrics.empty(), -1, 0, None), InfoMemoizer())
        assert frame.lines == (WAITING_TEXT,)
        assert frame.info == ()

    def test_synced(self):
        snap = TrackerSnapshot(LYRICS, 5, 15_000, META)
        frame = build_frame(snap, InfoMemoizer(), scroll_offset=2)
        assert frame.title == "Song"
        assert frame.current_idx == 5
        assert frame.scroll_start == 3
        assert frame.lines[5] == "line 5"
        assert frame.progress_label == "00:15 / 03:20"
        assert frame.info[0] == "Name: Song"

    def test_scroll_start_never_negative(self):
        frame = build_frame(TrackerSnapshot(LYRICS, -1, 0, META), InfoMemoizer(), scroll_offset=2)
        assert frame.scroll_start == 0

    def test_no_lyrics(self):
        frame = build_frame(TrackerSnapshot(Lyrics.empty(), -1, 0, META), InfoMemoizer())
        assert frame.lines == (NO_LYRICS_TEXT,)
        assert frame.current_idx == -1

    def test_percentage_label(self):
        frame = build_frame(TrackerSnapshot(LYRICS, 0, 100_000, META), InfoMemoizer(), as_percentage=True)
        assert frame.progress_label == "50%"


class TestRomanize:
    RU = make_lyrics((0, "Привет"), (1_000, "OK"), (2_000, ""), language="ru")
    RU_META = make_metadata("Кино")

    def test_romanize_text(self):
        assert romanize("Привет мир", "ru") == "Привет мир (Privet mir)"
        assert romanize("hello", "ru") == "hello"
        assert romanize("Привет", "en") == "Привет"
        assert romanize("Привет", "ru", exclude=("ru",)) == "Привет"

    def test_lines_and_title(self):
        snap = TrackerSnapshot(self.RU, 0, 0, self.RU_META)
        frame = build_frame(snap, InfoMemoizer(), romanize_lines=True, romanize_title=True)
        assert frame.lines == ("Привет (Privet)", "OK", "")
        assert frame.title == "Кино (Kino)"
        assert frame.current_idx == 0

    def test_title_left_alone_when_track_names_disabled(self):
        snap = TrackerSnapshot(self.RU, 0, 0, self.RU_META)
        frame = build_frame(snap, InfoMemoizer(), romanize_lines=True, romanize_title=False)
        assert frame.title == "Кино"
        assert frame.lines[0] == "Привет (Privet)"

    def test_excluded_language(self):
        snap = TrackerSnapshot(self.RU, 0, 0, self.RU_META)
        frame = build_frame(
            snap, InfoMemoizer(), romanize_lines=True, romanize_title=True, romanize_exclude=("ru",)
        )
        assert frame.lines[0] == "Привет"
        assert frame.title == "Кино"

    def test_off_by_default(self):
        frame = build_frame(TrackerSnapshot(self.RU, 0, 0, self.RU_META), InfoMemoizer())
        assert frame.lines[0] == "Привет"
        assert frame.title == "Кино"


def _frame(**kw) -> Frame:
    base = dict(
        title="Song",
        lines=tuple(f"line {i}" for i in range(10)),
        current_idx=4,
        scroll_start=2,
        info=("Name: Song",),
        progress_percent=50,
        progress_label="01:40 / 03:20",
    )
    base.update(kw)
    return Frame(**base)


class TestAnsiRenderer:
    def test_compose_highlights_current_line(self):
        r = AnsiRenderer(use_alt_screen=False, out=io.StringIO())
        out = r.compose(_frame(), cols=40, rows=10)
        assert "Song" in out[0]
        highlighted = [ln for ln in out if ln.startswith(r.theme.current)]
        assert len(highlighted) == 1
        assert "line 4" in highlighted[0]
        assert out[-1].endswith("01:40 / 03:20")

    def test_compose_window_starts_at_scroll(self):
        r = AnsiRenderer(use_alt_screen=False, out=io.StringIO())
        # 10 rows: title + 1 info + blank + progress leaves 6 body rows
        out = r.compose(_frame(), cols=40, rows=10)
        body = out[1:7]
        assert "line 2" in body[0]
        assert "line 7" in body[-1]

    def test_render_writes_and_remembers_frame(self):
        buf = io.StringIO()
        r = AnsiRenderer(use_alt_screen=False, out=buf)
        frame = _frame()
        r.render(frame)
        assert "line 4" in buf.getvalue()
        assert r._last_frame == frame

    @pytest.mark.skipif(not hasattr(signal, "SIGWINCH"), reason="POSIX only")
    def test_sigwinch_handler_lifecycle(self):
        old = signal.getsignal(signal.SIGWINCH)
        buf = io.StringIO()
        r = AnsiRenderer(use_alt_screen=False, out=buf)
        try:
            r.enter()
            assert signal.getsignal(signal.SIGWINCH) is r._resize_handler
            r.render(_frame())
            size_before = len(buf.getvalue())
            r._resize_handler()
            assert len(buf.getvalue()) > size_before
            r.exit()
            assert signal.getsignal(signal.SIGWINCH) == signal.SIG_DFL
            assert r._last_frame is None
        finally:
            signal.signal(signal.SIGWINCH, old)
