from __future__ import annotations

import shutil
import signal
import sys
from dataclasses import dataclass
from typing import Callable, TextIO

import colorama

from .view import Frame

CSI = "\x1b["


def _sgr(*codes: int) -> str:
    return CSI + ";".join(str(c) for c in codes) + "m"


@dataclass(frozen=True, slots=True)
class Theme:
    title: str = _sgr(36, 1)  # cyan bold
    current: str = _sgr(32, 1)  # green bold
    dim: str = _sgr(90)  # bright black
    info: str = _sgr(37)
    progress: str = _sgr(32)
    reset: str = _sgr(0)


def _bar(percent: int, width: int) -> str:
    filled = width * percent // 100
    return "█" * filled + "░" * (width - filled)


class AnsiRenderer:
    def __init__(self, use_alt_screen: bool = True, theme: Theme | None = None, out: TextIO | None = None):
        self.use_alt_screen = use_alt_screen
        self.theme = theme or Theme()
        self.out = out or sys.stdout
        self._entered = False
        self._resize_handler: Callable[..., None] | None = None
        self._last_frame: Frame | None = None

    def __enter__(self):
        self.enter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exit()

    def enter(self) -> None:
        if self._entered:
            return
        colorama.just_fix_windows_console()
        if self.use_alt_screen:
            self.out.write(CSI + "?1049h")  # alt screen
        self.out.write(CSI + "?25l")  # hide cursor
        self.out.write(CSI + "H" + CSI + "2J")  # home + clear
        self.out.flush()
        self._entered = True

        # redraw last frame on resize
        def _on_resize(signum=None, frame=None):
            if self._last_frame is not None:
                self.render(self._last_frame)

        self._resize_handler = _on_resize
        if hasattr(signal, "SIGWINCH"):
            signal.signal(signal.SIGWINCH, _on_resize)

    def exit(self) -> None:
        if not self._entered:
            return
        if self._resize_handler and hasattr(signal, "SIGWINCH"):
            signal.signal(signal.SIGWINCH, signal.SIG_DFL)
        self._resize_handler = None
        self.out.write(self.theme.reset)
        self.out.write(CSI + "?25h")  # show cursor
        if self.use_alt_screen:
            self.out.write(CSI + "?1049l")  # normal screen
        self.out.flush()
        self._entered = False
        self._last_frame = None

    def compose(self, frame: Frame, cols: int, rows: int) -> list[str]:
        th = self.theme
        # title + info block + blank + progress
        reserved = 1 + len(frame.info) + 2
        body_rows = max(rows - reserved, 1)

        start = min(frame.scroll_start, max(len(frame.lines) - body_rows, 0))
        end = min(start + body_rows, len(frame.lines))

        out: list[str] = [f"{th.title}♫ {frame.title} ♫{th.reset}"]
        for i in range(start, end):
            style = th.current if i == frame.current_idx else th.dim
            out.append(f"{style}{frame.lines[i].center(cols)[:cols]}{th.reset}")
        for _ in range(end - start, body_rows):
            out.append("")

        for ln in frame.info:
            out.append(f"{th.info}{ln[:cols]}{th.reset}")
        out.append("")
        if frame.progress_label:
            label = f" {frame.progress_label}"
            width = max(cols - len(label) - 1, 0)
            out.append(f"{th.progress}{_bar(frame.progress_percent, width)}{th.reset}{label}")
        return out

    def render(self, frame: Frame) -> None:
        self._last_frame = frame
        cols, rows = shutil.get_terminal_size(fallback=(80, 24))
        lines = self.compose(frame, cols, rows)

        # move home + clear, then print full frame
        self.out.write(CSI + "H" + CSI + "2J")
        self.out.write("\n".join(lines))
        self.out.write(self.theme.reset)
        self.out.flush()
