from __future__ import annotations

import asyncio
import logging
from typing import Awaitable

from spotipy.oauth2 import SpotifyPKCE

from verses.channel import EventChannel
from verses.config import AppConfig
from verses.events import PlaybackEvent
from verses.lyrics.client import LyricsClient
from verses.poller import Dispatcher
from verses.render.ansi import AnsiRenderer
from verses.render.info import InfoMemoizer
from verses.render.view import Frame, build_frame
from verses.spotify.auth import make_client
from verses.spotify.client import SpotifyPlayer
from verses.state.tracker import SharedTracker, consume_events

logger = logging.getLogger(__name__)


async def present(tracker: SharedTracker, renderer: AnsiRenderer, memo: InfoMemoizer, cfg: AppConfig) -> None:
    """Redraw from a tracker snapshot on a fixed cadence, skipping identical frames."""
    last: Frame | None = None
    while True:
        frame = build_frame(
            tracker.snapshot(),
            memo,
            scroll_offset=cfg.scroll_offset,
            as_percentage=cfg.progress_percentage,
            romanize_lines=cfg.romanize_unicode,
            romanize_title=cfg.romanize_track_names,
            romanize_exclude=cfg.romanize_exclude,
        )
        if frame != last:
            renderer.render(frame)
            last = frame
        await asyncio.sleep(cfg.redraw_interval_s)


async def _produce(dispatcher: Dispatcher, channel: EventChannel[PlaybackEvent]) -> None:
    try:
        await dispatcher.run(channel)
    finally:
        channel.close()


async def run_pipeline(
    dispatcher: Dispatcher,
    tracker: SharedTracker,
    *,
    capacity: int = 4,
    presenter: Awaitable[None] | None = None,
) -> None:
    """
    poller -> bounded channel -> consumer -> tracker <- presenter

    Returns when any task ends. If the poller stopped, the consumer first
    drains what was already sent. The first error is re-raised after the
    remaining tasks are cancelled.
    """
    channel: EventChannel[PlaybackEvent] = EventChannel(capacity)
    producer = asyncio.create_task(_produce(dispatcher, channel), name="poller")
    consumer = asyncio.create_task(consume_events(channel, tracker), name="consumer")
    tasks = [producer, consumer]
    if presenter is not None:
        tasks.append(asyncio.create_task(presenter, name="presenter"))

    try:
        done, _pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        if producer in done:
            await asyncio.wait([consumer])
    finally:
        for t in tasks:
            if not t.done():
                t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    for t in tasks:
        if t.cancelled():
            continue
        exc = t.exception()
        if exc is not None:
            logger.error("Task %s failed: %s", t.get_name(), exc)
            raise exc
        logger.info("Task %s finished", t.get_name())


def watch(cfg: AppConfig, auth: SpotifyPKCE) -> int:
    """
    Main watch loop:
    Spotify -> (track, position) -> lyrics -> events -> tracker -> render.
    """
    player = SpotifyPlayer(make_client(cfg, auth))
    lyrics = LyricsClient(
        cfg.lyrics_api_url,
        timeout_s=cfg.api_timeout_s,
        max_retries=cfg.api_max_retries,
        backoff_base_s=cfg.api_backoff_base_s,
    )
    dispatcher = Dispatcher(player, lyrics, tick_s=cfg.poll_interval_s)
    tracker = SharedTracker()
    memo = InfoMemoizer(cfg.display)

    try:
        with AnsiRenderer(use_alt_screen=cfg.use_alt_screen) as renderer:
            asyncio.run(
                run_pipeline(
                    dispatcher,
                    tracker,
                    capacity=cfg.channel_capacity,
                    presenter=present(tracker, renderer, memo, cfg),
                )
            )
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
    return 0
