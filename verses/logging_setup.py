from __future__ import annotations

import logging
import os
from pathlib import Path


def setup_logging(debug: bool, log_path: Path | None = None) -> None:
    level = logging.DEBUG if debug else logging.INFO
    # Allow env override for e.g. systemd service runs
    level_name = os.getenv("VERSES_LOG_LEVEL")
    if level_name:
        named = getattr(logging, level_name.upper(), None)
        if isinstance(named, int):
            level = named

    kwargs: dict[str, object] = {}
    if log_path is not None:
        # the terminal belongs to the renderer while watching
        log_path.parent.mkdir(parents=True, exist_ok=True)
        kwargs["filename"] = str(log_path)
        kwargs["encoding"] = "utf-8"

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        **kwargs,
    )
    # spotipy/urllib3 are chatty at debug level
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
