from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_LYRICS_API_URL = "https://lyricstify.vercel.app/api/lyrics"


class ConfigError(ValueError):
    pass


def _config_dir() -> Path:
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "verses"
    return Path.home() / ".config" / "verses"


def _cache_dir() -> Path:
    xdg = os.getenv("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / "verses"
    return Path.home() / ".cache" / "verses"


def _config_file() -> Path:
    return _config_dir() / "config.json"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw not in ("0", "false", "False", "no")


@dataclass(frozen=True)
class DisplayConfig:
    """Which info fields are shown and their str.format templates."""

    show_name: bool = True
    name_format: str = "Name: {name}"
    show_artists: bool = True
    artists_format: str = "Artists: {artists}"
    show_album: bool = True
    album_format: str = "Album: {album}"
    show_genres: bool = True
    genres_format: str = "Genres: {genres}"
    show_popularity: bool = True
    popularity_format: str = "Popularity: {popularity}%"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DisplayConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Unknown display options ignored: %s", ", ".join(sorted(unknown)))
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class AppConfig:
    # Storage
    config_dir: Path
    cache_dir: Path
    token_cache_path: Path
    log_path: Path

    # Spotify
    spotify_client_id: str | None
    redirect_host: str
    redirect_port: int

    # Lyrics service
    lyrics_api_url: str
    api_timeout_s: float
    api_max_retries: int
    api_backoff_base_s: float

    # Polling
    poll_interval_s: float
    channel_capacity: int

    # Rendering
    redraw_interval_s: float
    scroll_offset: int
    progress_percentage: bool
    use_alt_screen: bool
    display: DisplayConfig = field(default_factory=DisplayConfig)

    # Romanization of non-English lyrics and titles
    romanize_unicode: bool = False
    romanize_exclude: tuple[str, ...] = ()
    romanize_track_names: bool = True

    @property
    def redirect_uri(self) -> str:
        return f"http://{self.redirect_host}:{self.redirect_port}/callback"


def _load_file(config_dir: Path) -> dict[str, Any]:
    cfg_path = config_dir / "config.json"
    if not cfg_path.exists():
        return {}
    try:
        data = json.loads(cfg_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read {cfg_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{cfg_path} must contain a JSON object")
    return data


def _str_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise TypeError(f"expected a list of language tags, got {value!r}")
    return tuple(str(v) for v in value)


def load_config() -> AppConfig:
    # Priority: config.json -> VERSES_* env -> defaults
    config_dir = _config_dir()
    cache_dir = _cache_dir()
    data = _load_file(config_dir)

    def pick(key: str, env: str, default: str) -> Any:
        if key in data and data[key] is not None:
            return data[key]
        return os.getenv(env, default)

    try:
        return AppConfig(
            config_dir=config_dir,
            cache_dir=cache_dir,
            token_cache_path=cache_dir / "spotify.json",
            log_path=cache_dir / "verses.log",
            spotify_client_id=(pick("spotify_client_id", "VERSES_SPOTIFY_CLIENT_ID", "") or None),
            redirect_host=str(pick("redirect_host", "VERSES_REDIRECT_HOST", "127.0.0.1")),
            redirect_port=int(pick("redirect_port", "VERSES_REDIRECT_PORT", "8888")),
            lyrics_api_url=str(pick("lyrics_api_url", "VERSES_LYRICS_API_URL", DEFAULT_LYRICS_API_URL)),
            api_timeout_s=float(os.getenv("VERSES_API_TIMEOUT", "10.0")),
            api_max_retries=int(os.getenv("VERSES_API_MAX_RETRIES", "3")),
            api_backoff_base_s=float(os.getenv("VERSES_API_BACKOFF_BASE", "1.0")),
            poll_interval_s=float(pick("poll_interval", "VERSES_POLL_INTERVAL", "1.0")),
            channel_capacity=int(os.getenv("VERSES_CHANNEL_CAPACITY", "4")),
            redraw_interval_s=float(os.getenv("VERSES_REDRAW_INTERVAL", "0.25")),
            scroll_offset=int(pick("scroll_offset", "VERSES_SCROLL_OFFSET", "2")),
            progress_percentage=bool(data.get("progress_percentage", _env_bool("VERSES_PROGRESS_PERCENT", False))),
            use_alt_screen=_env_bool("VERSES_ALT_SCREEN", True),
            display=DisplayConfig.from_dict(data.get("display") or {}),
            romanize_unicode=bool(data.get("romanize_unicode", _env_bool("VERSES_ROMANIZE", False))),
            romanize_exclude=_str_tuple(data.get("romanize_exclude") or ()),
            romanize_track_names=bool(data.get("romanize_track_names", True)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}") from e


_SAMPLE_FIELDS = {
    "name": "Song",
    "artists": "Artist A, Artist B",
    "album": "Album",
    "genres": "pop, rock",
    "popularity": 50,
}


def validate_config(cfg: AppConfig) -> list[str]:
    """Returns a list of problems; empty means the config is usable."""
    problems: list[str] = []
    if not cfg.spotify_client_id:
        problems.append("spotify_client_id is not set (config.json or VERSES_SPOTIFY_CLIENT_ID)")
    if not cfg.lyrics_api_url.startswith(("http://", "https://")):
        problems.append(f"lyrics_api_url is not an http(s) URL: {cfg.lyrics_api_url}")
    if not 0 <= cfg.redirect_port <= 65535:
        problems.append(f"redirect_port out of range: {cfg.redirect_port}")
    if cfg.poll_interval_s <= 0:
        problems.append("poll_interval must be > 0")
    if cfg.channel_capacity < 1:
        problems.append("channel capacity must be >= 1")

    for f in fields(DisplayConfig):
        if not f.name.endswith("_format"):
            continue
        template = getattr(cfg.display, f.name)
        try:
            template.format(**_SAMPLE_FIELDS)
        except (KeyError, IndexError, ValueError) as e:
            problems.append(f"display.{f.name} is not a valid template ({e!r}): {template!r}")
    return problems


def save_config_value(key: str, value: Any) -> Path:
    cfg_path = _config_file()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    data: dict[str, Any] = {}
    if cfg_path.exists():
        try:
            data = json.loads(cfg_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Overwriting unreadable %s", cfg_path)
    data[key] = value
    cfg_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return cfg_path
