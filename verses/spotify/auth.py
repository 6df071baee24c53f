from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Any, Callable

import requests
import spotipy
from spotipy.cache_handler import CacheFileHandler
from spotipy.oauth2 import SpotifyOauthError, SpotifyPKCE

from verses.config import AppConfig

from .errors import AuthorizationError
from .oauth import CallbackListener

logger = logging.getLogger(__name__)

SCOPE = "user-read-playback-state user-read-currently-playing"


def make_auth_manager(cfg: AppConfig, state: str | None = None) -> SpotifyPKCE:
    if not cfg.spotify_client_id:
        raise AuthorizationError("Spotify client id is not configured")
    cfg.token_cache_path.parent.mkdir(parents=True, exist_ok=True)
    return SpotifyPKCE(
        client_id=cfg.spotify_client_id,
        redirect_uri=cfg.redirect_uri,
        scope=SCOPE,
        state=state,
        cache_handler=CacheFileHandler(cache_path=str(cfg.token_cache_path)),
        open_browser=False,
    )


def cached_auth(cfg: AppConfig) -> SpotifyPKCE | None:
    """Auth manager backed by a valid (possibly refreshed) cached token, else None."""
    auth = make_auth_manager(cfg)
    try:
        token = auth.validate_token(auth.cache_handler.get_cached_token())
    except (SpotifyOauthError, requests.RequestException) as e:
        logger.warning("Cached Spotify token unusable: %s", e)
        return None
    return auth if token else None


async def login(cfg: AppConfig, open_url: Callable[[str], Any] | None = None) -> SpotifyPKCE:
    """
    Authorization code + PKCE flow: listen on the redirect port, send the user
    to the authorize URL, check the returned state, exchange the code.
    """
    state = secrets.token_urlsafe(12)
    auth = make_auth_manager(cfg, state=state)

    listener = CallbackListener(cfg.redirect_host, cfg.redirect_port)
    await listener.start()
    try:
        url = auth.get_authorize_url()
        logger.info("Authorize at %s", url)
        if open_url is not None:
            open_url(url)
        code, returned_state = await listener.wait()
    finally:
        await listener.close()

    if not secrets.compare_digest(returned_state.encode(), state.encode()):
        raise AuthorizationError("OAuth state mismatch, refusing the authorization code")

    try:
        await asyncio.to_thread(auth.get_access_token, code, False)
    except (SpotifyOauthError, requests.RequestException) as e:
        raise AuthorizationError(f"Token exchange failed: {e}") from e
    logger.info("Spotify authorization complete, token cached at %s", cfg.token_cache_path)
    return auth


def make_client(cfg: AppConfig, auth: SpotifyPKCE) -> spotipy.Spotify:
    return spotipy.Spotify(auth_manager=auth, requests_timeout=cfg.api_timeout_s)


def logout(cfg: AppConfig) -> bool:
    if cfg.token_cache_path.exists():
        cfg.token_cache_path.unlink()
        return True
    return False
