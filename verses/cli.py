from __future__ import annotations

import asyncio
from dataclasses import replace
import logging

import typer

from verses.app import watch as watch_loop
from verses.channel import ChannelClosed
from verses.config import AppConfig, ConfigError, load_config, save_config_value, validate_config
from verses.logging_setup import setup_logging
from verses.lyrics.client import LyricsFetchError
from verses.spotify.auth import cached_auth, login as login_flow, logout as drop_token
from verses.spotify.errors import SpotifyError

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load() -> AppConfig:
    try:
        return load_config()
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _ensure_client_id(cfg: AppConfig) -> AppConfig:
    if cfg.spotify_client_id:
        return cfg
    typer.echo("Looks like it's your first time launching verses!")
    typer.echo("Create a Spotify app at https://developer.spotify.com/dashboard/create")
    typer.echo(f'Set its Redirect URI to "{cfg.redirect_uri}".')
    client_id = typer.prompt("Enter client ID (not client secret!)").strip()
    path = save_config_value("spotify_client_id", client_id)
    typer.echo(f"Your config has been saved to {path}")
    return replace(cfg, spotify_client_id=client_id)


def _login(cfg: AppConfig):
    typer.echo("Opening a Spotify authentication window in your browser...")
    try:
        return asyncio.run(login_flow(cfg, open_url=typer.launch))
    except SpotifyError as e:
        typer.echo(f"Failed to log in: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def watch(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Seconds between player polls"),
    no_alt_screen: bool = typer.Option(False, "--no-alt-screen", help="Do not use alternate screen buffer"),
):
    """
    Show synced lyrics for what Spotify is playing right now.
    """
    cfg = _load()
    if poll_interval is not None:
        cfg = replace(cfg, poll_interval_s=poll_interval)
    if no_alt_screen:
        cfg = replace(cfg, use_alt_screen=False)

    setup_logging(debug, cfg.log_path)
    cfg = _ensure_client_id(cfg)

    auth = cached_auth(cfg)
    if auth is None:
        auth = _login(cfg)

    try:
        code = watch_loop(cfg, auth)
    except (SpotifyError, LyricsFetchError, ChannelClosed) as e:
        logger.exception("Stopped on fatal error")
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    raise typer.Exit(code=code)


@app.command()
def login(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")):
    """Authorize verses with your Spotify account."""
    cfg = _load()
    setup_logging(debug)
    cfg = _ensure_client_id(cfg)
    _login(cfg)
    typer.echo(f"Logged in. Token cached at {cfg.token_cache_path}")


@app.command()
def logout():
    """Forget the cached Spotify token."""
    cfg = _load()
    if drop_token(cfg):
        typer.echo(f"Token removed: {cfg.token_cache_path}")
    else:
        typer.echo("No cached token")


@app.command()
def validate():
    """Validate the configuration and exit."""
    cfg = _load()
    problems = validate_config(cfg)
    if problems:
        for p in problems:
            typer.echo(f"- {p}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Config validated")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
