from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import tomllib


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "player-notify" / "config.toml"
DEFAULT_DOWNLOADS_DIR = Path.home() / ".local" / "share" / "player-notify" / "downloads"


@dataclass(slots=True)
class AppConfig:
    poll_interval_seconds: float = 1.0
    control_socket_path: str = "/tmp/player-notify.sock"
    app_name: str = "Media Player"
    desktop_entry: str = ""
    player_name: str = "jellyfin"
    seek_back_ms: int = 10_000
    seek_forward_ms: int = 10_000
    server_url: str = ""
    api_token: str = ""
    request_timeout_seconds: float = 10.0
    downloads_dir: Path = DEFAULT_DOWNLOADS_DIR
    display_scale: float = 1.0
    host_renders_artwork_natively: bool = False


def load_config(path: Path | None = None) -> AppConfig:
    resolved = path or DEFAULT_CONFIG_PATH
    if resolved.exists():
        raw = tomllib.loads(resolved.read_text(encoding="utf-8"))
    else:
        raw = {}
    app = raw.get("app", {})
    player = raw.get("player", {})
    server = raw.get("server", {})
    artwork = raw.get("artwork", {})

    configured_url = str(server.get("url", ""))
    configured_token = str(server.get("api_token", ""))

    return AppConfig(
        poll_interval_seconds=float(app.get("poll_interval_seconds", 1.0)),
        control_socket_path=str(app.get("control_socket_path", "/tmp/player-notify.sock")),
        app_name=str(app.get("app_name", "Media Player")),
        desktop_entry=str(app.get("desktop_entry", "")),
        player_name=str(player.get("name", "jellyfin")),
        seek_back_ms=int(player.get("seek_back_ms", 10_000)),
        seek_forward_ms=int(player.get("seek_forward_ms", 10_000)),
        server_url=os.getenv("PLAYER_NOTIFY_SERVER_URL", configured_url),
        api_token=os.getenv("PLAYER_NOTIFY_API_TOKEN", configured_token),
        request_timeout_seconds=float(server.get("timeout_seconds", 10.0)),
        downloads_dir=Path(
            str(artwork.get("downloads_dir", DEFAULT_DOWNLOADS_DIR))
        ).expanduser(),
        display_scale=float(artwork.get("display_scale", 1.0)),
        host_renders_artwork_natively=_as_bool(
            artwork.get("host_renders_artwork_natively", False)
        ),
    )


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
