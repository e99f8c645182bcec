from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os

from dbus_next.aio import MessageBus
from dbus_next.constants import BusType

from player_notify.actions import ActionBus, ActionSubscription
from player_notify.artwork import ArtworkResolver, notification_height
from player_notify.config import AppConfig, load_config
from player_notify.controller import NotificationController
from player_notify.downloads import DirectoryDownloadIndex
from player_notify.ipc import ControlServer, send_ipc
from player_notify.notifier import FreedesktopNotifier
from player_notify.player import MprisPlayer
from player_notify.watcher import PlayerWatcher


LOGGER = logging.getLogger(__name__)


def build_artwork_resolver(config: AppConfig) -> ArtworkResolver:
    return ArtworkResolver(
        DirectoryDownloadIndex(config.downloads_dir),
        server_url=config.server_url,
        api_token=config.api_token,
        display_scale=config.display_scale,
        timeout_seconds=config.request_timeout_seconds,
    )


async def run_daemon(config: AppConfig) -> None:
    bus = await MessageBus(bus_type=BusType.SESSION).connect()
    player = MprisPlayer(
        bus,
        config.player_name,
        seek_back_ms=config.seek_back_ms,
        seek_forward_ms=config.seek_forward_ms,
    )
    action_bus = ActionBus()
    notifier = FreedesktopNotifier(
        bus,
        action_bus,
        app_name=config.app_name,
        desktop_entry=config.desktop_entry,
        on_content=player.raise_window,
        on_closed=lambda: controller.notification_closed(),
    )
    artwork = build_artwork_resolver(config)
    controller = NotificationController(
        player,
        notifier,
        artwork,
        ActionSubscription(player, action_bus),
        host_renders_artwork_natively=config.host_renders_artwork_natively,
    )
    watcher = PlayerWatcher(player, controller, config.poll_interval_seconds)
    ipc = ControlServer(action_bus, controller, player, config.control_socket_path)

    await ipc.start()
    await watcher.start()
    LOGGER.info("Watching %s for now-playing notifications", player.bus_name)

    try:
        await asyncio.Event().wait()
    finally:
        await ipc.stop()
        await watcher.stop()
        artwork.close()
        bus.disconnect()


async def run_ctl_command(config: AppConfig, action: str) -> None:
    response = await send_ipc(config.control_socket_path, action)
    if not response.get("ok", False):
        raise SystemExit(f"ctl command failed: {response.get('error', 'unknown error')}")
    print(json.dumps(response, indent=2))


async def run_status_command(config: AppConfig) -> None:
    response = await send_ipc(config.control_socket_path, "status")
    if not response.get("ok", False):
        raise SystemExit(f"status command failed: {response.get('error', 'unknown error')}")
    print(json.dumps(response.get("state", {}), indent=2))


def run_doctor(config: AppConfig) -> None:
    checks = {
        "session_bus_address": bool(os.getenv("DBUS_SESSION_BUS_ADDRESS")),
        "player_bus_name": f"org.mpris.MediaPlayer2.{config.player_name}",
        "server_url": config.server_url or None,
        "api_token_present": bool(config.api_token),
        "downloads_dir": str(config.downloads_dir),
        "downloads_dir_exists": config.downloads_dir.is_dir(),
        "artwork_height_px": notification_height(config.display_scale),
        "host_renders_artwork_natively": config.host_renders_artwork_natively,
        "control_socket_path": config.control_socket_path,
    }
    print(json.dumps(checks, indent=2))


async def run(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    command = args.command or "run"

    if command == "run":
        await run_daemon(config)
        return
    if command == "doctor":
        run_doctor(config)
        return
    if command == "status":
        await run_status_command(config)
        return
    if command == "ctl":
        await run_ctl_command(config, args.action)
        return

    raise SystemExit(f"Unknown command: {command}")
