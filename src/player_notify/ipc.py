from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from player_notify.actions import ActionBus, NotificationAction
from player_notify.controller import NotificationController
from player_notify.player import PlayerSurface


CTL_ACTIONS: dict[str, NotificationAction] = {
    "play": NotificationAction.PLAY,
    "pause": NotificationAction.PAUSE,
    "rewind": NotificationAction.REWIND,
    "fast_forward": NotificationAction.FAST_FORWARD,
    "previous": NotificationAction.PREVIOUS,
    "next": NotificationAction.NEXT,
    "stop": NotificationAction.STOP,
}


class ControlServer:
    def __init__(
        self,
        action_bus: ActionBus,
        controller: NotificationController,
        player: PlayerSurface,
        socket_path: str,
    ) -> None:
        self._action_bus = action_bus
        self._controller = controller
        self._player = player
        self._socket_path = Path(socket_path)
        self._server: asyncio.AbstractServer | None = None

    async def start(self) -> None:
        self._socket_path.unlink(missing_ok=True)
        self._server = await asyncio.start_unix_server(
            self._handle_client,
            path=str(self._socket_path),
        )

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self._socket_path.unlink(missing_ok=True)

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        try:
            line = await reader.readline()
            if not line:
                return
            request = json.loads(line.decode("utf-8"))
            response = await self.dispatch(request)
        except Exception as exc:  # noqa: BLE001
            response = {"ok": False, "error": str(exc)}
        writer.write((json.dumps(response) + "\n").encode("utf-8"))
        await writer.drain()
        writer.close()
        await writer.wait_closed()

    async def dispatch(self, request: dict[str, Any]) -> dict[str, Any]:
        action = str(request.get("action", "")).strip()
        if action == "status":
            return {"ok": True, "state": self._state_payload()}
        target = CTL_ACTIONS.get(action)
        if target is None:
            return {"ok": False, "error": f"unknown action: {action}"}
        # Not delivered while no notification is shown: nothing is subscribed.
        delivered = await self._action_bus.deliver(target.action)
        return {"ok": True, "delivered": delivered}

    def _state_payload(self) -> dict[str, Any]:
        snapshot = self._player.snapshot()
        payload = self._controller.last_payload
        return {
            "playback": None
            if snapshot is None
            else {
                "state": snapshot.state.value,
                "play_when_ready": snapshot.play_when_ready,
                "has_previous": snapshot.has_previous,
                "has_next": snapshot.has_next,
                "is_playing": snapshot.is_playing,
            },
            "notification": None
            if payload is None
            else {
                "title": payload.title,
                "subtitle": payload.subtitle,
                "actions": [action.name for action in payload.actions],
                "ongoing": payload.ongoing,
                "has_thumbnail": payload.thumbnail is not None,
            },
        }


async def send_ipc(socket_path: str, action: str, **payload: Any) -> dict[str, Any]:
    try:
        reader, writer = await asyncio.open_unix_connection(socket_path)
    except FileNotFoundError:
        return {"ok": False, "error": "daemon socket not found"}
    except OSError as exc:
        return {"ok": False, "error": str(exc)}
    request = {"action": action, **payload}
    writer.write((json.dumps(request) + "\n").encode("utf-8"))
    await writer.drain()
    line = await reader.readline()
    writer.close()
    await writer.wait_closed()
    if not line:
        return {"ok": False, "error": "empty response"}
    return json.loads(line.decode("utf-8"))
