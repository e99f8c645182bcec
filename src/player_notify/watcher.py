from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from player_notify.controller import NotificationController
from player_notify.models import MediaSource, PlaybackSnapshot
from player_notify.player import PlayerSurface
from player_notify.projector import POSTABLE_STATES


LOGGER = logging.getLogger(__name__)


class RefreshablePlayer(PlayerSurface, Protocol):
    async def refresh(self) -> None: ...


class PlayerWatcher:
    """Polls the player and drives post()/dismiss() on meaningful state changes."""

    def __init__(
        self,
        player: RefreshablePlayer,
        controller: NotificationController,
        poll_interval_seconds: float = 1.0,
    ) -> None:
        self._player = player
        self._controller = controller
        self._poll_interval = poll_interval_seconds
        self._last: tuple[PlaybackSnapshot | None, MediaSource | None] | None = None
        self._shown = False
        self._task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()

    async def start(self) -> None:
        if self._task:
            return
        self._task = asyncio.create_task(self._sync_loop(), name="player-notify-watch")

    async def stop(self) -> None:
        self._stopped.set()
        if self._task:
            await self._task
            self._task = None
        if self._shown:
            await self._controller.dismiss()
            self._shown = False

    async def sync_once(self) -> None:
        await self._player.refresh()
        snapshot = self._player.snapshot()
        source = self._player.current_media_source()
        current = (snapshot, source)
        if current == self._last:
            return
        self._last = current

        if snapshot is not None and source is not None and snapshot.state in POSTABLE_STATES:
            self._controller.post()
            self._shown = True
        elif self._shown:
            LOGGER.debug("Playback ended; dismissing notification")
            await self._controller.dismiss()
            self._shown = False

    async def _sync_loop(self) -> None:
        while not self._stopped.is_set():
            try:
                await self.sync_once()
            except Exception:
                LOGGER.exception("Failed to sync player state")
            finally:
                try:
                    await asyncio.wait_for(self._stopped.wait(), timeout=self._poll_interval)
                except TimeoutError:
                    pass
