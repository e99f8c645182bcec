from __future__ import annotations

import asyncio
import logging

from player_notify.actions import ActionSubscription, NotificationAction
from player_notify.artwork import ArtworkResolver
from player_notify.models import MediaSource, NotificationContent, NotificationPayload
from player_notify.notifier import Notifier
from player_notify.player import PlayerSurface
from player_notify.projector import project_notification


LOGGER = logging.getLogger(__name__)
NOTIFICATION_SLOT = 1


class NotificationController:
    def __init__(
        self,
        player: PlayerSurface,
        notifier: Notifier,
        artwork: ArtworkResolver,
        subscription: ActionSubscription,
        *,
        host_renders_artwork_natively: bool = False,
    ) -> None:
        self._player = player
        self._notifier = notifier
        self._artwork = artwork
        self._subscription = subscription
        self._host_renders_artwork_natively = host_renders_artwork_natively
        self._generation = 0
        self._slot_lock = asyncio.Lock()
        self._last_payload: NotificationPayload | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def last_payload(self) -> NotificationPayload | None:
        return self._last_payload

    def post(self) -> asyncio.Task[None] | None:
        snapshot = self._player.snapshot()
        if snapshot is None:
            return None
        source = self._player.current_media_source()
        if source is None:
            return None
        content = project_notification(snapshot, source)
        if content is None:
            return None

        self._generation += 1
        task = asyncio.create_task(
            self._submit(self._generation, source, content), name="player-notify-post"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def dismiss(self) -> None:
        self._generation += 1
        async with self._slot_lock:
            try:
                await self._notifier.cancel(NOTIFICATION_SLOT)
            except Exception:
                LOGGER.exception("Failed to cancel notification")
            self._last_payload = None
            self._subscription.ensure_unregistered()

    async def notification_closed(self) -> None:
        """The server closed the notification without dismiss() asking for it."""
        async with self._slot_lock:
            self._last_payload = None
            self._subscription.ensure_unregistered()

    async def _submit(
        self, generation: int, source: MediaSource, content: NotificationContent
    ) -> None:
        thumbnail = None
        if not self._host_renders_artwork_natively:
            thumbnail = await self._artwork.resolve(source)
        payload = NotificationPayload.from_content(
            content, thumbnail=thumbnail, dismiss_target=NotificationAction.STOP
        )

        async with self._slot_lock:
            # A newer post() or a dismiss() supersedes this one.
            if generation != self._generation:
                LOGGER.debug("Dropping stale notification update %d", generation)
                return
            try:
                await self._notifier.ensure_channel()
                await self._notifier.post(NOTIFICATION_SLOT, payload)
            except Exception:
                LOGGER.exception("Failed to post notification")
                return
            self._last_payload = payload
            self._subscription.ensure_registered()
