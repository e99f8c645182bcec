from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import Protocol

from dbus_next import Variant
from dbus_next.aio import MessageBus, ProxyInterface

from player_notify.actions import ActionBus, NotificationAction
from player_notify.models import NotificationPayload


LOGGER = logging.getLogger(__name__)
BUS_NAME = "org.freedesktop.Notifications"
OBJECT_PATH = "/org/freedesktop/Notifications"
CATEGORY = "x-gnome.music"
URGENCY_LOW = 0
EXPIRE_NEVER = 0
CLOSED_BY_USER = 2

NotificationCallback = Callable[[], Awaitable[None]]


class Notifier(Protocol):
    async def ensure_channel(self) -> None: ...

    async def post(self, slot_id: int, payload: NotificationPayload) -> None: ...

    async def cancel(self, slot_id: int) -> None: ...


def build_actions(payload: NotificationPayload) -> list[str]:
    # With the action-icons hint the server reads each key as an icon name.
    actions: list[str] = [payload.content_target, ""]
    for action in payload.actions:
        actions.extend([action.icon, action.label])
    return actions


def build_hints(payload: NotificationPayload, desktop_entry: str) -> dict[str, Variant]:
    hints: dict[str, Variant] = {
        "action-icons": Variant("b", True),
        "category": Variant("s", CATEGORY),
        "urgency": Variant("y", URGENCY_LOW),
        # Resident even when paused: the server must not close it after an action.
        "resident": Variant("b", True),
    }
    if desktop_entry:
        hints["desktop-entry"] = Variant("s", desktop_entry)
    thumbnail = payload.thumbnail
    if thumbnail is not None:
        hints["image-data"] = Variant(
            "(iiibiiay)",
            [
                thumbnail.width,
                thumbnail.height,
                thumbnail.rowstride,
                thumbnail.has_alpha,
                thumbnail.bits_per_sample,
                thumbnail.channels,
                thumbnail.data,
            ],
        )
    return hints


class FreedesktopNotifier:
    """Posts payloads to org.freedesktop.Notifications, one server notification per slot."""

    def __init__(
        self,
        bus: MessageBus,
        action_bus: ActionBus,
        *,
        app_name: str,
        desktop_entry: str = "",
        on_content: NotificationCallback | None = None,
        on_closed: NotificationCallback | None = None,
    ) -> None:
        self._bus = bus
        self._action_bus = action_bus
        self._app_name = app_name
        self._desktop_entry = desktop_entry
        self._on_content = on_content
        self._on_closed = on_closed
        self._iface: ProxyInterface | None = None
        self._capabilities: frozenset[str] | None = None
        self._server_ids: dict[int, int] = {}
        self._payloads: dict[int, NotificationPayload] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def capabilities(self) -> frozenset[str]:
        return self._capabilities or frozenset()

    async def ensure_channel(self) -> None:
        if self._capabilities is not None:
            return
        iface = await self._interface()
        self._capabilities = frozenset(await iface.call_get_capabilities())
        if "actions" not in self._capabilities:
            LOGGER.warning("Notification server does not support actions; buttons will be inert")

    async def post(self, slot_id: int, payload: NotificationPayload) -> None:
        iface = await self._interface()
        replaces_id = self._server_ids.get(slot_id, 0)
        server_id = await iface.call_notify(
            self._app_name,
            replaces_id,
            "",
            payload.title,
            payload.subtitle or "",
            build_actions(payload),
            build_hints(payload, self._desktop_entry),
            EXPIRE_NEVER,
        )
        if replaces_id and replaces_id != server_id:
            self._payloads.pop(replaces_id, None)
        self._server_ids[slot_id] = server_id
        self._payloads[server_id] = payload

    async def cancel(self, slot_id: int) -> None:
        server_id = self._server_ids.pop(slot_id, None)
        if server_id is None:
            return
        self._payloads.pop(server_id, None)
        iface = await self._interface()
        await iface.call_close_notification(server_id)

    async def _interface(self) -> ProxyInterface:
        if self._iface is not None:
            return self._iface
        introspection = await self._bus.introspect(BUS_NAME, OBJECT_PATH)
        proxy = self._bus.get_proxy_object(BUS_NAME, OBJECT_PATH, introspection)
        iface = proxy.get_interface(BUS_NAME)
        iface.on_action_invoked(self._on_action_invoked)
        iface.on_notification_closed(self._on_notification_closed)
        self._iface = iface
        return iface

    def _on_action_invoked(self, server_id: int, key: str) -> None:
        payload = self._payloads.get(server_id)
        if payload is None:
            return
        if key == payload.content_target:
            if self._on_content is not None:
                self._spawn(self._on_content())
            return
        action = NotificationAction.from_icon(key)
        if action is None:
            LOGGER.debug("Ignoring unknown action key %r", key)
            return
        self._spawn(self._deliver(action))

    def _on_notification_closed(self, server_id: int, reason: int) -> None:
        payload = self._payloads.pop(server_id, None)
        if payload is None:
            return
        for slot_id, known_id in list(self._server_ids.items()):
            if known_id == server_id:
                del self._server_ids[slot_id]
        self._spawn(self._closed(payload, reason))

    async def _closed(self, payload: NotificationPayload, reason: int) -> None:
        # Our own cancel() forgets the payload first, so only foreign closes get here.
        try:
            if reason == CLOSED_BY_USER:
                await self._deliver(payload.dismiss_target)
        finally:
            if self._on_closed is not None:
                await self._on_closed()

    async def _deliver(self, action: NotificationAction) -> None:
        if not await self._action_bus.deliver(action.action):
            LOGGER.debug("No handler for %s", action.action)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            LOGGER.error("Notification callback failed", exc_info=task.exception())
