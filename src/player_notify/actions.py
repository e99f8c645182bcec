from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from player_notify.player import PlayerSurface


ActionHandler = Callable[[str], Awaitable[None]]
LOGGER = logging.getLogger(__name__)


class NotificationAction(Enum):
    PLAY = ("media-playback-start", "Play", "player_notify.ACTION_PLAY")
    PAUSE = ("media-playback-pause", "Pause", "player_notify.ACTION_PAUSE")
    REWIND = ("media-seek-backward", "Rewind", "player_notify.ACTION_REWIND")
    FAST_FORWARD = ("media-seek-forward", "Fast forward", "player_notify.ACTION_FAST_FORWARD")
    PREVIOUS = ("media-skip-backward", "Previous", "player_notify.ACTION_PREVIOUS")
    NEXT = ("media-skip-forward", "Next", "player_notify.ACTION_NEXT")
    STOP = ("media-playback-stop", "Stop", "player_notify.ACTION_STOP")

    def __init__(self, icon: str, label: str, action: str) -> None:
        self.icon = icon
        self.label = label
        self.action = action

    @classmethod
    def from_action(cls, action: str) -> NotificationAction | None:
        for member in cls:
            if member.action == action:
                return member
        return None

    @classmethod
    def from_icon(cls, icon: str) -> NotificationAction | None:
        for member in cls:
            if member.icon == icon:
                return member
        return None


ACTION_NAMES: tuple[str, ...] = tuple(member.action for member in NotificationAction)


class AtomicFlag:
    def __init__(self, initial: bool = False) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> bool:
        with self._lock:
            return self._value

    def compare_and_set(self, expect: bool, update: bool) -> bool:
        with self._lock:
            if self._value != expect:
                return False
            self._value = update
            return True


class ActionBus:
    """In-process delivery of named actions to registered handlers."""

    def __init__(self) -> None:
        self._handlers: dict[ActionHandler, frozenset[str]] = {}
        self._lock = threading.Lock()

    @property
    def handler_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def register(self, action_names: Iterable[str], handler: ActionHandler) -> None:
        with self._lock:
            self._handlers[handler] = frozenset(action_names)

    def unregister(self, handler: ActionHandler) -> None:
        with self._lock:
            if self._handlers.pop(handler, None) is None:
                raise ValueError("handler is not registered")

    async def deliver(self, action_name: str) -> bool:
        with self._lock:
            targets = [
                handler for handler, names in self._handlers.items() if action_name in names
            ]
        for handler in targets:
            await handler(action_name)
        return bool(targets)


class ActionSubscription:
    def __init__(self, player: PlayerSurface, bus: ActionBus) -> None:
        self._bus = bus
        self._registered = AtomicFlag()
        self._handler: ActionHandler = self._on_action
        self._operations: dict[NotificationAction, Callable[[], Awaitable[None]]] = {
            NotificationAction.PLAY: player.play,
            NotificationAction.PAUSE: player.pause,
            NotificationAction.REWIND: player.rewind,
            NotificationAction.FAST_FORWARD: player.fast_forward,
            NotificationAction.PREVIOUS: player.skip_to_previous,
            NotificationAction.NEXT: player.skip_to_next,
            NotificationAction.STOP: player.stop,
        }

    @property
    def registered(self) -> bool:
        return self._registered.get()

    def ensure_registered(self) -> bool:
        if not self._registered.compare_and_set(False, True):
            return False
        self._bus.register(ACTION_NAMES, self._handler)
        LOGGER.debug("Notification action handler registered")
        return True

    def ensure_unregistered(self) -> bool:
        if not self._registered.compare_and_set(True, False):
            return False
        self._bus.unregister(self._handler)
        LOGGER.debug("Notification action handler unregistered")
        return True

    async def _on_action(self, action_name: str) -> None:
        action = NotificationAction.from_action(action_name)
        if action is None:
            LOGGER.debug("Ignoring unknown notification action %r", action_name)
            return
        try:
            await self._operations[action]()
        except Exception:
            LOGGER.exception("Player operation for %s failed", action.name)
