from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from player_notify.actions import NotificationAction


class PlaybackState(str, Enum):
    IDLE = "Idle"
    BUFFERING = "Buffering"
    READY = "Ready"
    ENDED = "Ended"


@dataclass(frozen=True, slots=True)
class PlaybackSnapshot:
    state: PlaybackState = PlaybackState.IDLE
    play_when_ready: bool = False
    has_previous: bool = False
    has_next: bool = False
    is_playing: bool = False


@dataclass(frozen=True, slots=True)
class LocalMediaSource:
    item_id: str
    name: str
    artists: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RemoteMediaSource:
    item_id: str
    name: str
    artists: tuple[str, ...] = ()
    image_tag: str | None = None


MediaSource = LocalMediaSource | RemoteMediaSource


@dataclass(frozen=True, slots=True)
class Thumbnail:
    """Decoded RGBA pixels, laid out the way the notification server expects image-data."""

    width: int
    height: int
    rowstride: int
    has_alpha: bool
    bits_per_sample: int
    channels: int
    data: bytes


CONTENT_TARGET = "default"


@dataclass(frozen=True, slots=True)
class NotificationContent:
    title: str
    subtitle: str | None
    actions: tuple[NotificationAction, NotificationAction, NotificationAction]
    ongoing: bool
    compact_actions: tuple[int, ...] = (0, 1, 2)


@dataclass(frozen=True, slots=True)
class NotificationPayload:
    title: str
    subtitle: str | None
    actions: tuple[NotificationAction, ...]
    ongoing: bool
    dismiss_target: NotificationAction
    thumbnail: Thumbnail | None = None
    content_target: str = CONTENT_TARGET
    compact_actions: tuple[int, ...] = (0, 1, 2)

    @classmethod
    def from_content(
        cls,
        content: NotificationContent,
        *,
        thumbnail: Thumbnail | None,
        dismiss_target: NotificationAction,
    ) -> NotificationPayload:
        return cls(
            title=content.title,
            subtitle=content.subtitle,
            actions=content.actions,
            ongoing=content.ongoing,
            dismiss_target=dismiss_target,
            thumbnail=thumbnail,
            compact_actions=content.compact_actions,
        )
