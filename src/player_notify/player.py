from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urlparse

from dbus_next import Variant
from dbus_next.aio import MessageBus, ProxyInterface
from dbus_next.errors import DBusError

from player_notify.models import (
    LocalMediaSource,
    MediaSource,
    PlaybackSnapshot,
    PlaybackState,
    RemoteMediaSource,
)


LOGGER = logging.getLogger(__name__)
OBJECT_PATH = "/org/mpris/MediaPlayer2"
ROOT_INTERFACE = "org.mpris.MediaPlayer2"
PLAYER_INTERFACE = "org.mpris.MediaPlayer2.Player"
IMAGE_TAG_KEY = "player-notify:imageTag"


class PlayerSurface(Protocol):
    def snapshot(self) -> PlaybackSnapshot | None: ...

    def current_media_source(self) -> MediaSource | None: ...

    async def play(self) -> None: ...

    async def pause(self) -> None: ...

    async def rewind(self) -> None: ...

    async def fast_forward(self) -> None: ...

    async def skip_to_previous(self) -> None: ...

    async def skip_to_next(self) -> None: ...

    async def stop(self) -> None: ...

    async def raise_window(self) -> None: ...


def snapshot_from_status(
    status: str, *, has_track: bool, can_go_previous: bool, can_go_next: bool
) -> PlaybackSnapshot:
    if status == "Playing":
        state, play_when_ready, is_playing = PlaybackState.READY, True, True
    elif status == "Paused":
        state, play_when_ready, is_playing = PlaybackState.READY, False, False
    elif has_track:
        state, play_when_ready, is_playing = PlaybackState.ENDED, False, False
    else:
        state, play_when_ready, is_playing = PlaybackState.IDLE, False, False
    return PlaybackSnapshot(
        state=state,
        play_when_ready=play_when_ready,
        has_previous=can_go_previous,
        has_next=can_go_next,
        is_playing=is_playing,
    )


def media_source_from_metadata(metadata: dict[str, Any]) -> MediaSource | None:
    values = {
        key: value.value if isinstance(value, Variant) else value
        for key, value in metadata.items()
    }
    track_id = str(values.get("mpris:trackid", "") or "")
    item_id = track_id.rstrip("/").rsplit("/", maxsplit=1)[-1]
    title = str(values.get("xesam:title", "") or "").strip()
    if not item_id or item_id == "NoTrack" or not title:
        return None

    raw_artists = values.get("xesam:artist") or []
    if isinstance(raw_artists, str):
        raw_artists = [raw_artists]
    artists = tuple(str(artist) for artist in raw_artists if artist)

    url = str(values.get("xesam:url", "") or "")
    if urlparse(url).scheme == "file":
        return LocalMediaSource(item_id=item_id, name=title, artists=artists)
    image_tag = str(values.get(IMAGE_TAG_KEY, "") or "") or None
    return RemoteMediaSource(item_id=item_id, name=title, artists=artists, image_tag=image_tag)


class MprisPlayer:
    """Client side of an MPRIS player, with state cached between refreshes."""

    def __init__(
        self,
        bus: MessageBus,
        player_name: str,
        *,
        seek_back_ms: int = 10_000,
        seek_forward_ms: int = 10_000,
    ) -> None:
        self._bus = bus
        self._bus_name = f"{ROOT_INTERFACE}.{player_name}"
        self._seek_back_us = seek_back_ms * 1000
        self._seek_forward_us = seek_forward_ms * 1000
        self._root: ProxyInterface | None = None
        self._player: ProxyInterface | None = None
        self._snapshot: PlaybackSnapshot | None = None
        self._source: MediaSource | None = None

    @property
    def bus_name(self) -> str:
        return self._bus_name

    def snapshot(self) -> PlaybackSnapshot | None:
        return self._snapshot

    def current_media_source(self) -> MediaSource | None:
        return self._source

    async def refresh(self) -> None:
        try:
            player = await self._ensure_proxy()
            status = await player.get_playback_status()
            metadata = await player.get_metadata()
            can_go_previous = await player.get_can_go_previous()
            can_go_next = await player.get_can_go_next()
        except DBusError as exc:
            if self._snapshot is not None:
                LOGGER.info("Player %s went away: %s", self._bus_name, exc)
            self._forget()
            return

        self._source = media_source_from_metadata(metadata)
        self._snapshot = snapshot_from_status(
            str(status),
            has_track=self._source is not None,
            can_go_previous=bool(can_go_previous),
            can_go_next=bool(can_go_next),
        )

    async def play(self) -> None:
        await (await self._ensure_proxy()).call_play()

    async def pause(self) -> None:
        await (await self._ensure_proxy()).call_pause()

    async def rewind(self) -> None:
        await (await self._ensure_proxy()).call_seek(-self._seek_back_us)

    async def fast_forward(self) -> None:
        await (await self._ensure_proxy()).call_seek(self._seek_forward_us)

    async def skip_to_previous(self) -> None:
        await (await self._ensure_proxy()).call_previous()

    async def skip_to_next(self) -> None:
        await (await self._ensure_proxy()).call_next()

    async def stop(self) -> None:
        await (await self._ensure_proxy()).call_stop()

    async def raise_window(self) -> None:
        await self._ensure_proxy()
        if self._root is not None:
            await self._root.call_raise()

    async def _ensure_proxy(self) -> ProxyInterface:
        if self._player is not None:
            return self._player
        introspection = await self._bus.introspect(self._bus_name, OBJECT_PATH)
        proxy = self._bus.get_proxy_object(self._bus_name, OBJECT_PATH, introspection)
        self._root = proxy.get_interface(ROOT_INTERFACE)
        self._player = proxy.get_interface(PLAYER_INTERFACE)
        return self._player

    def _forget(self) -> None:
        self._root = None
        self._player = None
        self._snapshot = None
        self._source = None
