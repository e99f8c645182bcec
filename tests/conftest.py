"""
Shared fakes and fixtures for player-notify tests.
"""
import asyncio

import pytest

from player_notify.actions import ActionBus, ActionSubscription
from player_notify.controller import NotificationController
from player_notify.models import PlaybackSnapshot, PlaybackState, RemoteMediaSource, Thumbnail


class FakePlayer:
    """Player surface recording every control call."""

    def __init__(self, snapshot=None, source=None):
        self.current_snapshot = snapshot
        self.source = source
        self.calls = []
        self.refreshes = 0
        self.fail_with = None

    def snapshot(self):
        return self.current_snapshot

    def current_media_source(self):
        return self.source

    async def refresh(self):
        self.refreshes += 1

    async def _record(self, name):
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    async def play(self):
        await self._record("play")

    async def pause(self):
        await self._record("pause")

    async def rewind(self):
        await self._record("rewind")

    async def fast_forward(self):
        await self._record("fast_forward")

    async def skip_to_previous(self):
        await self._record("skip_to_previous")

    async def skip_to_next(self):
        await self._record("skip_to_next")

    async def stop(self):
        await self._record("stop")

    async def raise_window(self):
        await self._record("raise_window")


class FakeNotifier:
    def __init__(self):
        self.channel_calls = 0
        self.posts = []
        self.cancels = []
        self.fail_post = False

    async def ensure_channel(self):
        self.channel_calls += 1

    async def post(self, slot_id, payload):
        if self.fail_post:
            raise RuntimeError("notification server unavailable")
        self.posts.append((slot_id, payload))

    async def cancel(self, slot_id):
        self.cancels.append(slot_id)


class FakeArtwork:
    def __init__(self, thumbnail=None):
        self.thumbnail = thumbnail
        self.requests = []
        self.gate = None

    async def resolve(self, source):
        self.requests.append(source)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        return self.thumbnail


def make_snapshot(**overrides):
    values = dict(
        state=PlaybackState.READY,
        play_when_ready=True,
        has_previous=False,
        has_next=True,
        is_playing=True,
    )
    values.update(overrides)
    return PlaybackSnapshot(**values)


@pytest.fixture
def song_a():
    return RemoteMediaSource(item_id="item-a", name="Song A", artists=("X",), image_tag="tag1")


@pytest.fixture
def thumbnail():
    return Thumbnail(
        width=1, height=1, rowstride=4, has_alpha=True, bits_per_sample=8, channels=4,
        data=b"\x00\x00\x00\xff",
    )


@pytest.fixture
def player(song_a):
    return FakePlayer(snapshot=make_snapshot(), source=song_a)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def artwork():
    return FakeArtwork()


@pytest.fixture
def action_bus():
    return ActionBus()


@pytest.fixture
def subscription(player, action_bus):
    return ActionSubscription(player, action_bus)


@pytest.fixture
def controller(player, notifier, artwork, subscription):
    return NotificationController(player, notifier, artwork, subscription)
