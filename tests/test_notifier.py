"""
Tests for the freedesktop notification facility.
"""
import asyncio

from player_notify.actions import ActionSubscription, NotificationAction
from player_notify.models import NotificationPayload
from player_notify.notifier import (
    CLOSED_BY_USER,
    EXPIRE_NEVER,
    FreedesktopNotifier,
    build_actions,
    build_hints,
)


class FakeNotificationsInterface:
    """Stands in for the org.freedesktop.Notifications proxy interface."""

    def __init__(self, capabilities=("actions", "body")):
        self.capabilities = list(capabilities)
        self.notify_calls = []
        self.closed = []
        self._next_id = 10

    async def call_get_capabilities(self):
        return self.capabilities

    async def call_notify(self, app_name, replaces_id, icon, summary, body, actions, hints, timeout):
        self.notify_calls.append(
            dict(app_name=app_name, replaces_id=replaces_id, summary=summary, body=body,
                 actions=actions, hints=hints, timeout=timeout)
        )
        if replaces_id:
            return replaces_id
        self._next_id += 1
        return self._next_id

    async def call_close_notification(self, server_id):
        self.closed.append(server_id)


def _payload(ongoing=True, thumbnail=None):
    return NotificationPayload(
        title="Song A",
        subtitle="X",
        actions=(NotificationAction.REWIND, NotificationAction.PAUSE, NotificationAction.NEXT),
        ongoing=ongoing,
        dismiss_target=NotificationAction.STOP,
        thumbnail=thumbnail,
    )


def _notifier(action_bus, on_content=None, on_closed=None):
    notifier = FreedesktopNotifier(
        None, action_bus, app_name="Media Player", desktop_entry="jellyfin",
        on_content=on_content, on_closed=on_closed,
    )
    fake = FakeNotificationsInterface()
    notifier._iface = fake
    return notifier, fake


def test_actions_list_has_default_then_three_icons():
    assert build_actions(_payload()) == [
        "default", "",
        "media-seek-backward", "Rewind",
        "media-playback-pause", "Pause",
        "media-skip-forward", "Next",
    ]


def test_hints_keep_notification_resident_and_carry_thumbnail(thumbnail):
    hints = build_hints(_payload(ongoing=True, thumbnail=thumbnail), "jellyfin")
    assert hints["resident"].value is True
    assert hints["desktop-entry"].value == "jellyfin"
    assert hints["image-data"].signature == "(iiibiiay)"
    assert hints["image-data"].value[0:2] == [1, 1]

    paused = build_hints(_payload(ongoing=False), "")
    assert paused["resident"].value is True
    assert "transient" not in paused
    assert "image-data" not in paused
    assert "desktop-entry" not in paused


def test_post_replaces_within_slot_and_cancel_closes(action_bus):
    notifier, fake = _notifier(action_bus)

    async def scenario():
        await notifier.ensure_channel()
        await notifier.post(1, _payload(ongoing=True))
        await notifier.post(1, _payload(ongoing=False))
        await notifier.cancel(1)
        await notifier.cancel(1)

    asyncio.run(scenario())

    first, second = fake.notify_calls
    assert first["replaces_id"] == 0
    assert first["timeout"] == EXPIRE_NEVER
    assert second["replaces_id"] == 11
    assert second["timeout"] == EXPIRE_NEVER
    assert second["hints"]["resident"].value is True
    assert fake.closed == [11]
    assert "actions" in notifier.capabilities


def test_action_invoked_routes_through_bus(action_bus, player):
    ActionSubscription(player, action_bus).ensure_registered()
    notifier, fake = _notifier(action_bus)

    async def scenario():
        await notifier.post(1, _payload())
        notifier._on_action_invoked(11, "media-skip-forward")
        notifier._on_action_invoked(99, "media-seek-backward")
        await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert player.calls == ["skip_to_next"]


def test_default_action_raises_player(action_bus, player):
    notifier, fake = _notifier(action_bus, on_content=player.raise_window)

    async def scenario():
        await notifier.post(1, _payload())
        notifier._on_action_invoked(11, "default")
        await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert player.calls == ["raise_window"]


def test_user_dismissal_delivers_stop(action_bus, player):
    ActionSubscription(player, action_bus).ensure_registered()
    notifier, fake = _notifier(action_bus)

    async def scenario():
        await notifier.post(1, _payload())
        notifier._on_notification_closed(11, CLOSED_BY_USER)
        await asyncio.sleep(0.01)
        await notifier.cancel(1)

    asyncio.run(scenario())
    assert player.calls == ["stop"]
    assert fake.closed == []


def test_programmatic_close_does_not_stop(action_bus, player):
    ActionSubscription(player, action_bus).ensure_registered()
    notifier, fake = _notifier(action_bus)

    async def scenario():
        await notifier.post(1, _payload())
        await notifier.cancel(1)
        notifier._on_notification_closed(11, 3)
        await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert player.calls == []


def test_paused_notification_survives_button_press(action_bus, player):
    ActionSubscription(player, action_bus).ensure_registered()
    notifier, fake = _notifier(action_bus)

    async def scenario():
        await notifier.post(1, _payload(ongoing=False))
        notifier._on_action_invoked(11, "media-playback-start")
        await asyncio.sleep(0.01)

    asyncio.run(scenario())

    call = fake.notify_calls[0]
    assert call["timeout"] == EXPIRE_NEVER
    assert call["hints"]["resident"].value is True
    assert player.calls == ["play"]


def test_expired_notification_reports_close(action_bus, controller, player, subscription):
    desktop, fake = _notifier(action_bus, on_closed=controller.notification_closed)

    async def scenario():
        await controller.post()
        await desktop.post(1, _payload())
        desktop._on_notification_closed(11, 1)
        await asyncio.sleep(0.01)
        return await action_bus.deliver(NotificationAction.NEXT.action)

    delivered = asyncio.run(scenario())

    assert subscription.registered is False
    assert controller.last_payload is None
    assert delivered is False
    assert player.calls == []


def test_user_close_stops_then_reports_close(action_bus, controller, player, subscription):
    desktop, fake = _notifier(action_bus, on_closed=controller.notification_closed)

    async def scenario():
        await controller.post()
        await desktop.post(1, _payload())
        desktop._on_notification_closed(11, CLOSED_BY_USER)
        await asyncio.sleep(0.01)

    asyncio.run(scenario())

    assert player.calls == ["stop"]
    assert subscription.registered is False


def test_own_cancel_does_not_report_close(action_bus):
    closes = []

    async def on_closed():
        closes.append(True)

    desktop, fake = _notifier(action_bus, on_closed=on_closed)

    async def scenario():
        await desktop.post(1, _payload())
        await desktop.cancel(1)
        desktop._on_notification_closed(11, 3)
        await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert closes == []
