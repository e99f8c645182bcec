from __future__ import annotations

from player_notify.actions import NotificationAction
from player_notify.models import (
    MediaSource,
    NotificationContent,
    PlaybackSnapshot,
    PlaybackState,
)


POSTABLE_STATES = frozenset({PlaybackState.READY, PlaybackState.BUFFERING})


def project_notification(
    snapshot: PlaybackSnapshot, source: MediaSource
) -> NotificationContent | None:
    """Project player state onto everything a notification needs except artwork.

    Returns None when the player is not in a state worth showing; callers must
    then leave any existing notification untouched.
    """
    if snapshot.state not in POSTABLE_STATES:
        return None

    if snapshot.has_previous:
        leading = NotificationAction.PREVIOUS
    else:
        leading = NotificationAction.REWIND
    # Intent to play, not the actual playing state, picks the toggle.
    if snapshot.play_when_ready:
        toggle = NotificationAction.PAUSE
    else:
        toggle = NotificationAction.PLAY
    if snapshot.has_next:
        trailing = NotificationAction.NEXT
    else:
        trailing = NotificationAction.FAST_FORWARD

    artists = [artist for artist in source.artists if artist]
    return NotificationContent(
        title=source.name,
        subtitle=", ".join(artists) if artists else None,
        actions=(leading, toggle, trailing),
        ongoing=snapshot.is_playing,
    )
