from __future__ import annotations

from typing import Callable, Optional

from tvhomerun.api.client import TvHomeRunClient
from tvhomerun.config import Settings, require_server_url
from tvhomerun.models import StreamTarget
from tvhomerun.player import Player
from tvhomerun.session import PlaybackSession


def default_player(settings: Settings, title: str) -> Player:
    # Imported here so libmpv is only needed once something actually plays.
    from tvhomerun.mpv_player import MpvPlayer

    return MpvPlayer(msg_level=settings.mpv_msg_level, title=title)


def open_live_session(
    *,
    settings: Settings,
    channel_number: str,
    client: Optional[TvHomeRunClient] = None,
    player: Optional[Player] = None,
    on_change: Optional[Callable[[PlaybackSession], None]] = None,
) -> PlaybackSession:
    """Build (but do not start) a session for a live channel.

    Live streams get the live forward buffer so the player stays safely
    behind the live edge.
    """

    base_url = require_server_url(settings)
    target = StreamTarget.live(channel_number)
    if client is None:
        client = TvHomeRunClient(base_url, timeout=settings.request_timeout)
    if player is None:
        player = default_player(settings, title=f"TVHomeRun - {target.label()}")

    return PlaybackSession(
        target,
        client,
        player,
        base_url=base_url,
        heartbeat_interval=settings.heartbeat_interval,
        forward_buffer=settings.live_forward_buffer,
        on_change=on_change,
    )
