from __future__ import annotations

from typing import Callable, Optional

from tvhomerun.api.client import TvHomeRunClient
from tvhomerun.config import Settings, require_server_url
from tvhomerun.models import StreamTarget
from tvhomerun.player import Player
from tvhomerun.session import PlaybackSession
from tvhomerun.usecases.live import default_player


def open_episode_session(
    *,
    settings: Settings,
    episode_id: str,
    resume: bool = True,
    client: Optional[TvHomeRunClient] = None,
    player: Optional[Player] = None,
    on_change: Optional[Callable[[PlaybackSession], None]] = None,
) -> PlaybackSession:
    base_url = require_server_url(settings)
    target = StreamTarget.episode(episode_id)
    if client is None:
        client = TvHomeRunClient(base_url, timeout=settings.request_timeout)
    if player is None:
        player = default_player(settings, title=f"TVHomeRun - {target.label()}")

    return PlaybackSession(
        target,
        client,
        player,
        base_url=base_url,
        progress_interval=settings.progress_interval,
        forward_buffer=settings.recorded_forward_buffer,
        resume=resume,
        on_change=on_change,
    )
