from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional


def new_session_id() -> str:
    """Return a fresh client id for one playback session.

    The server keys the tuner allocation by this id, so it is never reused.
    """

    return str(uuid.uuid4())


@dataclass(frozen=True)
class StreamTarget:
    kind: str
    channel_number: Optional[str] = None
    episode_id: Optional[str] = None

    @classmethod
    def live(cls, channel_number: str) -> "StreamTarget":
        number = str(channel_number or "").strip()
        if not number:
            raise ValueError("channel number is required")
        return cls(kind="live", channel_number=number)

    @classmethod
    def episode(cls, episode_id: str) -> "StreamTarget":
        eid = str(episode_id or "").strip()
        if not eid:
            raise ValueError("episode id is required")
        return cls(kind="recorded", episode_id=eid)

    @property
    def is_live(self) -> bool:
        return self.kind == "live"

    def label(self) -> str:
        if self.is_live:
            return f"Channel {self.channel_number}"
        return f"Episode {self.episode_id}"


class SessionState(str, Enum):
    """Playback session lifecycle states.

    IDLE → NEGOTIATING → AWAITING_READY → PLAYING
                ↓               ↓
              FAILED ←──────────┘

    Every state moves to CLOSED on close(). CLOSED is terminal.
    """

    IDLE = "idle"
    NEGOTIATING = "negotiating"
    AWAITING_READY = "awaiting_ready"
    PLAYING = "playing"
    FAILED = "failed"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value
