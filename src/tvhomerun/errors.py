from __future__ import annotations


class PlaybackError(RuntimeError):
    """Terminal failure of a playback session.

    ``message`` is the human-readable text shown in place of the player.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NetworkError(PlaybackError):
    pass


class ServerRejected(PlaybackError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidUrl(PlaybackError):
    pass


class PlaybackFailed(PlaybackError):
    def __init__(self, reason: str = "") -> None:
        super().__init__(f"Playback failed: {reason}" if reason else "Playback failed")
        self.reason = reason


class ConfigError(RuntimeError):
    pass
