"""
Player adapter boundary.

The session only needs a small surface from the media engine:

    player.set_forward_buffer(10.0)     # hint, applied before load()
    ready = player.load(url)            # Future for this load only
    ready.add_done_callback(...)        # None on ready, PlaybackFailed on failure
    player.play() / player.pause()
    player.seek(seconds) / player.position()
    player.release()                    # free audio/video output
    player.on_ended = callback          # callback(None) on quit, callback(reason) on error

Subclasses start the engine in ``_open(url)`` and report back with
``_report_ready(token)`` / ``_report_failed(token, reason)``, where ``token``
is the value returned by ``_begin_load()`` for that load. Once a load has
resolved, the engine going away is reported with ``_report_ended(token, reason)``.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future, InvalidStateError
from typing import Callable, Optional

from loguru import logger

from tvhomerun.errors import PlaybackFailed


class Player:
    def __init__(self) -> None:
        self._load_lock = threading.Lock()
        self._load_future: Optional[Future] = None
        self._load_token = 0
        self.forward_buffer: Optional[float] = None
        self.on_ended: Optional[Callable[[Optional[str]], None]] = None

    # ── Subclass must implement ──

    def _open(self, url: str) -> None:
        raise NotImplementedError

    def play(self) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def seek(self, seconds: float) -> None:
        raise NotImplementedError

    def position(self) -> Optional[float]:
        raise NotImplementedError

    def release(self) -> None:
        raise NotImplementedError

    # ── Built-in ──

    def set_forward_buffer(self, seconds: Optional[float]) -> None:
        self.forward_buffer = seconds

    def load(self, url: str) -> Future:
        """Load ``url`` and return the status slot for this load.

        Loading again cancels the previous slot, so a superseded load never
        reports ready or failed.
        """

        token, fut = self._begin_load()
        try:
            self._open(url)
        except Exception as exc:
            logger.exception(f"Player failed to open {url}")
            self._report_failed(token, str(exc) or type(exc).__name__)
        return fut

    def _begin_load(self) -> tuple[int, Future]:
        with self._load_lock:
            previous = self._load_future
            self._load_token += 1
            fut: Future = Future()
            self._load_future = fut
            token = self._load_token
        if previous is not None:
            previous.cancel()
        return token, fut

    def _current(self, token: int) -> Optional[Future]:
        with self._load_lock:
            if token != self._load_token:
                return None
            fut = self._load_future
            if fut is None or fut.done():
                return None
            return fut

    def _report_ready(self, token: int) -> bool:
        fut = self._current(token)
        if fut is None:
            return False
        try:
            fut.set_result(None)
        except InvalidStateError:
            # Lost a race with cancel() or another terminal report.
            return False
        return True

    def _report_failed(self, token: int, reason: str) -> bool:
        fut = self._current(token)
        if fut is None:
            return False
        try:
            fut.set_exception(PlaybackFailed(reason))
        except InvalidStateError:
            return False
        return True

    def _report_ended(self, token: int, reason: Optional[str] = None) -> None:
        """Tell the owner that playback stopped outside its control.

        ``reason`` is None when the user quit the engine, otherwise the error
        that ended a stream which had already reported ready.
        """

        with self._load_lock:
            if token != self._load_token:
                return
            callback = self.on_ended
        if callback is None:
            return
        try:
            callback(reason)
        except Exception:
            logger.exception("on_ended callback failed")
