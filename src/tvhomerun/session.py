"""
PlaybackSession — claims a stream from the server, plays it, keeps it alive
and releases it.

    session = PlaybackSession(StreamTarget.live("5.1"), client, player, base_url=url)
    session.setup()     # returns at once; negotiation runs on a worker thread
    ...
    session.close()     # safe from any state, any number of times

Threads touching a session: the negotiation worker, the player's event thread
(load result), the keep-alive thread and the caller. All state lives under
``self._lock``; ``on_change`` is always called with the lock released.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Optional

import requests
from loguru import logger

from tvhomerun.api.client import ApiError, TvHomeRunClient
from tvhomerun.errors import PlaybackError, PlaybackFailed
from tvhomerun.heartbeat import HeartbeatScheduler, ProgressReporter, RepeatingTask
from tvhomerun.models import SessionState, StreamTarget, new_session_id
from tvhomerun.negotiation import StreamClaim, claim_stream, resolve_media_url
from tvhomerun.player import Player


class PlaybackSession:
    def __init__(
        self,
        target: StreamTarget,
        client: TvHomeRunClient,
        player: Player,
        *,
        base_url: str,
        heartbeat_interval: float = 30.0,
        progress_interval: float = 15.0,
        forward_buffer: Optional[float] = None,
        resume: bool = True,
        on_change: Optional[Callable[["PlaybackSession"], None]] = None,
    ) -> None:
        self.target = target
        self.client = client
        self.player = player
        self.base_url = base_url
        self.heartbeat_interval = heartbeat_interval
        self.progress_interval = progress_interval
        self.forward_buffer = forward_buffer
        self.resume = resume
        self.on_change = on_change

        self.session_id = new_session_id()
        self.state = SessionState.IDLE
        self.is_loading = True
        self.error: Optional[PlaybackError] = None
        self.resume_position: Optional[float] = None

        self._lock = threading.RLock()
        self._has_setup = False
        self._allocated = False
        self._released = False
        self._pending_load: Optional[Future] = None
        self._keepalive: Optional[RepeatingTask] = None
        self._teardown_threads: list[threading.Thread] = []
        self.player.on_ended = self._on_player_ended

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None

    @property
    def keepalive(self) -> Optional[RepeatingTask]:
        return self._keepalive

    # ── Lifecycle entry points ──

    def setup(self) -> None:
        with self._lock:
            if self._has_setup or self.state is not SessionState.IDLE:
                return
            self._has_setup = True
            self.state = SessionState.NEGOTIATING
            self.is_loading = True
            self.error = None
        logger.info(f"Session {self.session_id}: negotiating {self.target.label()}")
        self._notify()

        worker = threading.Thread(
            target=self._negotiate,
            name=f"negotiate-{self.session_id[:8]}",
            daemon=True,
        )
        worker.start()

    def close(self) -> None:
        # Player calls happen after the lock is dropped: MpvPlayer.release()
        # joins the mpv event thread, which may be waiting on this lock.
        with self._lock:
            if self.state is SessionState.CLOSED:
                return
            previous = self.state
            self.state = SessionState.CLOSED
            self.is_loading = False
            keepalive, self._keepalive = self._keepalive, None
            pending, self._pending_load = self._pending_load, None
            release = self._take_release()

        if keepalive is not None:
            keepalive.stop()
        if pending is not None:
            pending.cancel()

        final_position = None
        if previous is SessionState.PLAYING and isinstance(keepalive, ProgressReporter):
            final_position = self.player.position()

        self.player.pause()
        self.player.release()

        logger.info(f"Session {self.session_id}: closed from {previous}")
        if release or final_position is not None:
            self._spawn_teardown(release=release, final_position=final_position, reporter=keepalive)
        self._notify()

    def wait_teardown(self, timeout: Optional[float] = None) -> None:
        """Block until background teardown calls have finished (or ``timeout``)."""

        joined: set[threading.Thread] = set()
        while True:
            # A closer thread may spawn the release thread while we wait.
            with self._lock:
                threads = [t for t in self._teardown_threads if t not in joined]
            if not threads:
                return
            for thread in threads:
                thread.join(timeout)
                joined.add(thread)

    # ── Negotiation ──

    def _negotiate(self) -> None:
        try:
            claim = claim_stream(self.client, self.target, self.session_id)
        except PlaybackError as exc:
            self._on_negotiation_failed(exc)
            return
        self._on_claimed(claim)

    def _on_negotiation_failed(self, exc: PlaybackError) -> None:
        with self._lock:
            if self.state is not SessionState.NEGOTIATING:
                logger.debug(f"Session {self.session_id}: dropping negotiation error after {self.state}")
                return
            self._fail(exc)
        self._notify()

    def _on_claimed(self, claim: StreamClaim) -> None:
        with self._lock:
            self._allocated = True
            if self.state is not SessionState.NEGOTIATING:
                # Closed while the claim was in flight: release what the
                # server just allocated and do nothing else.
                logger.info(f"Session {self.session_id}: discarding claim after {self.state}")
                release = self._take_release()
                notify = False
            else:
                release = False
                notify = True
                self.resume_position = claim.resume_position
                try:
                    url = resolve_media_url(self.base_url, claim.media_path)
                except PlaybackError as exc:
                    release = self._fail(exc)
                    url = None
                if url is not None:
                    self.state = SessionState.AWAITING_READY
                    self.player.set_forward_buffer(self.forward_buffer)
                    self._pending_load = self.player.load(url)
                    logger.info(f"Session {self.session_id}: loading {url}")
            pending = self._pending_load

        if release:
            self._spawn_teardown(release=True)
        if pending is not None:
            pending.add_done_callback(self._on_load_done)
        if notify:
            self._notify()

    # ── Player readiness ──

    def _on_load_done(self, fut: Future) -> None:
        if fut.cancelled():
            return
        with self._lock:
            if fut is not self._pending_load or self.state is not SessionState.AWAITING_READY:
                return
            self._pending_load = None
            release = False
            exc = fut.exception()
            if exc is not None:
                if not isinstance(exc, PlaybackError):
                    exc = PlaybackFailed(str(exc))
                release = self._fail(exc)
            else:
                self._start_playing()
        if release:
            self._spawn_teardown(release=True)
        self._notify()

    def _start_playing(self) -> None:
        self.state = SessionState.PLAYING
        self.is_loading = False

        if self.target.is_live:
            self._keepalive = HeartbeatScheduler(self.client, self.session_id, interval=self.heartbeat_interval)
        else:
            if self.resume and self.resume_position and self.resume_position > 0:
                logger.info(f"Session {self.session_id}: resuming at {self.resume_position:.0f}s")
                self.player.seek(self.resume_position)
            self._keepalive = ProgressReporter(
                self.client,
                self.session_id,
                str(self.target.episode_id),
                self.player.position,
                interval=self.progress_interval,
            )

        self.player.play()
        self._keepalive.start()
        logger.info(f"Session {self.session_id}: playing")

    # ── Player ended on its own ──

    def _on_player_ended(self, reason: Optional[str]) -> None:
        """Called on the player's event thread when playback stops underneath us."""

        if reason is None:
            # The user closed the player window. close() releases the player,
            # which for mpv joins the thread this runs on, so hand it off.
            with self._lock:
                if self.state is SessionState.CLOSED:
                    return
                logger.info(f"Session {self.session_id}: player closed by user")
                closer = threading.Thread(target=self.close, name=f"close-{self.session_id[:8]}")
                self._teardown_threads.append(closer)
                closer.start()
            return

        with self._lock:
            if self.state is not SessionState.PLAYING:
                return
            keepalive, self._keepalive = self._keepalive, None
            release = self._fail(PlaybackFailed(reason))

        if keepalive is not None:
            keepalive.stop()
        final_position = self.player.position() if isinstance(keepalive, ProgressReporter) else None
        if release or final_position is not None:
            self._spawn_teardown(release=release, final_position=final_position, reporter=keepalive)
        self._notify()

    def _fail(self, exc: PlaybackError) -> bool:
        """Enter FAILED; return True when the caller must release the allocation."""

        self.state = SessionState.FAILED
        self.is_loading = False
        self.error = exc
        logger.warning(f"Session {self.session_id}: failed: {exc.message}")
        return self._take_release()

    # ── Teardown ──

    def _take_release(self) -> bool:
        # Exactly one release per successful allocation.
        if not self._allocated or self._released:
            return False
        self._released = True
        return True

    def _spawn_teardown(
        self,
        *,
        release: bool,
        final_position: Optional[float] = None,
        reporter: Optional[RepeatingTask] = None,
    ) -> None:
        def work() -> None:
            if final_position is not None and isinstance(reporter, ProgressReporter):
                reporter.report(final_position)
            if release:
                try:
                    self.client.stop_session(self.session_id)
                    logger.info(f"Session {self.session_id}: released on server")
                except (ApiError, requests.RequestException) as exc:
                    # Not found means the server already dropped it.
                    logger.debug(f"Session {self.session_id}: release failed: {exc}")

        # Non-daemon so the release still goes out when the UI exits first.
        thread = threading.Thread(target=work, name=f"teardown-{self.session_id[:8]}")
        with self._lock:
            self._teardown_threads.append(thread)
            thread.start()

    def _notify(self) -> None:
        callback = self.on_change
        if callback is None:
            return
        try:
            callback(self)
        except Exception:
            logger.exception("on_change callback failed")
