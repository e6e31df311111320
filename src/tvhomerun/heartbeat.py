"""Keep-alive and progress schedules for an active playback session.

Usage:
    beat = HeartbeatScheduler(client, session_id, interval=30)
    beat.start()
    ...
    beat.stop()     # no firing begins after this returns
"""
from __future__ import annotations

import threading
from typing import Callable, Optional

import requests
from loguru import logger

from tvhomerun.api.client import ApiError, NotFoundError, TvHomeRunClient


class RepeatingTask:
    """Call ``action`` every ``interval`` seconds on a background thread."""

    def __init__(self, interval: float, action: Callable[[], None], *, name: str = "repeating-task") -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = float(interval)
        self.name = name
        self._action = action
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stopped = False
        self.fired = 0

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and not self._stopped

    def start(self) -> None:
        with self._lock:
            if self._thread is not None or self._stopped:
                return
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        logger.debug(f"{self.name} started (interval={self.interval}s)")

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._cancel.set()
        logger.debug(f"{self.name} stopped after {self.fired} firing(s)")

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while not self._cancel.wait(self.interval):
            with self._lock:
                if self._stopped:
                    return
                self.fired += 1
            try:
                self._action()
            except Exception:
                logger.exception(f"{self.name} firing failed")


class HeartbeatScheduler(RepeatingTask):
    def __init__(self, client: TvHomeRunClient, session_id: str, *, interval: float = 30.0) -> None:
        super().__init__(interval, self.beat, name=f"heartbeat-{session_id[:8]}")
        self.client = client
        self.session_id = session_id

    def beat(self) -> None:
        try:
            self.client.send_heartbeat(self.session_id)
        except NotFoundError:
            # Expected once teardown removed the client server-side.
            logger.debug(f"heartbeat for {self.session_id}: session not found")
        except (ApiError, requests.RequestException) as exc:
            logger.warning(f"heartbeat for {self.session_id} failed: {exc}")


class ProgressReporter(RepeatingTask):
    """Periodically persist the playback position of a recorded episode."""

    def __init__(
        self,
        client: TvHomeRunClient,
        session_id: str,
        episode_id: str,
        position_source: Callable[[], Optional[float]],
        *,
        interval: float = 15.0,
    ) -> None:
        super().__init__(interval, self.report, name=f"progress-{session_id[:8]}")
        self.client = client
        self.session_id = session_id
        self.episode_id = episode_id
        self._position_source = position_source

    def report(self, position: Optional[float] = None) -> None:
        if position is None:
            position = self._position_source()
        if position is None:
            return
        try:
            self.client.report_progress(self.session_id, self.episode_id, position)
        except (ApiError, requests.RequestException) as exc:
            logger.warning(f"progress report for episode {self.episode_id} failed: {exc}")
