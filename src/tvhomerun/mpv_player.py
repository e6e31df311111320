"""
Player adapter backed by python-mpv.

mpv is started paused; ``file-loaded`` is treated as ready (the demuxer has
opened the stream and the session may call ``play()``), and ``end-file`` with
an error reason as failed. After ready, ``end-file`` (quit or error) and
``shutdown`` are reported through ``on_ended`` so the session can tear down
when the mpv window is closed.
"""
from __future__ import annotations

import threading
from typing import Optional

from loguru import logger

# Note: python-mpv needs libmpv at import time.
from mpv import MPV, MpvEventEndFile, MpvEventID

from tvhomerun.player import Player

# libmpv mpv_error codes that end a file, with mpv_error_string() text.
_END_FILE_ERRORS = {
    -13: "loading failed",
    -14: "audio output initialization failed",
    -15: "video output initialization failed",
    -16: "no audio or video data played",
    -17: "unrecognized file format",
    -18: "not supported",
}
_DEFAULT_END_FILE_ERROR = "stream could not be opened"


def end_file_reason(error) -> str:
    try:
        code = int(error)
    except (TypeError, ValueError):
        return _DEFAULT_END_FILE_ERROR
    return _END_FILE_ERRORS.get(code, _DEFAULT_END_FILE_ERROR)


class MpvPlayer(Player):
    def __init__(self, *, msg_level: str = "all=warn", title: str = "TVHomeRun") -> None:
        super().__init__()
        self._mpv_lock = threading.Lock()
        self._token = 0
        self._released = False

        self._mpv = MPV(
            input_default_bindings=True,
            input_vo_keyboard=True,
            osc=True,
            terminal=False,
            force_window="yes",
            idle="yes",
            keep_open="yes",
            title=title,
            log_handler=self._mpv_log,
            msg_level=msg_level,
        )
        self._mpv.register_event_callback(self._on_event)

    def _mpv_log(self, level: str, component: str, message: str) -> None:
        logger.debug(f"mpv[{level}] {component}: {message.strip()}")

    def _open(self, url: str) -> None:
        with self._mpv_lock:
            self._token = self._load_token
            if self.forward_buffer is not None:
                secs = max(0.0, float(self.forward_buffer))
                self._mpv["cache"] = "yes"
                self._mpv["cache-secs"] = secs
                self._mpv["demuxer-readahead-secs"] = secs
            self._mpv.pause = True
            logger.info(f"mpv loading {url}")
            self._mpv.play(url)

    def _on_event(self, event) -> None:
        event_id = getattr(getattr(event, "event_id", None), "value", None)
        if event_id == MpvEventID.FILE_LOADED:
            with self._mpv_lock:
                token = self._token
            logger.debug("mpv file-loaded")
            self._report_ready(token)
        elif event_id == MpvEventID.END_FILE:
            data = getattr(event, "data", None)
            reason = getattr(data, "reason", None)
            with self._mpv_lock:
                token, released = self._token, self._released
            if released:
                return
            if reason == MpvEventEndFile.ERROR:
                message = end_file_reason(getattr(data, "error", None))
                logger.warning(f"mpv end-file error: {message}")
                # Before ready this fails the load; after ready the stream died.
                if not self._report_failed(token, message):
                    self._report_ended(token, message)
            elif reason == MpvEventEndFile.QUIT:
                logger.info("mpv quit by user")
                self._report_ended(token)
        elif event_id == MpvEventID.SHUTDOWN:
            with self._mpv_lock:
                token, released = self._token, self._released
            if not released:
                logger.info("mpv shut down")
                self._report_ended(token)

    def play(self) -> None:
        try:
            self._mpv.pause = False
        except Exception:
            logger.exception("mpv play() failed")

    def pause(self) -> None:
        try:
            self._mpv.pause = True
        except Exception:
            logger.exception("mpv pause() failed")

    def seek(self, seconds: float) -> None:
        try:
            self._mpv.seek(float(seconds), reference="absolute")
        except Exception:
            logger.exception(f"mpv seek({seconds}) failed")

    def position(self) -> Optional[float]:
        try:
            pos = self._mpv.time_pos
        except Exception:
            # mpv has already been terminated.
            return None
        return float(pos) if pos is not None else None

    def release(self) -> None:
        with self._mpv_lock:
            if self._released:
                return
            self._released = True
        try:
            self._mpv.terminate()
        except Exception:
            logger.exception("mpv terminate failed")
