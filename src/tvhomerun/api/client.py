from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from loguru import logger

from tvhomerun.models import StreamTarget


class ApiError(RuntimeError):
    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(f"Server error {status}: {message}" if message else f"Server error {status}")
        self.status = status
        self.message = message or f"Server error {status}"


class NotFoundError(ApiError):
    pass


@dataclass
class StartSessionResponse:
    success: bool
    playlist_url: str = ""
    error: Optional[str] = None
    message: Optional[str] = None
    resume_position: Optional[float] = None

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "StartSessionResponse":
        resume = raw.get("resumePosition")
        try:
            resume = float(resume) if resume is not None else None
        except (TypeError, ValueError):
            resume = None
        error = raw.get("error")
        return cls(
            success=bool(raw.get("success")),
            playlist_url=str(raw.get("playlistUrl") or ""),
            error=str(error) if error else None,
            message=raw.get("message") or None,
            resume_position=resume,
        )


@dataclass
class HealthResponse:
    status: str

    @property
    def is_healthy(self) -> bool:
        return self.status.lower() in ("ok", "healthy")


class TvHomeRunClient:
    def __init__(self, base_url: str, *, timeout: float = 20.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": "tvhomerun-client",
                "Accept": "application/json",
            }
        )
        self.last_status: Optional[int] = None

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        self.last_status = r.status_code
        if r.status_code >= 400:
            message = ""
            try:
                body = r.json()
                if isinstance(body, dict):
                    message = str(body.get("error") or body.get("message") or "")
            except ValueError:
                message = (r.text or "").strip()[:200]
            logger.debug(f"{method} {path} -> {r.status_code} {message}")
            if r.status_code == 404:
                raise NotFoundError(r.status_code, message)
            raise ApiError(r.status_code, message)
        return r

    def _post_json(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        r = self._request("POST", path, json=payload)
        if not r.content:
            return {}
        data = r.json()
        return data if isinstance(data, dict) else {}

    def check_health(self) -> HealthResponse:
        r = self._request("GET", "/api/health")
        data = r.json()
        return HealthResponse(status=str((data or {}).get("status") or "unknown"))

    def start_session(self, target: StreamTarget, session_id: str) -> StartSessionResponse:
        """Ask the server to start streaming ``target`` for ``session_id``.

        A successful response means the server allocated a tuner (live) or a
        transcode slot (recorded) keyed by the session id.
        """

        if target.is_live:
            data = self._post_json(
                "/api/live/watch",
                {"channelNumber": target.channel_number, "clientId": session_id},
            )
        else:
            data = self._post_json(
                f"/api/episodes/{target.episode_id}/watch",
                {"clientId": session_id},
            )
        logger.debug(f"start_session {target.label()} response: {data}")
        return StartSessionResponse.from_json(data)

    def send_heartbeat(self, session_id: str) -> Dict[str, Any]:
        return self._post_json("/api/live/heartbeat", {"clientId": session_id})

    def stop_session(self, session_id: str) -> Dict[str, Any]:
        return self._post_json("/api/live/stop", {"clientId": session_id})

    def report_progress(self, session_id: str, episode_id: str, position: float) -> Dict[str, Any]:
        return self._post_json(
            f"/api/episodes/{episode_id}/progress",
            {"clientId": session_id, "position": round(float(position), 1)},
        )
