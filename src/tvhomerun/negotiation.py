from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests
from loguru import logger

from tvhomerun.api.client import ApiError, TvHomeRunClient
from tvhomerun.errors import InvalidUrl, NetworkError, ServerRejected
from tvhomerun.models import StreamTarget


@dataclass
class StreamClaim:
    media_path: str
    resume_position: Optional[float] = None


def _is_absolute_http(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def claim_stream(client: TvHomeRunClient, target: StreamTarget, session_id: str) -> StreamClaim:
    """Claim a server-side stream for ``target``.

    One request, no retries. On success the server holds a resource keyed by
    ``session_id`` until it is released with ``stop_session``.
    """

    if not session_id:
        raise ValueError("session id must not be empty")

    try:
        response = client.start_session(target, session_id)
    except ApiError as exc:
        raise ServerRejected(exc.message) from exc
    except requests.RequestException as exc:
        raise NetworkError(f"Failed to start stream: {exc}") from exc

    if response.error:
        raise ServerRejected(response.error)
    if not response.success:
        raise ServerRejected(response.message or "Failed to start stream")
    if not response.playlist_url.strip():
        raise InvalidUrl("Invalid stream URL")

    logger.info(f"Claimed {target.label()} for session {session_id}: {response.playlist_url}")
    return StreamClaim(media_path=response.playlist_url.strip(), resume_position=response.resume_position)


def resolve_media_url(base_url: str, media_path: str) -> str:
    """Resolve a media path returned by the server into an absolute URL.

    Relative paths resolve against ``base_url``; absolute http(s) URLs are
    returned unchanged.
    """

    base = (base_url or "").strip()
    if not _is_absolute_http(base):
        raise InvalidUrl("Invalid server URL")

    path = (media_path or "").strip()
    if not path:
        raise InvalidUrl("Invalid stream URL")
    if _is_absolute_http(path):
        return path

    try:
        resolved = urljoin(base, path)
    except ValueError as exc:
        raise InvalidUrl("Invalid stream URL") from exc
    if not _is_absolute_http(resolved):
        raise InvalidUrl("Invalid stream URL")
    return resolved
