import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

from loguru import logger
from platformdirs import user_config_dir

from tvhomerun.errors import ConfigError

SERVER_URL_ENV = "TVHOMERUN_SERVER_URL"


@dataclass
class Settings:
    server_url: str = ""

    # Seconds between keep-alive calls while a live session is playing.
    heartbeat_interval: float = 30.0
    # Seconds between position reports while a recorded episode is playing.
    progress_interval: float = 15.0

    # Forward buffer hints for the player. Live streams keep headroom behind
    # the live edge; recorded streams use the player default when unset.
    live_forward_buffer: Optional[float] = 10.0
    recorded_forward_buffer: Optional[float] = None

    request_timeout: float = 20.0
    mpv_msg_level: str = "all=warn"


def config_path() -> Path:
    cfg_dir = Path(user_config_dir("tvhomerun"))
    return cfg_dir / "config.json"


def normalize_server_url(raw: str) -> str:
    url = (raw or "").strip()
    if not url:
        raise ConfigError("Server URL is empty")
    if not url.startswith("http://") and not url.startswith("https://"):
        url = "http://" + url
    if url.endswith("/"):
        url = url[:-1]
    return url


def load_settings(path: Optional[Path] = None) -> Settings:
    path = path or config_path()
    settings = Settings()
    if path.exists():
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            known = {f.name for f in fields(Settings)}
            settings = Settings(**{k: v for k, v in raw.items() if k in known})
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            logger.warning(f"Ignoring unreadable config {path}: {exc}")
            settings = Settings()

    env_url = os.environ.get(SERVER_URL_ENV, "").strip()
    if env_url:
        settings.server_url = env_url
    if settings.server_url:
        settings.server_url = normalize_server_url(settings.server_url)
    return settings


def require_server_url(settings: Settings) -> str:
    if not settings.server_url:
        raise ConfigError(
            f"No server URL configured. Set {SERVER_URL_ENV}, pass --server, "
            f"or add \"server_url\" to {config_path()}"
        )
    return settings.server_url
