import sys
from pathlib import Path

from loguru import logger
from platformdirs import user_log_dir


def log_path() -> Path:
    return Path(user_log_dir("tvhomerun")) / "tvhomerun.log"


def init_logger(*, debug: bool = False, to_stderr: bool = False) -> None:
    """Route loguru output to a rotating file (the TUI owns the terminal)."""

    logger.remove()

    if debug:
        logger_level = "DEBUG"
        logger_format = (
            "<green>{time:MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{thread.name}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )
    else:
        logger_level = "INFO"
        logger_format = "{time:MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"

    if to_stderr:
        logger.add(sys.stderr, level=logger_level, format=logger_format)
        return

    path = log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(str(path), level=logger_level, format=logger_format, rotation="5 MB", retention=3)
