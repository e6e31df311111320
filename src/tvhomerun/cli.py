import argparse
import sys

import requests
from loguru import logger

import tvhomerun
from tvhomerun.api.client import ApiError, TvHomeRunClient
from tvhomerun.config import load_settings, normalize_server_url, require_server_url
from tvhomerun.errors import ConfigError
from tvhomerun.logs import init_logger, log_path

# Seconds to wait for the release call after the UI is gone.
TEARDOWN_GRACE = 5.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tvhomerun")
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--server", help="server URL, e.g. http://192.168.1.100:3000")
    sub = parser.add_subparsers(dest="command")

    live = sub.add_parser("live", help="watch a live channel")
    live.add_argument("channel", help="guide number, e.g. 5.1")

    episode = sub.add_parser("episode", help="play a recorded episode")
    episode.add_argument("episode_id")
    episode.add_argument("--no-resume", action="store_true", help="start from the beginning")

    sub.add_parser("health", help="check that the server is reachable")
    return parser


def _health(server_url: str, timeout: float) -> int:
    client = TvHomeRunClient(server_url, timeout=timeout)
    try:
        health = client.check_health()
    except (ApiError, requests.RequestException) as exc:
        print(f"Unable to connect: {exc}", file=sys.stderr)
        return 1
    if not health.is_healthy:
        print(f"Server is not healthy: {health.status}", file=sys.stderr)
        return 1
    print(f"{server_url}: {health.status}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"tvhomerun {tvhomerun.__version__} ({tvhomerun.__file__})")
        return 0
    if not args.command:
        parser.print_help()
        return 2

    init_logger(debug=args.debug)

    try:
        settings = load_settings()
        if args.server:
            settings.server_url = normalize_server_url(args.server)
        server_url = require_server_url(settings)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if args.command == "health":
        return _health(server_url, settings.request_timeout)

    # Deferred so `health` works without textual/libmpv loaded.
    from tvhomerun.tui import TvHomeRunApp
    from tvhomerun.usecases.live import open_live_session
    from tvhomerun.usecases.recorded import open_episode_session

    if args.command == "live":
        def factory(on_change):
            return open_live_session(settings=settings, channel_number=args.channel, on_change=on_change)
    else:
        def factory(on_change):
            return open_episode_session(
                settings=settings,
                episode_id=args.episode_id,
                resume=not args.no_resume,
                on_change=on_change,
            )

    app = TvHomeRunApp(factory, debug=args.debug)
    try:
        app.run()
    finally:
        session = app.session
        if session is not None:
            session.close()
            session.wait_teardown(TEARDOWN_GRACE)

    session = app.session
    if session is not None and session.error_message:
        print(session.error_message, file=sys.stderr)
        if args.debug:
            print(f"log: {log_path()}", file=sys.stderr)
        return 1
    logger.info("exiting")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
