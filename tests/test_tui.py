"""Drive the watch screen headless through textual's test pilot."""

import asyncio

from tests.doubles import FakeClient, FakePlayer
from tvhomerun.api.client import StartSessionResponse
from tvhomerun.models import SessionState, StreamTarget
from tvhomerun.session import PlaybackSession
from tvhomerun.tui import TvHomeRunApp


def _factory(client, player):
    def build(on_change):
        return PlaybackSession(
            StreamTarget.live("5.1"),
            client,
            player,
            base_url="http://host:3000",
            heartbeat_interval=30,
            on_change=on_change,
        )

    return build


async def _until(pilot, predicate, tries=100):
    for _ in range(tries):
        if predicate():
            return True
        await pilot.pause(0.02)
    return predicate()


def test_error_replaces_player_and_close_dismisses():
    client = FakeClient(StartSessionResponse(success=False, message="No tuners available"))
    player = FakePlayer()
    app = TvHomeRunApp(_factory(client, player))

    async def scenario():
        async with app.run_test() as pilot:
            assert await _until(pilot, lambda: app.watch_screen is not None and app.watch_screen.status_message == "No tuners available")
            await pilot.press("q")
            await pilot.pause()

    asyncio.run(scenario())

    assert app.session.state is SessionState.CLOSED
    assert player.count("pause") == 1


def test_playing_status_and_close_releases():
    client = FakeClient()
    player = FakePlayer()
    app = TvHomeRunApp(_factory(client, player))

    async def scenario():
        async with app.run_test() as pilot:
            assert await _until(pilot, lambda: app.session is not None and app.session.state is SessionState.AWAITING_READY)
            player.emit_ready()
            assert await _until(pilot, lambda: app.watch_screen.status_message.startswith("Playing"))
            await pilot.press("q")
            await pilot.pause()

    asyncio.run(scenario())
    app.session.wait_teardown(2)

    assert app.session.state is SessionState.CLOSED
    assert client.stops == [app.session.session_id]


def test_closing_player_window_exits_app():
    client = FakeClient()
    player = FakePlayer()
    app = TvHomeRunApp(_factory(client, player))
    exits = []
    original_exit = app.exit

    def record_exit(*args, **kwargs):
        exits.append(args)
        original_exit(*args, **kwargs)

    app.exit = record_exit

    async def scenario():
        async with app.run_test() as pilot:
            assert await _until(pilot, lambda: app.session is not None and app.session.state is SessionState.AWAITING_READY)
            player.emit_ready()
            assert await _until(pilot, lambda: app.session.state is SessionState.PLAYING)
            player.emit_ended()
            assert await _until(pilot, lambda: bool(exits))

    asyncio.run(scenario())
    app.session.wait_teardown(2)

    assert app.session.state is SessionState.CLOSED
    assert client.stops == [app.session.session_id]


def test_debug_error_screen_shows_log_path(monkeypatch):
    monkeypatch.setattr("tvhomerun.tui.log_path", lambda: "/tmp/tvhomerun.log")
    client = FakeClient(StartSessionResponse(success=False, message="No tuners available"))
    app = TvHomeRunApp(_factory(client, FakePlayer()), debug=True)

    async def scenario():
        async with app.run_test() as pilot:
            assert await _until(pilot, lambda: app.watch_screen is not None and app.watch_screen.status_message.startswith("No tuners"))
            assert app.watch_screen.status_message == "No tuners available\nLog: /tmp/tvhomerun.log"
            await pilot.press("q")

    asyncio.run(scenario())
