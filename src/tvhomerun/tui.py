from __future__ import annotations

from typing import Callable, Optional

from loguru import logger
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal
from textual.message import Message
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Static

from tvhomerun.logs import log_path
from tvhomerun.models import SessionState
from tvhomerun.session import PlaybackSession

SessionFactory = Callable[[Callable[[PlaybackSession], None]], PlaybackSession]

_STATUS_TEXT = {
    SessionState.NEGOTIATING: "Starting stream...",
    SessionState.AWAITING_READY: "Buffering...",
    SessionState.PLAYING: "Playing in the mpv window. Press q to stop.",
    SessionState.CLOSED: "Stopped.",
}


class SessionChanged(Message):
    """Posted from whichever thread moved the session to a new state."""


class WatchScreen(Screen[None]):
    BINDINGS = [
        ("q", "close_player", "Close"),
        ("escape", "close_player", "Close"),
    ]

    DEFAULT_CSS = """
    WatchScreen {
        layout: vertical;
    }
    WatchScreen Container {
        layout: vertical;
        height: 1fr;
        align: center middle;
    }
    WatchScreen #title {
        text-style: bold;
        content-align: center middle;
        width: 100%;
    }
    WatchScreen #status {
        content-align: center middle;
        width: 100%;
        padding: 1 4;
    }
    WatchScreen #actions {
        height: auto;
        align: center middle;
    }
    """

    def __init__(self, session_factory: SessionFactory, *, log_hint: Optional[str] = None):
        super().__init__()
        self._session_factory = session_factory
        self.log_hint = log_hint
        self.session: Optional[PlaybackSession] = None
        self.status_message = ""

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Container():
            yield Static("", id="title")
            yield Static("", id="status")
            with Horizontal(id="actions"):
                yield Button("Close", id="close", variant="primary")
        yield Footer()

    def on_mount(self) -> None:
        self.session = self._session_factory(lambda _session: self.post_message(SessionChanged()))
        self.query_one("#title", Static).update(self.session.target.label())
        self._render_session()
        self.session.setup()

    def on_unmount(self) -> None:
        if self.session is not None:
            self.session.close()

    def on_session_changed(self, message: SessionChanged) -> None:
        self._render_session()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "close":
            self.action_close_player()

    def action_close_player(self) -> None:
        if self.session is not None:
            self.session.close()
        self.app.exit()

    def _render_session(self) -> None:
        session = self.session
        if session is None:
            return
        status = self.query_one("#status", Static)

        if session.error_message:
            # Full-screen error in place of the player; Close dismisses.
            text = Text(session.error_message, style="bold red")
            if self.log_hint:
                text.append(f"\nLog: {self.log_hint}", style="dim")
            self.status_message = text.plain
            status.update(text)
            return

        self.status_message = _STATUS_TEXT.get(session.state, "")
        status.update(self.status_message)
        if session.state is SessionState.CLOSED:
            # Closed from the player window.
            self.app.exit()


class TvHomeRunApp(App[None]):
    TITLE = "TVHomeRun"

    CSS = """
    Screen {
        background: #0b0d0c;
        color: #d6d6d6;
    }
    Button {
        min-width: 12;
    }
    """

    def __init__(self, session_factory: SessionFactory, *, debug: bool = False):
        super().__init__()
        self._session_factory = session_factory
        self.debug_mode = debug
        self.watch_screen: Optional[WatchScreen] = None

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self.watch_screen.session if self.watch_screen is not None else None

    def on_mount(self) -> None:
        log_hint = str(log_path()) if self.debug_mode else None
        self.watch_screen = WatchScreen(self._session_factory, log_hint=log_hint)
        self.push_screen(self.watch_screen)
        logger.debug("watch screen mounted")
