import pytest

from tests.doubles import FakeClient, FakePlayer
from tvhomerun.config import Settings
from tvhomerun.errors import ConfigError
from tvhomerun.models import SessionState
from tvhomerun.usecases.live import open_live_session
from tvhomerun.usecases.recorded import open_episode_session

SETTINGS = Settings(
    server_url="http://host:3000",
    heartbeat_interval=25.0,
    progress_interval=12.0,
    live_forward_buffer=10.0,
    recorded_forward_buffer=None,
)


def test_live_session_uses_live_settings():
    session = open_live_session(settings=SETTINGS, channel_number="5.1", client=FakeClient(), player=FakePlayer())

    assert session.state is SessionState.IDLE
    assert session.target.channel_number == "5.1"
    assert session.base_url == "http://host:3000"
    assert session.heartbeat_interval == 25.0
    assert session.forward_buffer == 10.0


def test_episode_session_uses_recorded_settings():
    session = open_episode_session(
        settings=SETTINGS,
        episode_id="ep1",
        resume=False,
        client=FakeClient(),
        player=FakePlayer(),
    )

    assert session.target.episode_id == "ep1"
    assert session.progress_interval == 12.0
    assert session.forward_buffer is None
    assert session.resume is False


def test_default_client_targets_configured_server():
    session = open_live_session(settings=SETTINGS, channel_number="5.1", player=FakePlayer())

    assert session.client.base_url == "http://host:3000"
    assert session.client.timeout == SETTINGS.request_timeout


def test_missing_server_url_is_config_error():
    with pytest.raises(ConfigError):
        open_live_session(settings=Settings(), channel_number="5.1", client=FakeClient(), player=FakePlayer())
