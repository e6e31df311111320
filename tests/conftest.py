import pytest

from tests.doubles import FakeClient, FakePlayer
from tvhomerun.models import StreamTarget
from tvhomerun.session import PlaybackSession

BASE_URL = "http://host:3000"


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def player():
    return FakePlayer(position=130.0)


@pytest.fixture
def make_session(client, player):
    created = []

    def factory(target=None, **kwargs):
        kwargs.setdefault("base_url", BASE_URL)
        kwargs.setdefault("heartbeat_interval", 0.02)
        kwargs.setdefault("progress_interval", 0.02)
        kwargs.setdefault("forward_buffer", 10.0)
        session = PlaybackSession(target or StreamTarget.live("5.1"), client, player, **kwargs)
        created.append(session)
        return session

    yield factory

    # Never leave keep-alive threads running between tests.
    for session in created:
        session.close()
        session.wait_teardown(2)
