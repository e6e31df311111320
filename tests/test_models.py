import pytest

from tvhomerun.models import SessionState, StreamTarget, new_session_id


def test_session_ids_are_unique():
    ids = {new_session_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(ids)


def test_live_target():
    target = StreamTarget.live(" 5.1 ")
    assert target.is_live
    assert target.channel_number == "5.1"
    assert target.label() == "Channel 5.1"


def test_episode_target():
    target = StreamTarget.episode("ep42")
    assert not target.is_live
    assert target.episode_id == "ep42"
    assert target.label() == "Episode ep42"


@pytest.mark.parametrize("factory", [StreamTarget.live, StreamTarget.episode])
def test_empty_identifiers_rejected(factory):
    with pytest.raises(ValueError):
        factory("")


def test_target_is_immutable():
    target = StreamTarget.live("5.1")
    with pytest.raises(AttributeError):
        target.channel_number = "6.1"


def test_session_state_str():
    assert str(SessionState.AWAITING_READY) == "awaiting_ready"
