"""Tests for stream claiming and media URL resolution."""

import pytest
import requests

from tests.doubles import FakeClient
from tvhomerun.api.client import ApiError, StartSessionResponse
from tvhomerun.errors import InvalidUrl, NetworkError, ServerRejected
from tvhomerun.models import StreamTarget
from tvhomerun.negotiation import claim_stream, resolve_media_url


class TestResolveMediaUrl:
    def test_relative_path_resolves_against_base(self):
        assert resolve_media_url("http://host:3000", "/watch/abc.m3u8") == "http://host:3000/watch/abc.m3u8"

    def test_absolute_url_passes_through(self):
        url = "https://cdn.example.com/live/abc.m3u8?token=1"
        assert resolve_media_url("http://host:3000", url) == url

    def test_path_without_leading_slash(self):
        assert resolve_media_url("http://host:3000", "stream/1.m3u8") == "http://host:3000/stream/1.m3u8"

    @pytest.mark.parametrize("base", ["", "host:3000", "not a url", "ftp://host/"])
    def test_invalid_base_raises(self, base):
        with pytest.raises(InvalidUrl) as exc_info:
            resolve_media_url(base, "/watch/abc.m3u8")
        assert exc_info.value.message == "Invalid server URL"

    def test_empty_path_raises(self):
        with pytest.raises(InvalidUrl) as exc_info:
            resolve_media_url("http://host:3000", "  ")
        assert exc_info.value.message == "Invalid stream URL"

    def test_non_http_path_raises(self):
        with pytest.raises(InvalidUrl):
            resolve_media_url("http://host:3000", "rtsp://camera/stream")


class TestClaimStream:
    def test_success_returns_media_path(self):
        client = FakeClient(StartSessionResponse(success=True, playlist_url=" /stream/1.m3u8 ", resume_position=42.0))

        claim = claim_stream(client, StreamTarget.live("5.1"), "sid-1")

        assert claim.media_path == "/stream/1.m3u8"
        assert claim.resume_position == 42.0
        assert client.start_calls == [(StreamTarget.live("5.1"), "sid-1")]

    def test_empty_session_id_is_rejected(self):
        client = FakeClient()

        with pytest.raises(ValueError):
            claim_stream(client, StreamTarget.live("5.1"), "")
        assert client.start_calls == []

    def test_error_field_wins_over_success(self):
        client = FakeClient(StartSessionResponse(success=True, playlist_url="/x", error="Tuner busy"))

        with pytest.raises(ServerRejected) as exc_info:
            claim_stream(client, StreamTarget.live("5.1"), "sid")
        assert exc_info.value.reason == "Tuner busy"

    def test_success_false_uses_server_message(self):
        client = FakeClient(StartSessionResponse(success=False, message="No tuners available"))

        with pytest.raises(ServerRejected) as exc_info:
            claim_stream(client, StreamTarget.live("5.1"), "sid")
        assert exc_info.value.message == "No tuners available"

    def test_success_false_without_message(self):
        client = FakeClient(StartSessionResponse(success=False))

        with pytest.raises(ServerRejected) as exc_info:
            claim_stream(client, StreamTarget.live("5.1"), "sid")
        assert exc_info.value.message == "Failed to start stream"

    def test_http_error_is_server_rejected(self):
        client = FakeClient(start_error=ApiError(503, "All tuners in use"))

        with pytest.raises(ServerRejected) as exc_info:
            claim_stream(client, StreamTarget.live("5.1"), "sid")
        assert exc_info.value.message == "All tuners in use"

    def test_transport_error_is_network_error(self):
        client = FakeClient(start_error=requests.ConnectionError("refused"))

        with pytest.raises(NetworkError):
            claim_stream(client, StreamTarget.live("5.1"), "sid")

    def test_success_without_url_is_invalid(self):
        client = FakeClient(StartSessionResponse(success=True, playlist_url=""))

        with pytest.raises(InvalidUrl):
            claim_stream(client, StreamTarget.live("5.1"), "sid")
