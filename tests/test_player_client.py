#!/usr/bin/env python3
"""Tests for the playback service client."""

from unittest.mock import Mock

import pytest
import requests

from sleepwake.api.player import (COMMANDS_PATH, STATE_PATH, PlayerClient,
                                  PlayerError, PlayerErrorKind, clamp_volume)

BASE_URL = "http://volumio.local:3000"


def _response(status_code=200, payload=None, json_error=False):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    return PlayerClient(base_url=BASE_URL + "/", session=session, timeout=4.0)


class TestGetVolume:
    def test_reads_state_volume(self, client, session):
        session.get.return_value = _response(payload={"status": "play", "volume": 42})

        assert client.get_volume() == 42
        session.get.assert_called_once_with(BASE_URL + STATE_PATH, params=None, timeout=4.0)

    def test_numeric_string_accepted(self, client, session):
        session.get.return_value = _response(payload={"volume": "35"})
        assert client.get_volume() == 35

    def test_out_of_range_clamped(self, client, session):
        session.get.return_value = _response(payload={"volume": 130})
        assert client.get_volume() == 100

    @pytest.mark.parametrize("payload", [{}, {"volume": None}, {"volume": "loud"}, {"volume": True}, ["volume"]])
    def test_unusable_state_is_bad_response(self, client, session, payload):
        session.get.return_value = _response(payload=payload)

        with pytest.raises(PlayerError) as exc_info:
            client.get_volume()
        assert exc_info.value.kind is PlayerErrorKind.BAD_RESPONSE

    def test_invalid_json_is_bad_response(self, client, session):
        session.get.return_value = _response(json_error=True)

        with pytest.raises(PlayerError) as exc_info:
            client.get_volume()
        assert exc_info.value.kind is PlayerErrorKind.BAD_RESPONSE

    def test_http_error_is_bad_response(self, client, session):
        session.get.return_value = _response(status_code=500)

        with pytest.raises(PlayerError) as exc_info:
            client.get_volume()
        assert exc_info.value.kind is PlayerErrorKind.BAD_RESPONSE
        assert "HTTP 500" in exc_info.value.message

    def test_connection_error_is_unreachable_and_not_retried(self, client, session):
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(PlayerError) as exc_info:
            client.get_volume()
        assert exc_info.value.kind is PlayerErrorKind.UNREACHABLE
        assert session.get.call_count == 1

    def test_timeout_is_unreachable(self, client, session):
        session.get.side_effect = requests.Timeout("slow")

        with pytest.raises(PlayerError) as exc_info:
            client.get_volume()
        assert exc_info.value.kind is PlayerErrorKind.UNREACHABLE


class TestCommands:
    def test_set_volume(self, client, session):
        session.get.return_value = _response()

        assert client.set_volume(25) is True

        session.get.assert_called_once_with(
            BASE_URL + COMMANDS_PATH, params={"cmd": "volume", "volume": 25}, timeout=4.0
        )

    def test_set_volume_clamps(self, client, session):
        session.get.return_value = _response()

        client.set_volume(150)
        client.set_volume(-3)

        sent = [call.kwargs["params"]["volume"] for call in session.get.call_args_list]
        assert sent == [100, 0]

    def test_stop(self, client, session):
        session.get.return_value = _response()
        assert client.stop() is True
        assert session.get.call_args.kwargs["params"] == {"cmd": "stop"}

    def test_play_playlist(self, client, session):
        session.get.return_value = _response()
        assert client.play_playlist("Morning Mix") is True
        assert session.get.call_args.kwargs["params"] == {"cmd": "playplaylist", "name": "Morning Mix"}

    def test_command_failure_raises(self, client, session):
        session.get.return_value = _response(status_code=404)

        with pytest.raises(PlayerError) as exc_info:
            client.stop()
        assert exc_info.value.kind is PlayerErrorKind.BAD_RESPONSE


class TestPing:
    def test_ping_true_when_reachable(self, client, session):
        session.get.return_value = _response(payload={"volume": 10})
        assert client.ping() is True

    def test_ping_false_when_unreachable(self, client, session):
        session.get.side_effect = requests.ConnectionError("down")
        assert client.ping() is False


def test_error_string_includes_kind():
    error = PlayerError(PlayerErrorKind.UNREACHABLE, "getState failed")
    assert str(error) == "unreachable: getState failed"


@pytest.mark.parametrize("value,expected", [(-5, 0), (0, 0), (55, 55), (100, 100), (101, 100)])
def test_clamp_volume(value, expected):
    assert clamp_volume(value) == expected
