from __future__ import annotations

import pytest

from tests.fakes import wait_for


# Helper to assert unified response shape

def assert_api_envelope(resp, *, expect_success: bool | None = None):
    assert resp.status_code >= 200
    data = resp.get_json()
    assert isinstance(data, dict), "Response must be JSON object"
    assert 'success' in data, "Missing success field"
    assert 'timestamp' in data, "Missing timestamp"
    assert 'request_id' in data, "Missing request_id"
    assert data['timestamp'].endswith('Z')
    assert resp.headers['X-Request-ID'] == data['request_id']
    if expect_success is not None:
        assert data['success'] is expect_success, f"Expected success={expect_success} got {data['success']}"
    if not data['success']:
        assert 'message' in data, "Error responses must contain message"
        assert 'error_code' in data, "Error responses must contain error_code"
    return data

# -------- Settings --------


def test_get_settings_defaults(client):
    resp = client.get('/api/settings')
    data = assert_api_envelope(resp, expect_success=True)

    settings = data['data']
    assert settings['sleep_time'] == '22:00'
    assert settings['wake_time'] == '07:00'
    assert settings['volume_decrease'] == 10
    assert settings['player_url'] == 'http://localhost:3000'
    assert '_runtime' not in settings


def test_save_settings_json_roundtrip(client):
    resp = client.post('/api/settings', json={
        'sleep_time': '23:15',
        'wake_time_saturday': '09:00',
        'playlist': 'Morning',
        'minutes_ramp': 12,
    })
    data = assert_api_envelope(resp, expect_success=True)
    assert data['data']['sleep_time'] == '23:15'

    resp = client.get('/api/settings')
    settings = assert_api_envelope(resp, expect_success=True)['data']
    assert settings['sleep_time'] == '23:15'
    assert settings['wake_time_saturday'] == '09:00'
    assert settings['playlist'] == 'Morning'
    assert settings['minutes_ramp'] == 12
    # Untouched keys keep their previous values
    assert settings['wake_time'] == '07:00'


def test_save_settings_form_post(client):
    resp = client.post('/api/settings', data={'wake_enabled': 'off', 'start_volume': '8'})
    data = assert_api_envelope(resp, expect_success=True)

    assert data['data']['wake_enabled'] is False
    assert data['data']['start_volume'] == 8


@pytest.mark.parametrize("payload,field", [
    ({'sleep_time': '25:99'}, 'sleep_time'),
    ({'start_volume': '110'}, 'start_volume'),
    ({'volume_increase': '0'}, 'volume_increase'),
    ({'player_url': 'volumio'}, 'player_url'),
])
def test_save_settings_validation_error(client, payload, field):
    resp = client.post('/api/settings', json=payload)
    data = assert_api_envelope(resp, expect_success=False)

    assert resp.status_code == 400
    assert data['error_code'] == field


def test_save_settings_timezone_and_timeout(client):
    resp = client.post('/api/settings', json={
        'timezone': 'Europe/Zagreb',
        'player_timeout': 3,
        'sleep_time': '23:00',
    })
    data = assert_api_envelope(resp, expect_success=True)
    assert data['data']['timezone'] == 'Europe/Zagreb'
    assert data['data']['player_timeout'] == 3.0

    settings = client.get('/api/settings').get_json()['data']
    assert settings['timezone'] == 'Europe/Zagreb'
    assert settings['player_timeout'] == 3.0


def test_save_settings_only_player_timeout(client):
    resp = client.post('/api/settings', json={'player_timeout': '2.5'})
    data = assert_api_envelope(resp, expect_success=True)
    assert data['data']['player_timeout'] == 2.5


@pytest.mark.parametrize("payload,field", [
    ({'timezone': 'Mars/Olympus'}, 'timezone'),
    ({'player_timeout': 0}, 'player_timeout'),
    ({'player_timeout': 'soon'}, 'player_timeout'),
])
def test_invalid_timezone_or_timeout_rejected(client, payload, field):
    resp = client.post('/api/settings', json=payload)
    data = assert_api_envelope(resp, expect_success=False)

    assert resp.status_code == 400
    assert data['error_code'] == field
    settings = client.get('/api/settings').get_json()['data']
    assert settings['timezone'] == ''
    assert settings['player_timeout'] == 10.0


def test_save_settings_empty(client):
    resp = client.post('/api/settings', json={})
    data = assert_api_envelope(resp, expect_success=False)

    assert resp.status_code == 400
    assert data['error_code'] == 'NO_SETTINGS'


def test_invalid_settings_not_persisted(client):
    client.post('/api/settings', json={'sleep_time': 'never'})
    settings = client.get('/api/settings').get_json()['data']
    assert settings['sleep_time'] == '22:00'


# -------- Status and triggers --------


def test_status_contract(client):
    resp = client.get('/api/status')
    data = assert_api_envelope(resp, expect_success=True)

    status = data['data']
    assert status['running'] is True
    assert status['state'] == 'idle'
    assert set(status['events']) == {'sleep', 'wake'}
    assert status['events']['sleep']['next_fire'] is not None
    assert status['events']['wake']['time_until'].startswith('in ')


def test_saving_settings_reschedules(client, timers):
    armed = len(timers.timers)
    client.post('/api/settings', json={'sleep_enabled': False})

    status = client.get('/api/status').get_json()['data']
    assert status['events']['sleep'] == {'enabled': False, 'next_fire': None, 'time_until': 'Not scheduled'}
    # Only the sleep timer was touched
    assert len(timers.timers) == armed


def test_trigger_wake(client, app, player):
    client.post('/api/settings', json={'playlist': 'Wake', 'start_volume': 5, 'volume_increase': 1})

    resp = client.post('/api/wake/trigger')
    data = assert_api_envelope(resp, expect_success=True)

    assert data['data']['activity'] == 'wake'
    engine = app.extensions['sleepwake.engine']
    assert engine.coordinator.wait_idle(5.0)
    assert player.commands() == [('set_volume', 5), ('play_playlist', 'Wake'), ('set_volume', 6)]


def test_trigger_sleep_conflicts_with_wake(client, player):
    client.post('/api/settings', json={'playlist': 'Wake', 'volume_increase': 5})
    client.post('/api/wake/trigger')
    assert wait_for(lambda: player.count('play_playlist') == 1)

    resp = client.post('/api/sleep/trigger')
    data = assert_api_envelope(resp, expect_success=False)

    assert resp.status_code == 409
    assert data['error_code'] == 'SCHEDULING_CONFLICT'
    assert data['data']['state'] == 'waking'


def test_trigger_requires_post(client):
    resp = client.get('/api/sleep/trigger')
    assert_api_envelope(resp, expect_success=False)
    assert resp.status_code == 405


# -------- Health --------


def test_healthz(client):
    resp = client.get('/healthz')
    assert resp.status_code == 200
    assert resp.get_json()['ok'] is True


def test_services_health(client):
    resp = client.get('/api/services/health')
    data = assert_api_envelope(resp, expect_success=True)

    health = data['data']
    assert health['total_services'] == 2
    assert set(health['services']) == {'schedule', 'player'}
    assert health['services']['schedule']['status']['engine_running'] is True
    assert health['services']['player']['status']['reachable'] is True
    assert health['overall_healthy'] is True


def test_services_health_reports_unreachable_player(client, player):
    player.fail_on['get_volume'] = 0

    health = client.get('/api/services/health').get_json()['data']

    assert health['services']['player']['healthy'] is False
    assert health['overall_healthy'] is False


def test_unknown_route_uses_envelope(client):
    resp = client.get('/api/nope')
    assert resp.status_code == 404
    assert_api_envelope(resp, expect_success=False)
