import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import auth, make_token

BASE_URL = '/api'


def test_ping_and_notification_push(client):
    client.get(f'{BASE_URL}/users/me', headers=auth('alice'))
    client.get(f'{BASE_URL}/users/me', headers=auth('bob'))

    with client.websocket_connect(f'{BASE_URL}/realtime/ws?token={make_token("alice", "alice")}') as ws:
        ws.send_text('ping')
        assert ws.receive_json() == {'type': 'pong'}

        ready = client.get(f'{BASE_URL}/health/ready').json()
        assert ready['online_users'] == 1

        assert client.post(f'{BASE_URL}/follows/alice', headers=auth('bob')).status_code == 201
        event = ws.receive_json()
        assert event['type'] == 'notification'
        assert event['notification']['kind'] == 'follow'
        assert event['notification']['message'] == 'bob started following you.'
        assert event['notification']['is_read'] is False


def test_invalid_token_is_rejected(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect(f'{BASE_URL}/realtime/ws?token=garbage') as ws:
            ws.receive_json()
    assert excinfo.value.code == 1008
