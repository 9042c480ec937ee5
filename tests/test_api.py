"""
Tests for the HTTP API endpoints.
"""

import json

import pytest
from src.spyfall.app import create_app
from src.spyfall.game_store import GameStore


@pytest.fixture
def store():
    return GameStore()


@pytest.fixture
def app(store):
    """Create a test Flask application."""
    app, socketio = create_app({'TESTING': True}, store=store)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


class TestHealth:

    def test_health(self, client, store):
        response = client.get('/api/health')
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['success'] is True
        assert data['data'] == {'status': 'ok', 'rooms': 0}

        store.create_room("P1", "Alice")
        data = json.loads(client.get('/api/health').data)
        assert data['data']['rooms'] == 1


class TestRooms:

    def test_get_room(self, client, store):
        room = store.create_room("P1", "Alice", "secret")
        store.join_room(room.code, "P2", "Bob", "secret")

        response = client.get(f'/api/rooms/{room.code}')
        assert response.status_code == 200
        data = json.loads(response.data)['data']
        assert data['code'] == room.code
        assert data['has_password'] is True
        assert data['state'] == 'lobby'
        assert data['host_id'] == "P1"
        assert data['player_count'] == 2
        assert [p['nickname'] for p in data['players']] == ["Alice", "Bob"]
        assert 'secret' not in response.get_data(as_text=True)

    def test_get_room_lowercase_code(self, client, store):
        room = store.create_room("P1", "Alice")
        response = client.get(f'/api/rooms/{room.code.lower()}')
        assert response.status_code == 200
        assert json.loads(response.data)['data']['has_password'] is False

    def test_get_missing_room(self, client):
        response = client.get('/api/rooms/NOPE00')
        assert response.status_code == 404
        data = json.loads(response.data)
        assert data == {'success': False, 'error': 'Room not found'}

    def test_room_gone_after_last_player_leaves(self, client, store):
        room = store.create_room("P1", "Alice")
        store.remove_player("P1")
        assert client.get(f'/api/rooms/{room.code}').status_code == 404
