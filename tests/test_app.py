"""
Tests for Flask application factory and basic functionality.
"""

import pytest
from src.spyfall.app import create_app
from src.spyfall.game_store import GameStore

def test_create_app():
    """Test that the app factory creates a valid Flask app."""
    app, socketio = create_app()
    assert app is not None
    assert socketio is not None
    assert app.config['SECRET_KEY'] is not None
    assert isinstance(app.extensions['game_store'], GameStore)

def test_config_overrides():
    """Test that configuration overrides reach the store."""
    app, _ = create_app({'TESTING': True, 'MIN_PLAYERS': 4, 'DEFAULT_ROUND_DURATION': 60})
    store = app.extensions['game_store']
    assert app.config['TESTING'] is True
    assert store.min_players == 4
    assert store.default_round_duration == 60

def test_injected_store():
    """Test that a store passed to the factory is the one being served."""
    store = GameStore()
    app, _ = create_app({'TESTING': True}, store=store)
    assert app.extensions['game_store'] is store

def test_separate_apps_do_not_share_rooms():
    app_a, _ = create_app({'TESTING': True})
    app_b, _ = create_app({'TESTING': True})
    app_a.extensions['game_store'].create_room("P1", "Alice")
    assert len(app_a.extensions['game_store']) == 1
    assert len(app_b.extensions['game_store']) == 0
