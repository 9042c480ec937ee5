"""
Flask application factory and main application entry point.

This module creates and configures the Flask application instance
with WebSocket support for real-time game communication.
"""

import sys

from flask import Flask
from flask_socketio import SocketIO
from flask_cors import CORS
from loguru import logger

from .config import Config
from .game_store import GameStore


def create_app(config=None, store=None):
    """
    Create and configure the Flask application.

    Args:
        config: Dictionary of configuration overrides
        store: GameStore to serve.  A new one is built from the
            configuration when omitted.

    Returns:
        Tuple of the Flask application and its SocketIO instance
    """
    app = Flask(__name__)
    app.config.from_object(Config)

    if config:
        app.config.update(config)

    # Configure logging
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="{time} | {level} | {message}",
        level=app.config['LOG_LEVEL'],
        colorize=True
    )
    logger.info("Starting Spyfall game server")

    if store is None:
        store = GameStore(
            min_players=app.config['MIN_PLAYERS'],
            default_round_duration=app.config['DEFAULT_ROUND_DURATION'],
            room_code_length=app.config['ROOM_CODE_LENGTH'],
        )
    app.extensions['game_store'] = store

    # Enable CORS for all HTTP requests
    CORS(app, origins=app.config['CORS_ORIGINS'])

    # Initialize SocketIO for WebSocket support
    socketio = SocketIO(app, cors_allowed_origins=app.config['CORS_ORIGINS'])

    from . import api
    app.register_blueprint(api.api_bp)

    # Initialize WebSocket handlers
    from . import websocket_handlers
    websocket_handlers.init_socketio_handlers(socketio, store)

    return app, socketio
