"""
HTTP API routes for the Spyfall server.

Real-time play happens over Socket.IO (see websocket_handlers.py).  These
endpoints only expose read-only information, such as whether a room exists
and needs a password before a player tries to join it.
"""

from flask import Blueprint, current_app, jsonify

api_bp = Blueprint('api', __name__, url_prefix='/api')


def get_store():
    """The GameStore registered by create_app."""
    return current_app.extensions['game_store']


@api_bp.route('/health', methods=['GET'])
def health():
    """Liveness check."""
    return jsonify({
        'success': True,
        'data': {
            'status': 'ok',
            'rooms': len(get_store())
        }
    }), 200


@api_bp.route('/rooms/<code>', methods=['GET'])
def get_room(code):
    """Get the public view of a room.  Codes are case-insensitive."""
    store = get_store()
    room = store.get_room(code)
    if room is None:
        return jsonify({'success': False, 'error': 'Room not found'}), 404

    public_room = store.to_public_room(room)
    public_room['player_count'] = len(public_room['players'])
    return jsonify({'success': True, 'data': public_room}), 200
