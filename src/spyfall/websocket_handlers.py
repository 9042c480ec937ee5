"""
WebSocket event handlers for real-time game communication.

This module translates Socket.IO events into GameStore calls and broadcasts
the results to the room.  A player's id is the sid of their connection, and
every connection is in a Socket.IO room named after its sid, which is how
personalized game views are delivered.
"""

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room
from loguru import logger

from .room_code import canonicalize_room_code
from .room_state import RoomState


class InvalidRequest(Exception):
    """Raised when an event payload fails validation before reaching the
    store.

    Attributes
    ----------
    reason : str
        Stable identifier sent to the client with the message
    """

    def __init__(self, message: str, reason: str):
        self.reason = reason
        super().__init__(message)


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def _failure(error) -> dict:
    """Acknowledgement for a rejected store operation."""
    return {'success': False, 'error': error.value, 'reason': error.reason}


def _invalid(exc: InvalidRequest) -> dict:
    return {'success': False, 'error': str(exc), 'reason': exc.reason}


def clean_nickname(nickname, max_length: int) -> str:
    """Trim a nickname and check it is non-empty and short enough."""
    if not isinstance(nickname, str) or not nickname.strip():
        raise InvalidRequest('Nickname is required', 'nickname_required')
    nickname = nickname.strip()
    if len(nickname) > max_length:
        raise InvalidRequest(f'Nickname must be at most {max_length} characters', 'nickname_too_long')
    return nickname


def clean_password(password, max_length: int):
    """Empty passwords mean no password."""
    if password is None or password == '':
        return None
    if not isinstance(password, str):
        raise InvalidRequest('Password must be a string', 'invalid_password_format')
    if len(password) > max_length:
        raise InvalidRequest(f'Password must be at most {max_length} characters', 'password_too_long')
    return password


def clean_room_code(code) -> str:
    if not isinstance(code, str) or not code.strip():
        raise InvalidRequest('Room code is required', 'code_required')
    return canonicalize_room_code(code)


def clean_round_duration(value, max_duration: int):
    """None means the server default.  Otherwise a whole number of seconds
    between 1 and max_duration.

    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 < value <= max_duration:
        raise InvalidRequest(
            f'Round duration must be between 1 and {max_duration} seconds', 'invalid_round_duration')
    return value


def init_socketio_handlers(socketio, store):
    """Initialize WebSocket event handlers backed by the given GameStore."""

    def broadcast_room_state(room):
        socketio.emit('room:state-changed', store.to_public_room(room), to=room.code)

    def finish_voting(code):
        """Reveal the results to the whole room if everyone has voted.

        Returns whether this call closed the vote; only one caller per round
        gets True.
        """
        result = store.complete_voting(code)
        if not result.success:
            return False
        vote_results = store.get_vote_results(result.room)
        if vote_results is not None:
            socketio.emit('game:results', vote_results, to=code)
            logger.info(f"Voting complete in room '{code}' (spy caught: {vote_results['spy_caught']})")
        broadcast_room_state(result.room)
        return True

    def remove_from_room(sid, explicit):
        """Take a player out of their room and tell whoever is left."""
        announce_removal(sid, store.remove_player(sid), explicit)

    def announce_removal(sid, removal, explicit):
        """Notify the room a player was taken out of.

        If the room was voting and everyone remaining has voted, the game
        ends now.
        """
        if removal.code is None:
            return

        if explicit:
            leave_room(removal.code, sid=sid)

        room = removal.room
        if room is None:
            logger.info(f"Room '{removal.code}' closed, last player left")
            return

        socketio.emit('room:player-left', sid, to=room.code)
        if room.state != RoomState.VOTING or not finish_voting(room.code):
            broadcast_room_state(room)
        logger.info(f"Player {sid} left room '{room.code}' ({len(room.players)} remaining)")

    @socketio.on('connect')
    def handle_connect(auth=None):
        logger.debug(f"Client connected: {request.sid}")

    @socketio.on('disconnect')
    def handle_disconnect(reason=None):
        """A dropped connection is the same as leaving the room."""
        remove_from_room(request.sid, explicit=False)
        logger.debug(f"Client disconnected: {request.sid}")

    @socketio.on('room:create')
    def handle_create_room(data=None):
        data = _payload(data)
        config = current_app.config
        try:
            nickname = clean_nickname(data.get('nickname'), config['NICKNAME_MAX_LENGTH'])
            password = clean_password(data.get('password'), config['PASSWORD_MAX_LENGTH'])
        except InvalidRequest as e:
            return _invalid(e)

        # One room per connection
        remove_from_room(request.sid, explicit=True)

        room = store.create_room(request.sid, nickname, password)
        join_room(room.code)

        logger.info(f"Room '{room.code}' created by '{nickname}'")
        return {'success': True, 'code': room.code, 'room': store.to_public_room(room)}

    @socketio.on('room:join')
    def handle_join_room(data=None):
        data = _payload(data)
        config = current_app.config
        try:
            nickname = clean_nickname(data.get('nickname'), config['NICKNAME_MAX_LENGTH'])
            code = clean_room_code(data.get('code'))
            password = clean_password(data.get('password'), config['PASSWORD_MAX_LENGTH'])
        except InvalidRequest as e:
            return _invalid(e)

        # One room per connection; the store only moves us once the new room accepts
        result = store.join_room(code, request.sid, nickname, password)
        if not result.success:
            logger.warning(f"'{nickname}' could not join room '{code}': {result.error.value}")
            return _failure(result.error)

        if result.left is not None:
            announce_removal(request.sid, result.left, explicit=True)

        join_room(code)
        player = result.room.players[request.sid]
        emit('room:player-joined', player.to_dict(), to=code, include_self=False)

        logger.info(f"'{nickname}' joined room '{code}'")
        return {'success': True, 'room': store.to_public_room(result.room)}

    @socketio.on('room:leave')
    def handle_leave_room(data=None):
        remove_from_room(request.sid, explicit=True)

    @socketio.on('game:start')
    def handle_start_game(data=None):
        data = _payload(data)
        room = store.get_room_by_player_id(request.sid)
        if room is None:
            return {'success': False, 'error': 'Not in a room', 'reason': 'not_in_room'}

        try:
            round_duration = clean_round_duration(
                data.get('round_duration'), current_app.config['MAX_ROUND_DURATION'])
        except InvalidRequest as e:
            return _invalid(e)

        result = store.start_game(room.code, request.sid, round_duration)
        if not result.success:
            logger.warning(f"Game start rejected in room '{room.code}': {result.error.value}")
            return _failure(result.error)

        # Each player gets their own view; the spy must not see the location
        for player_id in list(result.room.players):
            game_state = store.get_game_state_for_player(result.room, player_id)
            if game_state is not None:
                socketio.emit('game:started', game_state, to=player_id)
        broadcast_room_state(result.room)

        logger.info(f"Game started in room '{room.code}' with {len(result.room.players)} players")
        return {'success': True}

    @socketio.on('game:start-voting')
    def handle_start_voting(data=None):
        room = store.get_room_by_player_id(request.sid)
        if room is None:
            return

        result = store.start_voting(room.code, request.sid)
        if not result.success:
            logger.warning(f"Voting start rejected in room '{room.code}': {result.error.value}")
            return

        socketio.emit('game:voting-started', to=room.code)
        broadcast_room_state(result.room)
        logger.info(f"Voting started in room '{room.code}'")

    @socketio.on('game:vote')
    def handle_vote(data=None):
        data = _payload(data)
        room = store.get_room_by_player_id(request.sid)
        if room is None:
            return {'success': False, 'error': 'Not in a room', 'reason': 'not_in_room'}

        target_id = data.get('target_id')
        if not isinstance(target_id, str) or not target_id:
            return {'success': False, 'error': 'Vote target is required', 'reason': 'target_required'}

        result = store.cast_vote(room.code, request.sid, target_id)
        if not result.success:
            return _failure(result.error)

        socketio.emit('game:vote-cast', request.sid, to=room.code)
        logger.debug(f"Vote cast in room '{room.code}' by {request.sid}")

        if result.all_voted:
            finish_voting(room.code)

        return {'success': True}

    @socketio.on('game:play-again')
    def handle_play_again(data=None):
        room = store.get_room_by_player_id(request.sid)
        if room is None:
            return

        result = store.reset_to_lobby(room.code, request.sid)
        if not result.success:
            logger.warning(f"Reset rejected in room '{room.code}': {result.error.value}")
            return

        broadcast_room_state(result.room)
        logger.info(f"Room '{room.code}' reset to lobby")

    @socketio.on_error_default
    def handle_error(e):
        """Log unexpected errors and report them to the origin connection."""
        event = getattr(request, 'event', None) or {}
        logger.exception(f"Error handling event '{event.get('message')}' from {request.sid}: {e}")
        return {'success': False, 'error': 'Internal server error', 'reason': 'internal_error'}
