"""The authoritative in-memory registry of rooms and games.

The model here is:
- There is a set of rooms, each with a unique uppercase code.
- Each room is in one of four states: 'lobby', 'playing', 'voting' or
  'results'.
- Each player (identified by connection id) is a member of at most one room.
- Exactly one member of every room is the host.

Operations never raise for invalid requests.  They leave state untouched and
return a result carrying a Failure instead, so the caller can relay it to the
client.

"""
import random
import threading
import time
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Callable, Dict, List, Optional

from loguru import logger

from .locations import get_random_location
from .room_code import DEFAULT_ROOM_CODE_LENGTH, canonicalize_room_code, generate_room_code
from .room_state import GameData, Player, Room, RoomState

MIN_PLAYERS = 3
DEFAULT_ROUND_DURATION = 480  # seconds
UNKNOWN_NAME = 'Unknown'


class Failure(Enum):
    """Reasons a store operation can be rejected.  Values are the messages
    shown to players.

    """
    ROOM_NOT_FOUND = 'Room not found'
    INVALID_PASSWORD = 'Invalid password'
    GAME_IN_PROGRESS = 'Game already in progress'
    ALREADY_IN_ROOM = 'Already in room'
    NICKNAME_TAKEN = 'Nickname already taken'
    NOT_HOST = 'Only the host can do that'
    NOT_ENOUGH_PLAYERS = 'Not enough players to start'
    WRONG_STATE = 'Not allowed in the current game phase'
    NO_ACTIVE_GAME = 'No game in progress'
    NOT_A_MEMBER = 'You are not in this room'
    INVALID_TARGET = 'Invalid vote target'
    SELF_VOTE = 'Cannot vote for yourself'

    @property
    def reason(self) -> str:
        """Stable identifier sent to clients alongside the message."""
        return self.name.lower()


@dataclass
class StoreResult(object):
    success: bool
    room: Optional[Room] = None
    error: Optional[Failure] = None
    # Set by join_room when the player had to leave another room first
    left: Optional['RemovalResult'] = None

    @classmethod
    def ok(cls, room: Room) -> 'StoreResult':
        return cls(success=True, room=room)

    @classmethod
    def fail(cls, error: Failure) -> 'StoreResult':
        return cls(success=False, error=error)


@dataclass
class VoteResult(StoreResult):
    all_voted: bool = False


@dataclass
class RemovalResult(object):
    """Outcome of removing a player.  `room` is None when the player was
    unknown or the room was deleted because it became empty.  `code` is the
    room the player was in, if any.

    """
    room: Optional[Room] = None
    was_host: bool = False
    code: Optional[str] = None


def _synchronized(method):
    """Run the method while holding the store lock."""
    @wraps(method)
    def locked(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return locked


class GameStore(object):
    """Registry of rooms plus the player -> room index.

    Parameters
    ----------
    code_generator : callable, optional
        Returns a candidate room code on each call.  Defaults to
        generate_room_code with `room_code_length`.
    location_picker : callable, optional
        Takes the store's random generator and returns a location.
        Defaults to a uniform pick from the location catalog.
    rng : random.Random, optional
        Source of randomness for spy selection.
    clock : callable, optional
        Returns the current time in epoch milliseconds.
    min_players : int, optional
        Members required to start a game.  Defaults to 3.
    default_round_duration : int, optional
        Round length in seconds used when start_game isn't given one.

    """

    def __init__(self, code_generator: Optional[Callable[[], str]] = None,
                 location_picker: Optional[Callable] = None,
                 rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], int]] = None,
                 min_players: int = MIN_PLAYERS,
                 default_round_duration: int = DEFAULT_ROUND_DURATION,
                 room_code_length: int = DEFAULT_ROOM_CODE_LENGTH):
        self.rng = rng or random.Random()
        self.code_generator = code_generator or (
            lambda: generate_room_code(room_code_length, self.rng))
        self.location_picker = location_picker or get_random_location
        self.clock = clock or (lambda: int(time.time() * 1000))
        self.min_players = min_players
        self.default_round_duration = default_round_duration

        self.rooms: Dict[str, Room] = {}  # code -> Room
        self.player_to_room: Dict[str, str] = {}  # player id -> code
        self._lock = threading.RLock()

    def __len__(self):
        return len(self.rooms)

    # Room lifecycle

    @_synchronized
    def create_room(self, host_id: str, host_nickname: str, password: Optional[str] = None) -> Room:
        """Create a lobby with the given player as its only member and host.

        The code generator is sampled until it produces a code that isn't in
        use.

        """
        code = canonicalize_room_code(self.code_generator())
        while code in self.rooms:
            logger.debug(f"Room code '{code}' already in use, drawing another")
            code = canonicalize_room_code(self.code_generator())

        host = Player(id=host_id, nickname=host_nickname, is_host=True)
        room = Room(code=code, host_id=host_id, players={host_id: host},
                    password=password or None)

        self.rooms[code] = room
        self.player_to_room[host_id] = code
        return room

    @_synchronized
    def get_room(self, code: str) -> Optional[Room]:
        return self.rooms.get(canonicalize_room_code(code))

    @_synchronized
    def get_room_by_player_id(self, player_id: str) -> Optional[Room]:
        code = self.player_to_room.get(player_id)
        if code is None:
            return None
        return self.rooms.get(code)

    @_synchronized
    def list_rooms(self) -> List[str]:
        return list(self.rooms.keys())

    @_synchronized
    def join_room(self, code: str, player_id: str, nickname: str,
                  password: Optional[str] = None) -> StoreResult:
        """Add a player to an existing lobby as a non-host member.

        A player already in a different room is taken out of it, but only
        once the new room has accepted them.  The removal is returned in
        `left` so the caller can notify the old room.

        """
        room = self.rooms.get(canonicalize_room_code(code))
        if room is None:
            return StoreResult.fail(Failure.ROOM_NOT_FOUND)

        if room.password and room.password != password:
            return StoreResult.fail(Failure.INVALID_PASSWORD)

        if room.state != RoomState.LOBBY:
            return StoreResult.fail(Failure.GAME_IN_PROGRESS)

        if player_id in room.players:
            return StoreResult.fail(Failure.ALREADY_IN_ROOM)

        taken = {p.nickname.lower() for p in room.players.values()}
        if nickname.lower() in taken:
            return StoreResult.fail(Failure.NICKNAME_TAKEN)

        left = None
        if player_id in self.player_to_room:
            left = self.remove_player(player_id)

        room.players[player_id] = Player(id=player_id, nickname=nickname)
        self.player_to_room[player_id] = room.code
        return StoreResult(success=True, room=room, left=left)

    @_synchronized
    def remove_player(self, player_id: str) -> RemovalResult:
        """Remove a player from whatever room they are in.

        Empty rooms are deleted.  If the host leaves, the earliest-joined
        remaining member becomes host.

        """
        code = self.player_to_room.pop(player_id, None)
        if code is None:
            return RemovalResult()

        room = self.rooms.get(code)
        if room is None:
            return RemovalResult()

        player = room.players.pop(player_id, None)
        was_host = bool(player and player.is_host)

        if not room.players:
            del self.rooms[code]
            logger.debug(f"Room '{code}' is empty and was deleted")
            return RemovalResult(room=None, was_host=was_host, code=code)

        if was_host:
            new_host = next(iter(room.players.values()))
            new_host.is_host = True
            room.host_id = new_host.id
            logger.info(f"Host of room '{code}' passed to '{new_host.nickname}'")

        return RemovalResult(room=room, was_host=was_host, code=code)

    @_synchronized
    def to_public_room(self, room: Room) -> dict:
        """Project a room to what every member may see.  Never includes the
        password.

        """
        return {
            'code': room.code,
            'has_password': room.has_password,
            'players': [p.to_dict() for p in room.players.values()],
            'state': room.state.value,
            'host_id': room.host_id,
        }

    # Game lifecycle

    @_synchronized
    def start_game(self, code: str, requester_id: str,
                   round_duration: Optional[int] = None) -> StoreResult:
        """Pick a spy and a location and move the room to 'playing'."""
        room = self.rooms.get(canonicalize_room_code(code))
        if room is None:
            return StoreResult.fail(Failure.ROOM_NOT_FOUND)

        if room.host_id != requester_id:
            return StoreResult.fail(Failure.NOT_HOST)

        if room.state != RoomState.LOBBY:
            return StoreResult.fail(Failure.GAME_IN_PROGRESS)

        if len(room.players) < self.min_players:
            return StoreResult.fail(Failure.NOT_ENOUGH_PLAYERS)

        spy_id = self.rng.choice(list(room.players.keys()))
        room.game_data = GameData(
            spy_id=spy_id,
            location=self.location_picker(self.rng),
            round_duration=round_duration or self.default_round_duration,
            round_started_at=self.clock(),
        )
        room.state = RoomState.PLAYING
        return StoreResult.ok(room)

    @_synchronized
    def get_game_state_for_player(self, room: Room, player_id: str) -> Optional[dict]:
        """Build the view of the current game for one player.

        The spy gets `location` None.  Who voted for whom is never included,
        only whether each player has voted.  The result differs per player
        so it must be built for each recipient.

        """
        game = room.game_data
        if game is None:
            return None

        is_spy = game.spy_id == player_id
        players = []
        for p in room.players.values():
            entry = p.to_dict()
            entry['has_voted'] = p.id in game.votes
            players.append(entry)

        return {
            'location': None if is_spy else game.location,
            'is_spy': is_spy,
            'round_duration': game.round_duration,
            'round_started_at': game.round_started_at,
            'players': players,
        }

    @_synchronized
    def start_voting(self, code: str, requester_id: str) -> StoreResult:
        room = self.rooms.get(canonicalize_room_code(code))
        if room is None:
            return StoreResult.fail(Failure.ROOM_NOT_FOUND)

        if room.host_id != requester_id:
            return StoreResult.fail(Failure.NOT_HOST)

        if room.state != RoomState.PLAYING:
            return StoreResult.fail(Failure.WRONG_STATE)

        room.state = RoomState.VOTING
        return StoreResult.ok(room)

    @_synchronized
    def cast_vote(self, code: str, voter_id: str, target_id: str) -> VoteResult:
        """Record a vote.  Voting again replaces the earlier choice."""
        room = self.rooms.get(canonicalize_room_code(code))
        if room is None:
            return VoteResult(success=False, error=Failure.ROOM_NOT_FOUND)

        if room.state != RoomState.VOTING:
            return VoteResult(success=False, error=Failure.WRONG_STATE)

        if room.game_data is None:
            return VoteResult(success=False, error=Failure.NO_ACTIVE_GAME)

        if voter_id not in room.players:
            return VoteResult(success=False, error=Failure.NOT_A_MEMBER)

        if target_id not in room.players:
            return VoteResult(success=False, error=Failure.INVALID_TARGET)

        if voter_id == target_id:
            return VoteResult(success=False, error=Failure.SELF_VOTE)

        room.game_data.votes[voter_id] = target_id
        return VoteResult(success=True, room=room, all_voted=self.all_voted(room))

    @_synchronized
    def all_voted(self, room: Room) -> bool:
        """True when every current member has a recorded vote.

        Counted against current membership, so a player leaving mid-vote can
        complete the vote for everyone else.

        """
        if room.game_data is None:
            return False
        voters = set(room.game_data.votes) & set(room.players)
        return len(voters) == len(room.players)

    @_synchronized
    def get_vote_results(self, room: Room) -> Optional[dict]:
        """Reveal the votes, the spy and the location.

        The accused is the target with strictly the most votes.  A tie at
        the top accuses nobody, so the spy is only caught as the unique
        maximum.

        """
        game = room.game_data
        if game is None:
            return None

        votes = [
            {
                'voter_id': voter_id,
                'voted_for': target_id,
                'voter_name': room.nickname_of(voter_id, UNKNOWN_NAME),
                'voted_for_name': room.nickname_of(target_id, UNKNOWN_NAME),
            }
            for voter_id, target_id in game.votes.items()
        ]

        tally = Counter(game.votes.values())
        accused_id = None
        accused_votes = 0
        ranked = tally.most_common(2)
        if ranked:
            top_id, top_count = ranked[0]
            if len(ranked) == 1 or ranked[1][1] < top_count:
                accused_id = top_id
                accused_votes = top_count

        return {
            'votes': votes,
            'tally': dict(tally),
            'accused_id': accused_id,
            'accused_name': room.nickname_of(accused_id, UNKNOWN_NAME) if accused_id else None,
            'accused_votes': accused_votes,
            'spy_id': game.spy_id,
            'spy_name': room.nickname_of(game.spy_id, UNKNOWN_NAME),
            'spy_caught': accused_id is not None and accused_id == game.spy_id,
            'location': game.location,
        }

    @_synchronized
    def end_game(self, code: str) -> StoreResult:
        """Move the room to 'results'.  Called by the server once everybody
        has voted, so there is no host check.

        """
        room = self.rooms.get(canonicalize_room_code(code))
        if room is None:
            return StoreResult.fail(Failure.ROOM_NOT_FOUND)

        room.state = RoomState.RESULTS
        return StoreResult.ok(room)

    @_synchronized
    def complete_voting(self, code: str) -> StoreResult:
        """Move a voting room to 'results' if every member has voted.

        The check and the transition happen together, so only one caller
        ever succeeds for a given round.  Fails with WRONG_STATE when the
        room isn't voting or someone has yet to vote.

        """
        room = self.rooms.get(canonicalize_room_code(code))
        if room is None:
            return StoreResult.fail(Failure.ROOM_NOT_FOUND)

        if room.state != RoomState.VOTING or not self.all_voted(room):
            return StoreResult.fail(Failure.WRONG_STATE)

        room.state = RoomState.RESULTS
        return StoreResult.ok(room)

    @_synchronized
    def reset_to_lobby(self, code: str, requester_id: str) -> StoreResult:
        room = self.rooms.get(canonicalize_room_code(code))
        if room is None:
            return StoreResult.fail(Failure.ROOM_NOT_FOUND)

        if room.host_id != requester_id:
            return StoreResult.fail(Failure.NOT_HOST)

        room.game_data = None
        room.state = RoomState.LOBBY
        return StoreResult.ok(room)
