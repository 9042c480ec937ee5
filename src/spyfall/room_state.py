"""Contains basic data structures that represent rooms, players and games

The logic that mutates them is contained in game_store.py.

"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional


class RoomState(str, Enum):
    """Lifecycle state of a room.

    The allowed transitions are lobby -> playing -> voting -> results, and
    any state -> lobby through an explicit reset.

    """
    LOBBY = 'lobby'
    PLAYING = 'playing'
    VOTING = 'voting'
    RESULTS = 'results'


@dataclass
class Player(object):
    """A member of a room.

    Attributes
    ----------
    id : str
        Connection id of the player (the Socket.IO sid)
    nickname : str
        Display name, already trimmed by the caller
    is_host : bool
        Whether this player currently holds host privileges
    is_connected : bool
        Whether the player's connection is live

    """
    id: str
    nickname: str
    is_host: bool = False
    is_connected: bool = True

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'nickname': self.nickname,
            'is_host': self.is_host,
            'is_connected': self.is_connected,
        }


@dataclass
class GameData(object):
    """State of a running game.  Only present while the room is playing,
    voting or showing results.

    Attributes
    ----------
    spy_id : str
        Id of the player assigned the spy role
    location : str
        Secret location shared by every player except the spy
    round_duration : int
        Round length in seconds.  Only used by clients for the countdown.
    round_started_at : int
        Epoch milliseconds at which the round started
    votes : Dict[str, str]
        Maps voter id to the id of the player they voted for

    """
    spy_id: str
    location: str
    round_duration: int
    round_started_at: int
    votes: Dict[str, str] = field(default_factory=dict)


@dataclass
class Room(object):
    """A room that players join to play together.

    Attributes
    ----------
    code : str
        Uppercase room code
    host_id : str
        Id of the current host, always a key of `players`
    players : Dict[str, Player]
        Members keyed by id, in join order
    password : str, optional
        Plaintext room password, or None when the room is open
    state : RoomState
        Current lifecycle state
    created_at : datetime
        Creation time (UTC)
    game_data : GameData, optional
        The current game, if one has been started

    """
    code: str
    host_id: str
    players: Dict[str, Player] = field(default_factory=dict)
    password: Optional[str] = None
    state: RoomState = RoomState.LOBBY
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    game_data: Optional[GameData] = None

    @property
    def has_password(self) -> bool:
        return bool(self.password)

    def nickname_of(self, player_id: str, default: str = 'Unknown') -> str:
        player = self.players.get(player_id)
        return player.nickname if player else default
