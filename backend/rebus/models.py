from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple
import random

from rebus.errors import InvalidState

# Excludes 0/O and 1/I
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'


class RoomState(str, Enum):
    SETUP = 'setup'
    LOBBY = 'lobby'
    PLAYING = 'playing'
    FINISHED = 'finished'


class RoomEvent(str, Enum):
    PUZZLES_LOADED = 'puzzles_loaded'
    START = 'start'
    ADVANCE = 'advance'
    FINISH = 'finish'


# Every legal (state, event) pair. Anything missing here is rejected.
TRANSITIONS: Dict[Tuple[RoomState, RoomEvent], RoomState] = {
    (RoomState.SETUP, RoomEvent.PUZZLES_LOADED): RoomState.LOBBY,
    (RoomState.LOBBY, RoomEvent.PUZZLES_LOADED): RoomState.LOBBY,
    (RoomState.LOBBY, RoomEvent.START): RoomState.PLAYING,
    (RoomState.PLAYING, RoomEvent.ADVANCE): RoomState.PLAYING,
    (RoomState.PLAYING, RoomEvent.FINISH): RoomState.FINISHED,
}

_TRANSITION_ERRORS = {
    RoomEvent.PUZZLES_LOADED: 'Puzzles can only be uploaded before the game starts',
    RoomEvent.START: 'Game can only be started from the lobby',
    RoomEvent.ADVANCE: 'Game is not in progress',
    RoomEvent.FINISH: 'Game is not in progress',
}

# Sub-phase of a playing room
STAGE_GUESSING = 'guessing'
STAGE_ROUND_OVER = 'round_over'


class Puzzle:
    def __init__(self, image: str, answer: str, hint1: str, hint2: str):
        self.image = image
        self.answer = answer
        self.hint1 = hint1
        self.hint2 = hint2


class Player:
    def __init__(self, id: str, name: str, sid: Optional[str], session_token: str, joined_at: float):
        self.id = id
        self.name = name
        self.sid = sid
        self.session_token = session_token
        self.joined_at = joined_at
        self.score = 0
        self.online = True
        self.guessed_this_round = False

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'online': self.online,
            'guessedThisRound': self.guessed_this_round,
        }


class Room:
    """One isolated game session, keyed by its short code."""

    def __init__(self, code: str, created_at: float, time_per_round: int = 30):
        self.code = code
        self.state = RoomState.SETUP
        self.stage: Optional[str] = None
        self.puzzles: List[Puzzle] = []
        self.current_round = 0
        self.total_rounds = 0
        self.time_per_round = time_per_round
        self.round_start_time: Optional[float] = None
        self.players: Dict[str, Player] = {}
        self.sessions: Dict[str, str] = {}
        self.round_answered: Set[str] = set()
        self.host_sid: Optional[str] = None
        self.host_session: Optional[str] = None
        self.generation = 0
        self.created_at = created_at
        self.abandoned_since: Optional[float] = created_at

    def transition(self, event: RoomEvent) -> RoomState:
        target = TRANSITIONS.get((self.state, event))
        if target is None:
            raise InvalidState(_TRANSITION_ERRORS[event])
        self.state = target
        return target

    def tag(self) -> Tuple[str, int, int]:
        """Generation tag handed to every timer scheduled for the current phase."""
        return (self.code, self.current_round, self.generation)

    def bump_generation(self) -> Tuple[str, int, int]:
        self.generation += 1
        return self.tag()

    @property
    def current_puzzle(self) -> Optional[Puzzle]:
        if 0 <= self.current_round < len(self.puzzles):
            return self.puzzles[self.current_round]
        return None

    @property
    def is_last_round(self) -> bool:
        return self.current_round >= self.total_rounds - 1

    def online_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.online]

    def online_count(self) -> int:
        return len(self.online_players())

    def all_online_answered(self) -> bool:
        online = {p.id for p in self.online_players()}
        return bool(online) and online <= self.round_answered

    def is_abandoned(self) -> bool:
        return self.host_sid is None and self.online_count() == 0

    def remaining_time(self, now: float) -> float:
        if self.round_start_time is None:
            return 0.0
        return max(0.0, self.time_per_round - (now - self.round_start_time))

    def leaderboard(self):
        # sorted() is stable, ties keep join order
        return sorted((p.to_dict() for p in self.players.values()), key=lambda p: p['score'], reverse=True)

    def roster(self):
        return [{'name': p.name, 'online': p.online} for p in self.players.values()]

    def status(self):
        return {
            'code': self.code,
            'state': self.state.value,
            'onlinePlayerCount': self.online_count(),
            'totalRounds': self.total_rounds,
        }


def generate_room_code(is_taken: Callable[[str], bool], length: int = 6) -> str:
    """Generate a short room code that no live room is using."""
    while True:
        code = ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))
        if not is_taken(code):
            return code
