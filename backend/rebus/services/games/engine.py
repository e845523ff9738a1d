import functools
import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from rebus.errors import InvalidState, Duplicate, Unauthorized
from rebus.models import (
    Puzzle,
    Room,
    RoomEvent,
    RoomState,
    STAGE_GUESSING,
    STAGE_ROUND_OVER,
)
from .guessing import MATCH_CORRECT, MATCH_WRONG, evaluate_guess
from .hints import generate_hints
from .registry import RoomRegistry
from .scheduler import GROUP_REAP, BaseScheduler
from .scoring import calc_score
from .sessions import SessionManager


def _as_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class GameEngine:
    """Room lifecycle and round orchestration.

    Every public method and every timer callback runs under one re-entrant
    lock, so handlers execute one at a time and see a consistent room.
    Timers carry the tag of the phase that issued them and do nothing once
    the room has moved past that phase.
    """

    def __init__(self, registry: RoomRegistry, scheduler: BaseScheduler, broadcaster,
                 sessions: Optional[SessionManager] = None, config: Optional[Mapping[str, Any]] = None,
                 logger: Optional[logging.Logger] = None):
        self.registry = registry
        self.scheduler = scheduler
        self.broadcaster = broadcaster
        self.sessions = sessions or SessionManager()
        self.config = config or {}
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()

    def _cfg(self, key: str, default):
        value = self.config.get(key, default)
        return default if value is None else value

    # ---- Room registry surface ----

    def create_room(self) -> Room:
        with self._lock:
            self.reap_abandoned()
            room = self.registry.create(
                now=self.scheduler.now(),
                time_per_round=int(self._cfg('DEFAULT_TIME_PER_ROUND_SEC', 30)),
            )
            self._schedule_reap(room)
            self.logger.info(f"[room-create] room={room.code}")
            return room

    def load_puzzles(self, code: str, items: Iterable[Mapping[str, Any]]) -> Room:
        """Install the uploaded puzzles and open the lobby."""
        with self._lock:
            room = self.registry.get(code)
            items = list(items)
            if not items:
                raise InvalidState('At least one puzzle is required')
            max_puzzles = int(self._cfg('MAX_PUZZLES', 50))
            if len(items) > max_puzzles:
                raise InvalidState(f'At most {max_puzzles} puzzles per room')
            puzzles = []
            for item in items:
                answer = str(item.get('answer') or '').strip() or 'Unknown'
                hint1, hint2 = generate_hints(answer)
                puzzles.append(Puzzle(item['image'], answer, hint1, hint2))
            room.transition(RoomEvent.PUZZLES_LOADED)
            room.puzzles = puzzles
            room.total_rounds = len(puzzles)
            self.logger.info(f"[puzzles] room={room.code} count={len(puzzles)}")
            return room

    def room_status(self, code: str) -> Dict[str, Any]:
        with self._lock:
            return self.registry.get(code).status()

    def reap_abandoned(self) -> List[str]:
        """Drop every room that has been abandoned for the whole grace period."""
        with self._lock:
            grace = float(self._cfg('ROOM_REAP_GRACE_SEC', 600))
            swept = self.registry.sweep_abandoned(self.scheduler.now(), grace)
            for room in swept:
                self._teardown(room)
            return [r.code for r in swept]

    # ---- Commands ----

    def host_join(self, sid: str, code: str, session_token: Optional[str] = None) -> Room:
        with self._lock:
            room = self.registry.get(code)
            if not self.sessions.may_claim_host(room, sid, session_token):
                raise Unauthorized('Room already has a host')
            self._release_connection(sid, room, as_host=True)
            self.sessions.bind_host(room, sid, session_token)
            self.broadcaster.enter(sid, room.code)
            self._mark_active(room)
            self.logger.info(f"[host] room={room.code} sid={sid}")
            self.broadcaster.to_sid(sid, 'host-joined', {
                'roomCode': room.code,
                'puzzleCount': len(room.puzzles),
                'state': room.state.value,
            })
            self.broadcaster.to_sid(sid, 'leaderboard-update', room.leaderboard())
            self._replay_phase(room, sid)
            return room

    def join_room(self, sid: str, code: str, player_name: Optional[str] = None,
                  session_token: Optional[str] = None):
        with self._lock:
            room = self.registry.get(code)
            if room.state == RoomState.SETUP:
                raise InvalidState('Room is not ready yet')

            bound = self.sessions.player_for(room, sid)
            if bound is not None and not session_token:
                session_token = bound.session_token
            self._release_connection(sid, room, session_token)
            player, restored = self.sessions.join(room, sid, player_name, session_token, self.scheduler.now())
            self.broadcaster.enter(sid, room.code)
            self._mark_active(room)
            tag = '[reconnect]' if restored else '[join]'
            self.logger.info(f"{tag} room={room.code} player={player.id} score={player.score}")

            self.broadcaster.to_sid(sid, 'joined', {
                'playerId': player.id,
                'roomCode': room.code,
                'playerName': player.name,
                'sessionId': player.session_token,
                'state': room.state.value,
                'score': player.score,
                'restored': restored,
            })
            self._replay_phase(room, sid)
            if (restored and room.state == RoomState.PLAYING and room.stage == STAGE_GUESSING
                    and player.id in room.round_answered):
                self.broadcaster.to_sid(sid, 'already-answered', {})

            self.broadcaster.to_room(room.code, 'leaderboard-update', room.leaderboard())
            self.broadcaster.to_room(room.code, 'player-joined', {
                'playerName': player.name,
                'playerCount': room.online_count(),
                'players': room.roster(),
            })
            return player, restored

    def start_game(self, sid: str, code: str, rounds=None, time_per_round=None) -> Room:
        with self._lock:
            room = self.registry.get(code)
            self._require_host(room, sid, 'start-game')

            available = len(room.puzzles)
            requested = _as_int(rounds)
            total = min(requested, available) if requested and requested > 0 else available

            seconds = _as_int(time_per_round) or int(self._cfg('DEFAULT_TIME_PER_ROUND_SEC', 30))
            seconds = max(int(self._cfg('MIN_TIME_PER_ROUND_SEC', 5)), seconds)
            seconds = min(int(self._cfg('MAX_TIME_PER_ROUND_SEC', 300)), seconds)

            room.transition(RoomEvent.START)
            room.total_rounds = total
            room.time_per_round = seconds
            room.current_round = 0
            for p in room.players.values():
                p.score = 0
                p.guessed_this_round = False
            self.logger.info(f"[start] room={room.code} rounds={total} seconds={seconds}")
            self._begin_round(room)
            return room

    def next_round(self, sid: str, code: str) -> Room:
        with self._lock:
            room = self.registry.get(code)
            self._require_host(room, sid, 'next-round')
            if room.state != RoomState.PLAYING:
                raise InvalidState('Game is not in progress')
            self.scheduler.cancel(room.code)
            self._advance(room)
            return room

    def submit_guess(self, sid: str, code: str, guess: Optional[str]) -> Dict[str, Any]:
        with self._lock:
            room = self.registry.get(code)
            if room.state != RoomState.PLAYING:
                raise InvalidState('Game is not in progress')
            if room.stage != STAGE_GUESSING:
                raise InvalidState('Round is over')
            player = self.sessions.player_for(room, sid)
            if player is None:
                raise InvalidState('Join the room before guessing')
            if player.id in room.round_answered:
                raise Duplicate(f'{player.id} already scored this round')

            text = str(guess or '')[: int(self._cfg('MAX_GUESS_LENGTH', 100))]
            puzzle = room.current_puzzle
            result = evaluate_guess(text, puzzle.answer)

            if result.match == MATCH_WRONG:
                payload = {'match': MATCH_WRONG, 'guess': text}
                self.broadcaster.to_sid(sid, 'guess-result', payload)
                return payload

            remaining = room.remaining_time(self.scheduler.now())
            points = calc_score(remaining, room.time_per_round, result.match, result.similarity)
            player.score += points
            player.guessed_this_round = True
            room.round_answered.add(player.id)
            self.logger.info(
                f"[guess] room={room.code} round={room.current_round} player={player.id} "
                f"match={result.match} similarity={result.similarity:.2f} points={points}"
            )

            payload = {
                'match': result.match,
                'score': points,
                'totalScore': player.score,
                'answer': puzzle.answer if result.match == MATCH_CORRECT else None,
            }
            self.broadcaster.to_sid(sid, 'guess-result', payload)
            self.broadcaster.to_room(room.code, 'leaderboard-update', room.leaderboard())
            self.broadcaster.to_room(room.code, 'player-guessed', {
                'playerName': player.name,
                'match': result.match,
            })
            if room.all_online_answered():
                self._end_round(room)
            return payload

    def disconnect(self, sid: str) -> None:
        with self._lock:
            ctx = self.sessions.connection(sid)
            if ctx is None:
                return
            room = self.registry.find(ctx.room_code)
            player = self.sessions.disconnect(room, sid)
            if room is None:
                return

            if player is not None:
                self._announce_leave(room, player)

            if room.host_sid == sid:
                heir = self.sessions.transfer_host(room)
                if heir is not None:
                    self.logger.info(f"[host] room={room.code} promoted player={heir.id}")
                    self.broadcaster.to_sid(heir.sid, 'host-promoted', {})
                else:
                    self.logger.info(f"[host] room={room.code} host left, nobody to promote")

            if (player is not None and room.state == RoomState.PLAYING
                    and room.stage == STAGE_GUESSING and room.all_online_answered()):
                self._end_round(room)

            if room.is_abandoned():
                self._mark_abandoned(room)

    def _release_connection(self, sid: str, room: Room, session_token: Optional[str] = None,
                            as_host: bool = False) -> None:
        """Detach ``sid`` from whatever it was bound to before it binds into ``room``.

        A socket moving to another room leaves its old room exactly as if it
        had disconnected. Within the same room only a player the socket no
        longer represents is taken offline; the host role stays with the socket.
        """
        ctx = self.sessions.connection(sid)
        if ctx is None:
            return
        if ctx.room_code != room.code:
            self.disconnect(sid)
            self.broadcaster.leave(sid, ctx.room_code)
            return
        if as_host or ctx.player_id is None:
            return
        kept = self.sessions.lookup(room, session_token)
        if kept is not None and kept.id == ctx.player_id:
            return
        player = self.sessions.disconnect(room, sid)
        if player is not None:
            self._announce_leave(room, player)

    def _announce_leave(self, room: Room, player) -> None:
        self.logger.info(f"[leave] room={room.code} player={player.id}")
        self.broadcaster.to_room(room.code, 'player-left', {
            'playerName': player.name,
            'playerCount': room.online_count(),
            'players': room.roster(),
        })
        self.broadcaster.to_room(room.code, 'leaderboard-update', room.leaderboard())

    # ---- Round flow ----

    def _require_host(self, room: Room, sid: str, command: str) -> None:
        if room.host_sid is None or room.host_sid != sid:
            raise Unauthorized(f'{command} from non-host {sid}')

    def _begin_round(self, room: Room) -> None:
        self.scheduler.cancel(room.code)
        room.stage = STAGE_GUESSING
        room.round_start_time = self.scheduler.now()
        room.round_answered = set()
        for p in room.players.values():
            p.guessed_this_round = False
        tag = room.bump_generation()
        self.logger.info(f"[round-start] room={room.code} round={room.current_round + 1}/{room.total_rounds}")

        self.broadcaster.to_room(room.code, 'new-round', self._round_payload(room))
        self.broadcaster.to_room(room.code, 'leaderboard-update', room.leaderboard())

        total = room.time_per_round
        self.scheduler.schedule(tag, 'hint-1', total * float(self._cfg('HINT_ONE_AT', 0.5)),
                                functools.partial(self._on_hint, 1))
        self.scheduler.schedule(tag, 'hint-2', total * float(self._cfg('HINT_TWO_AT', 0.75)),
                                functools.partial(self._on_hint, 2))
        self.scheduler.schedule(tag, 'round-end', total, self._on_round_timeout)

    def _end_round(self, room: Room) -> None:
        if room.state != RoomState.PLAYING or room.stage != STAGE_GUESSING:
            return
        self.scheduler.cancel(room.code)
        room.stage = STAGE_ROUND_OVER
        tag = room.bump_generation()
        payload = self._round_end_payload(room)
        self.logger.info(f"[round-end] room={room.code} round={room.current_round + 1} last={payload['isLastRound']}")
        self.broadcaster.to_room(room.code, 'round-end', payload)

        if room.is_last_round:
            delay = float(self._cfg('FINAL_ROUND_DELAY_SEC', 3))
            self.scheduler.schedule(tag, 'game-over', delay, self._on_auto_advance)
        else:
            delay = float(self._cfg('NEXT_ROUND_DELAY_SEC', 5))
            self.scheduler.schedule(tag, 'next-round', delay, self._on_auto_advance)

    def _advance(self, room: Room) -> None:
        if room.is_last_round:
            self._end_game(room)
            return
        room.transition(RoomEvent.ADVANCE)
        room.current_round += 1
        self._begin_round(room)

    def _end_game(self, room: Room) -> None:
        self.scheduler.cancel(room.code)
        room.transition(RoomEvent.FINISH)
        room.stage = None
        room.bump_generation()
        self.logger.info(f"[game-over] room={room.code}")
        self.broadcaster.to_room(room.code, 'game-over', {'leaderboard': room.leaderboard()})

    def _replay_phase(self, room: Room, sid: str) -> None:
        """Bring a connection that (re)joins mid-game up to the current phase."""
        if room.state == RoomState.PLAYING:
            if room.stage == STAGE_GUESSING:
                self.broadcaster.to_sid(sid, 'new-round', self._round_payload(room, latecomer=True))
            else:
                self.broadcaster.to_sid(sid, 'round-end', self._round_end_payload(room))
        elif room.state == RoomState.FINISHED:
            self.broadcaster.to_sid(sid, 'game-over', {'leaderboard': room.leaderboard()})

    def _round_payload(self, room: Room, latecomer: bool = False) -> Dict[str, Any]:
        payload = {
            'roundNum': room.current_round + 1,
            'totalRounds': room.total_rounds,
            'image': room.current_puzzle.image,
            'timePerRound': room.time_per_round,
        }
        if latecomer:
            payload['remainingTime'] = room.remaining_time(self.scheduler.now())
        return payload

    def _round_end_payload(self, room: Room) -> Dict[str, Any]:
        return {
            'correctAnswer': room.current_puzzle.answer,
            'roundNum': room.current_round + 1,
            'totalRounds': room.total_rounds,
            'leaderboard': room.leaderboard(),
            'isLastRound': room.is_last_round,
        }

    # ---- Timer callbacks ----

    def _live_room(self, tag) -> Optional[Room]:
        room = self.registry.find(tag[0])
        if room is None or room.tag() != tag:
            self.logger.info(f"[timer-stale] room={tag[0]} round={tag[1]} gen={tag[2]}")
            return None
        return room

    def _on_hint(self, level: int, tag) -> None:
        with self._lock:
            room = self._live_room(tag)
            if room is None:
                return
            puzzle = room.current_puzzle
            text = puzzle.hint1 if level == 1 else puzzle.hint2
            self.broadcaster.to_room(room.code, 'hint', {'level': level, 'text': text})

    def _on_round_timeout(self, tag) -> None:
        with self._lock:
            room = self._live_room(tag)
            if room is not None:
                self._end_round(room)

    def _on_auto_advance(self, tag) -> None:
        with self._lock:
            room = self._live_room(tag)
            if room is not None:
                self._advance(room)

    # ---- Reaping ----

    def _mark_active(self, room: Room) -> None:
        if room.abandoned_since is not None:
            room.abandoned_since = None
            self.scheduler.cancel(room.code, GROUP_REAP)

    def _mark_abandoned(self, room: Room) -> None:
        if room.abandoned_since is None:
            room.abandoned_since = self.scheduler.now()
            self._schedule_reap(room)

    def _schedule_reap(self, room: Room) -> None:
        self.scheduler.cancel(room.code, GROUP_REAP)
        grace = float(self._cfg('ROOM_REAP_GRACE_SEC', 600))
        self.scheduler.schedule(room.tag(), 'reap', grace, self._on_reap, group=GROUP_REAP)

    def _on_reap(self, tag) -> None:
        with self._lock:
            room = self.registry.find(tag[0])
            if room is None or not room.is_abandoned():
                self.logger.info(f"[reap-skip] room={tag[0]} still in use")
                return
            self.registry.delete(room.code)
            self._teardown(room)

    def _teardown(self, room: Room) -> None:
        self.scheduler.cancel(room.code, group=None)
        room.bump_generation()
        self.sessions.forget_room(room.code)
        self.logger.info(f"[reap] room={room.code} state={room.state.value}")
