import uuid
from typing import Dict, Optional, Tuple

from rebus.models import Player, Room


class Connection:
    """What a transport connection (socket id) is bound to."""

    def __init__(self, room_code: str, player_id: Optional[str] = None):
        self.room_code = room_code
        self.player_id = player_id


class SessionManager:
    """Maps durable session tokens to stable player identities.

    Socket ids change on every reconnect; the session token a client keeps
    in local storage does not, so it is what ties a returning connection back
    to its player and score.
    """

    def __init__(self, max_name_length: int = 24):
        self.max_name_length = max_name_length
        self._connections: Dict[str, Connection] = {}

    def clean_name(self, name: Optional[str], fallback: str = 'Player') -> str:
        name = (name or '').strip()[: self.max_name_length]
        return name or fallback

    def lookup(self, room: Room, token: Optional[str]) -> Optional[Player]:
        if not token:
            return None
        player_id = room.sessions.get(token)
        return room.players.get(player_id) if player_id else None

    def join(self, room: Room, sid: str, name: Optional[str], token: Optional[str],
             now: float) -> Tuple[Player, bool]:
        """Attach ``sid`` to a player of ``room``.

        Returns ``(player, restored)``; ``restored`` is True when the token
        belonged to an existing player, whose id and score are kept.
        """
        player = self.lookup(room, token)
        if player is not None:
            player.sid = sid
            player.online = True
            if name and name.strip():
                player.name = self.clean_name(name)
            self._connections[sid] = Connection(room.code, player.id)
            return player, True

        player_id = uuid.uuid4().hex[:8]
        while player_id in room.players:
            player_id = uuid.uuid4().hex[:8]
        token = token or str(uuid.uuid4())
        player = Player(player_id, self.clean_name(name), sid, token, joined_at=now)
        room.players[player_id] = player
        room.sessions[token] = player_id
        self._connections[sid] = Connection(room.code, player_id)
        return player, False

    def may_claim_host(self, room: Room, sid: str, token: Optional[str]) -> bool:
        """A live host keeps the role unless the claim carries its session token."""
        if room.host_sid is None or room.host_sid == sid:
            return True
        return room.host_session is not None and token == room.host_session

    def bind_host(self, room: Room, sid: str, token: Optional[str]) -> bool:
        """Make ``sid`` the host connection if it is allowed to claim the role."""
        if not self.may_claim_host(room, sid, token):
            return False
        if room.host_session is None and token:
            room.host_session = token
        room.host_sid = sid
        ctx = self._connections.get(sid)
        if ctx is None or ctx.room_code != room.code:
            self._connections[sid] = Connection(room.code)
        return True

    def connection(self, sid: str) -> Optional[Connection]:
        return self._connections.get(sid)

    def player_for(self, room: Room, sid: str) -> Optional[Player]:
        ctx = self._connections.get(sid)
        if ctx is None or ctx.room_code != room.code or ctx.player_id is None:
            return None
        player = room.players.get(ctx.player_id)
        if player is None or player.sid != sid:
            return None
        return player

    def disconnect(self, room: Optional[Room], sid: str) -> Optional[Player]:
        """Drop the connection and mark its player offline.

        A player that has already moved to a newer connection is left alone.
        """
        ctx = self._connections.pop(sid, None)
        if ctx is None or room is None or ctx.player_id is None:
            return None
        player = room.players.get(ctx.player_id)
        if player is None or player.sid != sid:
            return None
        player.online = False
        player.sid = None
        return player

    def transfer_host(self, room: Room) -> Optional[Player]:
        """Hand the host role to the earliest-joined online player, if any."""
        candidates = sorted(room.online_players(), key=lambda p: p.joined_at)
        if not candidates:
            room.host_sid = None
            return None
        heir = candidates[0]
        room.host_sid = heir.sid
        return heir

    def forget_room(self, code: str) -> None:
        for sid in [s for s, c in self._connections.items() if c.room_code == code]:
            del self._connections[sid]
