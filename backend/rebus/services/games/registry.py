import threading
from typing import Callable, Dict, List, Optional

from rebus.errors import NotFound
from rebus.models import Room, generate_room_code


class RoomStore:
    """Keyed storage for live rooms.

    The engine only talks to this interface so a different backing store can
    be dropped in without touching the game flow.
    """

    def get(self, code: str) -> Optional[Room]:
        raise NotImplementedError

    def put(self, room: Room) -> None:
        raise NotImplementedError

    def delete(self, code: str) -> Optional[Room]:
        raise NotImplementedError

    def sweep(self, predicate: Callable[[Room], bool]) -> List[Room]:
        """Remove and return every room for which ``predicate`` holds."""
        raise NotImplementedError

    def __contains__(self, code: str) -> bool:
        return self.get(code) is not None


class InMemoryRoomStore(RoomStore):
    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def get(self, code):
        return self._rooms.get(code)

    def put(self, room):
        with self._lock:
            self._rooms[room.code] = room

    def delete(self, code):
        with self._lock:
            return self._rooms.pop(code, None)

    def sweep(self, predicate):
        with self._lock:
            doomed = [r for r in self._rooms.values() if predicate(r)]
            for room in doomed:
                del self._rooms[room.code]
        return doomed

    def __len__(self):
        return len(self._rooms)


class RoomRegistry:
    def __init__(self, store: Optional[RoomStore] = None, code_length: int = 6):
        self.store = store if store is not None else InMemoryRoomStore()
        self.code_length = code_length

    def create(self, now: float, time_per_round: int = 30) -> Room:
        code = generate_room_code(lambda c: c in self.store, self.code_length)
        room = Room(code, created_at=now, time_per_round=time_per_round)
        self.store.put(room)
        return room

    def find(self, code: Optional[str]) -> Optional[Room]:
        if not code:
            return None
        return self.store.get(str(code).strip().upper())

    def get(self, code: Optional[str]) -> Room:
        room = self.find(code)
        if room is None:
            raise NotFound('Room not found')
        return room

    def delete(self, code: str) -> Optional[Room]:
        return self.store.delete(code)

    def sweep_abandoned(self, now: float, grace: float) -> List[Room]:
        def expired(room: Room) -> bool:
            return (
                room.is_abandoned()
                and room.abandoned_since is not None
                and now - room.abandoned_since >= grace
            )
        return self.store.sweep(expired)
