from typing import Any


def room_channel(code: str) -> str:
    return f"room:{code}"


class SocketIOBroadcaster:
    """Pushes game events to connected clients through Flask-SocketIO.

    Uses ``socketio.emit`` rather than the request-bound ``emit`` so it also
    works from timer background tasks.
    """

    def __init__(self, socketio, namespace: str = '/ws'):
        self.socketio = socketio
        self.namespace = namespace

    def to_room(self, code: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=room_channel(code), namespace=self.namespace)

    def to_sid(self, sid: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def enter(self, sid: str, code: str) -> None:
        self.socketio.server.enter_room(sid, room_channel(code), namespace=self.namespace)

    def leave(self, sid: str, code: str) -> None:
        self.socketio.server.leave_room(sid, room_channel(code), namespace=self.namespace)
