import functools

from flask import current_app, request
from flask_socketio import emit

from rebus import socketio
from rebus.errors import GameError


def _engine():
    return current_app.extensions['rebus']


def game_command(handler):
    """Run a socket command, reporting rejected commands the way the client expects.

    Surfaced errors become a single ``error-msg``; silent ones are only logged.
    """
    @functools.wraps(handler)
    def wrapper(data=None, *args):
        if not isinstance(data, dict):
            data = {}
        try:
            return handler(data)
        except GameError as exc:
            if exc.surfaced:
                emit('error-msg', {'message': exc.message})
            else:
                current_app.logger.info(f"[drop] event={handler.__name__} sid={request.sid} reason={exc.message}")
    return wrapper


def handle_connect(auth=None):
    emit('connected', {'sid': request.sid})


def handle_disconnect(reason=None):
    _engine().disconnect(request.sid)


@game_command
def handle_host_join(data):
    _engine().host_join(request.sid, data.get('roomCode'), data.get('sessionId'))


@game_command
def handle_join_room(data):
    _engine().join_room(request.sid, data.get('roomCode'), data.get('playerName'), data.get('sessionId'))


@game_command
def handle_start_game(data):
    _engine().start_game(request.sid, data.get('roomCode'), data.get('rounds'), data.get('timePerRound'))


@game_command
def handle_submit_guess(data):
    _engine().submit_guess(request.sid, data.get('roomCode'), data.get('guess'))


@game_command
def handle_next_round(data):
    _engine().next_round(request.sid, data.get('roomCode'))


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('host-join', handle_host_join, namespace=namespace)
    socketio.on_event('join-room', handle_join_room, namespace=namespace)
    socketio.on_event('start-game', handle_start_game, namespace=namespace)
    socketio.on_event('submit-guess', handle_submit_guess, namespace=namespace)
    socketio.on_event('next-round', handle_next_round, namespace=namespace)
