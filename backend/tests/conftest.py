import os
import sys
from collections import defaultdict

import pytest

# Ensure the backend root (containing the `rebus` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from rebus import create_app, socketio
from rebus.services.games.engine import GameEngine
from rebus.services.games.registry import RoomRegistry
from rebus.services.games.scheduler import ManualScheduler
from rebus.services.games.sessions import SessionManager


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    DEFAULT_TIME_PER_ROUND_SEC = 30
    NEXT_ROUND_DELAY_SEC = 5
    FINAL_ROUND_DELAY_SEC = 3
    ROOM_REAP_GRACE_SEC = 600


GAME_CONFIG = {
    'DEFAULT_TIME_PER_ROUND_SEC': 30,
    'MIN_TIME_PER_ROUND_SEC': 5,
    'MAX_TIME_PER_ROUND_SEC': 300,
    'HINT_ONE_AT': 0.5,
    'HINT_TWO_AT': 0.75,
    'NEXT_ROUND_DELAY_SEC': 5,
    'FINAL_ROUND_DELAY_SEC': 3,
    'ROOM_REAP_GRACE_SEC': 600,
    'MAX_PUZZLES': 50,
    'MAX_GUESS_LENGTH': 100,
}

PUZZLES = [
    {'image': 'data:image/png;base64,AAAA', 'answer': 'The Eiffel Tower'},
    {'image': 'data:image/png;base64,BBBB', 'answer': 'Pizza'},
    {'image': 'data:image/png;base64,CCCC', 'answer': 'Big Ben'},
]


class RecordingBroadcaster:
    """Collects everything the engine would push to clients."""

    def __init__(self):
        self.events = []
        self.channels = defaultdict(set)

    def to_room(self, code, event, payload):
        self.events.append(('room', code, event, payload))

    def to_sid(self, sid, event, payload):
        self.events.append(('sid', sid, event, payload))

    def enter(self, sid, code):
        self.channels[code].add(sid)

    def leave(self, sid, code):
        self.channels[code].discard(sid)

    def named(self, event, target=None):
        return [e[3] for e in self.events if e[2] == event and (target is None or e[1] == target)]

    def names(self):
        return [e[2] for e in self.events]

    def clear(self):
        self.events = []


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def engine(scheduler, broadcaster):
    return GameEngine(RoomRegistry(), scheduler, broadcaster, SessionManager(), config=dict(GAME_CONFIG))


@pytest.fixture()
def lobby(engine):
    """A room with puzzles loaded and a host connected as ``host``."""
    room = engine.create_room()
    engine.load_puzzles(room.code, PUZZLES)
    engine.host_join('host', room.code, 'host-token')
    return room


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def game_engine(flask_app):
    return flask_app.extensions['rebus']


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
