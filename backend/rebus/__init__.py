from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

NAMESPACE = '/ws'

socketio = SocketIO(async_mode=None)


def build_engine(flask_app):
    """Wire the game engine for this app from its config."""
    from rebus.services.games.broadcast import SocketIOBroadcaster
    from rebus.services.games.engine import GameEngine
    from rebus.services.games.registry import RoomRegistry
    from rebus.services.games.scheduler import BackgroundScheduler, ManualScheduler
    from rebus.services.games.sessions import SessionManager

    cfg = flask_app.config
    if cfg.get('TESTING') and not cfg.get('ENABLE_SCHEDULER_IN_TESTS'):
        # Tests drive the clock by hand
        scheduler = ManualScheduler(logger=flask_app.logger)
    else:
        scheduler = BackgroundScheduler(
            socketio,
            logger=flask_app.logger,
            heartbeat_sec=int(cfg.get('TIMER_HEARTBEAT_SEC', 0)),
        )
    return GameEngine(
        registry=RoomRegistry(code_length=int(cfg.get('ROOM_CODE_LENGTH', 6))),
        scheduler=scheduler,
        broadcaster=SocketIOBroadcaster(socketio, namespace=NAMESPACE),
        sessions=SessionManager(max_name_length=int(cfg.get('MAX_NAME_LENGTH', 24))),
        config=cfg,
        logger=flask_app.logger,
    )


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    flask_app.extensions['rebus'] = build_engine(flask_app)

    from rebus.main import main
    flask_app.register_blueprint(main)

    from rebus.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    from rebus.socketio_events import register_socketio_handlers
    register_socketio_handlers(NAMESPACE)

    return flask_app
