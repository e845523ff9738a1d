import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173'
    ).split(',') if o.strip()]
    # Round timing (seconds)
    DEFAULT_TIME_PER_ROUND_SEC = int(os.environ.get('DEFAULT_TIME_PER_ROUND_SEC', '30'))
    MIN_TIME_PER_ROUND_SEC = int(os.environ.get('MIN_TIME_PER_ROUND_SEC', '5'))
    MAX_TIME_PER_ROUND_SEC = int(os.environ.get('MAX_TIME_PER_ROUND_SEC', '300'))
    # Hints fire at these fractions of the round
    HINT_ONE_AT = float(os.environ.get('HINT_ONE_AT', '0.5'))
    HINT_TWO_AT = float(os.environ.get('HINT_TWO_AT', '0.75'))
    # Auto-advance pauses after a round ends
    NEXT_ROUND_DELAY_SEC = int(os.environ.get('NEXT_ROUND_DELAY_SEC', '5'))
    FINAL_ROUND_DELAY_SEC = int(os.environ.get('FINAL_ROUND_DELAY_SEC', '3'))
    # Abandoned rooms are dropped after this grace period
    ROOM_REAP_GRACE_SEC = int(os.environ.get('ROOM_REAP_GRACE_SEC', '600'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    # Upload limits
    MAX_PUZZLES = int(os.environ.get('MAX_PUZZLES', '50'))
    MAX_IMAGE_BYTES = int(os.environ.get('MAX_IMAGE_BYTES', str(5 * 1024 * 1024)))
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', str(60 * 1024 * 1024)))
    MAX_GUESS_LENGTH = int(os.environ.get('MAX_GUESS_LENGTH', '100'))
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '24'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
