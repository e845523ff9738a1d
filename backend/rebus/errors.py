class GameError(Exception):
    """Base class for rejected game commands.

    ``surfaced`` tells the transport layer whether the caller should be told
    about the rejection (``error-msg``) or whether it is dropped quietly.
    """

    surfaced = True

    def __init__(self, message: str = ''):
        super().__init__(message)
        self.message = message


class NotFound(GameError):
    """Unknown room code."""


class InvalidState(GameError):
    """Command not valid for the room's current state or round."""


class Unauthorized(GameError):
    """Host-only command from a non-host connection."""

    surfaced = False


class Duplicate(GameError):
    """Second scoring guess from the same player in one round."""

    surfaced = False
