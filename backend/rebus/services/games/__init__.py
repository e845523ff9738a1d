"""Game domain services: guess evaluation, scoring, timers, sessions.

This package contains the room orchestration logic used by the Socket.IO
handlers and HTTP routes, keeping transport concerns separated from core
game mechanics.
"""
