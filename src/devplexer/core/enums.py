"""Shared enums for devplexer."""

from enum import Enum


class AppStatus(Enum):
    """Outcome of ensuring one app's window."""

    CREATED = "created"
    ALREADY_RUNNING = "already_running"
    FAILED = "failed"
