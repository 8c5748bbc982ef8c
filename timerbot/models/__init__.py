"""Data models for the timer bot."""

from .credential import Credential
from .timer import (
    MAX_DURATION_MINUTES,
    MAX_MESSAGE_LENGTH,
    MIN_DURATION_MINUTES,
    CreateTimerRequest,
    Timer,
)

__all__ = [
    "Credential",
    "CreateTimerRequest",
    "MAX_DURATION_MINUTES",
    "MAX_MESSAGE_LENGTH",
    "MIN_DURATION_MINUTES",
    "Timer",
]
