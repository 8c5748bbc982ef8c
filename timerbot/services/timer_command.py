"""Parsing of the ``TIMER <minutes> [message]`` chat command."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import MAX_DURATION_MINUTES, MAX_MESSAGE_LENGTH, MIN_DURATION_MINUTES

_TIMER_RE = re.compile(r"^TIMER\s+(-?\d+)(?:\s+(.+))?$", re.IGNORECASE | re.DOTALL)

USAGE = (
    "⚠️ Invalid timer format!\n"
    "Usage: `TIMER <minutes>` or `TIMER <minutes> <reminder message>`\n"
    "Examples:\n"
    "• `TIMER 5` - Set a 5-minute timer\n"
    "• `TIMER 10 Check the oven` - Timer with reminder"
)


class TimerCommandError(ValueError):
    """A timer command that cannot be accepted; ``str(err)`` is shown to the user."""


@dataclass
class TimerCommand:
    duration_minutes: int
    message: str | None = None


def validate_duration(minutes: int) -> int:
    if not MIN_DURATION_MINUTES <= minutes <= MAX_DURATION_MINUTES:
        raise TimerCommandError(
            f"⚠️ Duration must be between {MIN_DURATION_MINUTES} and "
            f"{MAX_DURATION_MINUTES} minutes (24 hours)."
        )
    return minutes


def validate_message(message: str | None) -> str | None:
    if message is None:
        return None
    message = message.strip()
    if not message:
        return None
    if len(message) > MAX_MESSAGE_LENGTH:
        raise TimerCommandError(
            f"⚠️ Reminder message is too long (max {MAX_MESSAGE_LENGTH} characters)."
        )
    return message


def is_timer_command(text: str) -> bool:
    return text.strip().upper().startswith("TIMER")


def parse_timer_command(text: str) -> TimerCommand | None:
    """Parse a chat message.

    Returns ``None`` when the text is not a timer command at all and raises
    ``TimerCommandError`` when it is one but cannot be accepted.
    """
    content = text.strip()
    if not is_timer_command(content):
        return None

    match = _TIMER_RE.match(content)
    if not match:
        raise TimerCommandError(USAGE)

    duration = validate_duration(int(match.group(1)))
    return TimerCommand(duration_minutes=duration, message=validate_message(match.group(2)))
