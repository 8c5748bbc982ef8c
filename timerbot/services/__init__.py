"""Timer bot services."""

from .api_client import AuthorizedAPIClient
from .auth import CredentialCache
from .blocked_users import BlockedUserClient
from .notifier import TimerNotifier, format_expiry_message
from .scheduler import ExpirationScheduler, TickResult, TimerFailure
from .timer_api import CompleteOutcome, TimerAPIClient
from .timer_command import TimerCommand, TimerCommandError, parse_timer_command

__all__ = [
    "AuthorizedAPIClient",
    "BlockedUserClient",
    "CompleteOutcome",
    "CredentialCache",
    "ExpirationScheduler",
    "TickResult",
    "TimerAPIClient",
    "TimerCommand",
    "TimerCommandError",
    "TimerFailure",
    "TimerNotifier",
    "format_expiry_message",
    "parse_timer_command",
]
