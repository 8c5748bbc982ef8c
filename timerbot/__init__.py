"""Discord reminder bot that delivers expired timers from the timer API."""

from .core.config import BOT_VERSION

__version__ = BOT_VERSION
