"""Logging configuration"""

import logging

from rich.console import Console
from rich.logging import RichHandler

DATE_FORMAT = "[%Y-%m-%d %H:%M:%S]"
PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that are chatty at INFO
QUIET_LOGGERS = ("discord", "discord.http", "httpx", "aiohttp")


def _rich_handler() -> RichHandler:
    handler = RichHandler(
        console=Console(force_terminal=True, width=120),
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        tracebacks_width=120,
    )
    # Module loggers are timerbot.<area>; keep the area visible
    handler.setFormatter(logging.Formatter(fmt="%(name)s: %(message)s", datefmt=DATE_FORMAT))
    return handler


def setup_logging(level_name: str = "INFO") -> None:
    """Route all logging through Rich, or a plain format if the console can't be set up"""
    level = getattr(logging, level_name.upper(), logging.INFO)

    try:
        logging.basicConfig(level=level, handlers=[_rich_handler()], force=True)
    except Exception as e:
        logging.basicConfig(level=level, format=PLAIN_FORMAT, force=True)
        logging.getLogger("timerbot").warning(
            f"Rich logging setup failed: {e}, using standard logging"
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
