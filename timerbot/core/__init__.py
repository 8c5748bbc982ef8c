"""Core modules for the timer bot."""

from .config import BOT_NAME, BOT_VERSION, PACKAGE_DIR, PROJECT_DIR, Settings, get_settings
from .health_server import HealthCheckServer
from .logging import setup_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "BOT_NAME",
    "BOT_VERSION",
    # Paths
    "PACKAGE_DIR",
    "PROJECT_DIR",
    # Services
    "HealthCheckServer",
    # Logging
    "setup_logging",
]
